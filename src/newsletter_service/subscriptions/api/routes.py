from fastapi import APIRouter, Depends, Form, Query, Response, status

from newsletter_service.dependencies import get_subscription_service
from newsletter_service.subscriptions.application.subscription_service import SubscriptionService
from newsletter_service.subscriptions.domain import NewSubscriber

router = APIRouter(tags=["Subscriptions"])


@router.post("/subscriptions", status_code=status.HTTP_200_OK)
async def subscribe(
    name: str = Form(...),
    email: str = Form(...),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Response:
    await service.subscribe(NewSubscriber.parse(email=email, name=name))
    return Response(status_code=status.HTTP_200_OK)


@router.get("/subscriptions/confirm", status_code=status.HTTP_200_OK)
async def confirm(
    subscription_token: str = Query(...),
    service: SubscriptionService = Depends(get_subscription_service),
) -> Response:
    await service.confirm(subscription_token)
    return Response(status_code=status.HTTP_200_OK)
