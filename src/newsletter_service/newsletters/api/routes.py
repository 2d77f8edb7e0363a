import uuid
from uuid import UUID

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, Response

from newsletter_service.dependencies import get_flash, get_publisher, require_user_id
from newsletter_service.newsletters.application.publish_service import NewsletterPublisher
from newsletter_service.newsletters.domain import PublishNewsletterCommand
from newsletter_service.shared.http.flash import FlashMessages
from newsletter_service.shared.http.pages import render_page

router = APIRouter(prefix="/admin/newsletters", tags=["Newsletters"])


@router.get("", response_class=HTMLResponse)
async def publish_newsletter_form(
    request: Request,
    user_id: UUID = Depends(require_user_id),
    flash: FlashMessages = Depends(get_flash),
) -> HTMLResponse:
    # A fresh key per rendered form; resubmitting the same form reuses it
    idempotency_key = str(uuid.uuid4())
    body = (
        '<form action="/admin/newsletters" method="post">\n'
        '    <label>Title <input type="text" placeholder="Enter the issue title" name="title"></label>\n'
        '    <label>Plain text content <textarea name="text_content" rows="20" cols="50"></textarea></label>\n'
        '    <label>HTML content <textarea name="html_content" rows="20" cols="50"></textarea></label>\n'
        f'    <input hidden type="text" name="idempotency_key" value="{idempotency_key}">\n'
        '    <button type="submit">Publish</button>\n'
        "</form>\n"
        '<p><a href="/admin/dashboard">&lt;- Back</a></p>'
    )
    response = HTMLResponse(render_page("Publish Newsletter Issue", body, flash.incoming(request)))
    flash.consume(request, response)
    return response


@router.post("")
async def publish_newsletter(
    title: str = Form(...),
    text_content: str = Form(...),
    html_content: str = Form(...),
    idempotency_key: str = Form(""),
    user_id: UUID = Depends(require_user_id),
    publisher: NewsletterPublisher = Depends(get_publisher),
) -> Response:
    command = PublishNewsletterCommand(
        title=title,
        text_content=text_content,
        html_content=html_content,
        idempotency_key=idempotency_key,
    )
    return await publisher.publish(user_id, command)
