from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from newsletter_service.delivery.application.worker import DeliveryWorker
from newsletter_service.delivery.domain import EmailTransport
from newsletter_service.dependencies import build_services
from newsletter_service.identity.api.routes import router as identity_router
from newsletter_service.newsletters.api.routes import router as newsletters_router
from newsletter_service.shared.config import Settings, get_settings
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import register_exception_handlers
from newsletter_service.shared.health import router as health_router
from newsletter_service.shared.http.middleware import setup_http_middlewares
from newsletter_service.shared.logging import get_logger, setup_logging
from newsletter_service.subscriptions.api.routes import router as subscriptions_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[DatabaseSessionFactory] = None,
    email_client: Optional[EmailTransport] = None,
) -> FastAPI:
    """
    Build the web application.

    ``database`` and ``email_client`` default to instances built from
    ``settings``; the application disposes only what it built itself.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    owns_database = database is None
    owns_email_client = email_client is None
    services = build_services(settings, database=database, email_client=email_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        worker: Optional[DeliveryWorker] = None
        worker_task: Optional[asyncio.Task] = None
        if settings.ENABLE_DELIVERY_WORKER:
            worker = DeliveryWorker.from_settings(settings, services.database, services.email_client)
            worker_task = asyncio.create_task(worker.run(), name="delivery-worker")
        logger.info(
            "Application started",
            environment=settings.ENVIRONMENT,
            delivery_worker=settings.ENABLE_DELIVERY_WORKER,
        )
        try:
            yield
        finally:
            if worker is not None and worker_task is not None:
                worker.stop()
                await worker_task
            if owns_email_client:
                await services.email_client.aclose()
            if owns_database:
                await services.database.dispose()
            logger.info("Application stopped")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services
    app.state.database = services.database
    app.state.sessions = services.sessions

    # request id + session user → request.state, structlog contextvars
    setup_http_middlewares(app)

    # Routers
    app.include_router(health_router)
    app.include_router(subscriptions_router)
    app.include_router(identity_router)
    app.include_router(newsletters_router)

    # Centralized error handling → {code, message, details?, correlation_id?}
    register_exception_handlers(app)

    return app


_app: Optional[FastAPI] = None


def __getattr__(name: str):
    # ``uvicorn newsletter_service.main:app`` builds the default app on first access
    global _app
    if name == "app":
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
