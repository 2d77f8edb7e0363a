from __future__ import annotations

import uuid

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from newsletter_service.shared.logging import bind_request_context, clear_request_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Ensures every request is tagged with a stable correlation id.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        bind_request_context(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


class SessionContextMiddleware(BaseHTTPMiddleware):
    """
    Reads the session cookie and attaches the user id to request.state.user_id.
    Routes that need a login enforce it through a dependency.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        sessions = getattr(request.app.state, "sessions", None)
        user_id = sessions.user_id(request) if sessions is not None else None
        request.state.user_id = user_id
        if user_id is not None:
            bind_request_context(user_id=str(user_id))
        return await call_next(request)


def setup_http_middlewares(app: FastAPI) -> None:
    """
    Install middlewares (last added runs first).
    """
    app.add_middleware(SessionContextMiddleware)
    app.add_middleware(RequestIdMiddleware)
