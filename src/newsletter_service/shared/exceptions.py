from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from newsletter_service.shared.error_codes import ERROR_CODES
from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)


# ───────────────────────── Base & Domain Exceptions ─────────────────────────
class DomainError(Exception):
    """Base class for domain-level errors. Services raise these, never HTTPException."""
    code: str = "domain_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str
    details: Optional[Dict[str, Any]]

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.message = message or _msg_for(self.code) or self.__class__.__name__
        self.details = details
        super().__init__(self.message)

    def cause_chain(self) -> List[str]:
        return error_chain(self)


class ValidationError(DomainError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DomainError):
    code, status_code = "unauthorized", status.HTTP_401_UNAUTHORIZED


class InvalidCredentialsError(AuthenticationError):
    code = "invalid_credentials"


class LoginRequiredError(AuthenticationError):
    """Anonymous access to an admin page; rendered as a redirect to the login form."""
    code = "unauthorized"


class NotFoundError(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class IdempotencyInProgressError(DomainError):
    code = "idempotency_in_progress"
    status_code = status.HTTP_409_CONFLICT


class TransientDeliveryError(DomainError):
    """The email provider failed to accept a message; safe to retry later."""
    code = "transient_delivery_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class UnexpectedError(DomainError):
    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ───────────────────────────── Helpers ──────────────────────────────────────

def error_chain(exc: BaseException) -> List[str]:
    """Render ``exc`` and every chained cause as ``Type: message`` lines, outermost first."""
    chain: List[str] = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(f"{type(current).__name__}: {current}")
        current = current.__cause__ or (
            None if current.__suppress_context__ else current.__context__
        )
    return chain


def _problem(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]],
    correlation_id: Optional[str],
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    if correlation_id:
        body["correlation_id"] = correlation_id
    return body


def _extract_correlation_id(req: Request) -> Optional[str]:
    return getattr(getattr(req, "state", None), "request_id", None)


def _http_for(code: str) -> int:
    return int(ERROR_CODES.get(code, {}).get("http", status.HTTP_500_INTERNAL_SERVER_ERROR))


def _msg_for(code: str) -> str:
    return str(ERROR_CODES.get(code, {}).get("message", ""))


# ─────────────────────────── Registration ───────────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LoginRequiredError)
    async def handle_login_required(req: Request, exc: LoginRequiredError):
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(DomainError)
    async def handle_app_error(req: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                code=exc.code,
                path=req.url.path,
                cause_chain=exc.cause_chain(),
            )
        headers = {"Retry-After": "1"} if isinstance(exc, IdempotencyInProgressError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_problem(exc.code, exc.message, exc.details, _extract_correlation_id(req)),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(req: Request, exc: RequestValidationError):
        code = "validation_error"
        return JSONResponse(
            status_code=_http_for(code),
            content=_problem(
                code,
                _msg_for(code),
                {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]},
                _extract_correlation_id(req),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(req: Request, exc: StarletteHTTPException):
        # map HTTP status → first matching ERROR_CODES entry
        reverse_map = {v["http"]: k for k, v in reversed(list(ERROR_CODES.items()))}
        code = reverse_map.get(exc.status_code, "internal_error")
        detail = getattr(exc, "detail", None)
        return JSONResponse(
            status_code=exc.status_code,
            content=_problem(
                code,
                str(detail) if isinstance(detail, str) else _msg_for(code),
                None,
                _extract_correlation_id(req),
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(req: Request, exc: Exception):
        code = "internal_error"
        logger.error(
            "Unhandled exception",
            path=req.url.path,
            cause_chain=error_chain(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=_http_for(code),
            content=_problem(code, _msg_for(code), {"type": exc.__class__.__name__}, _extract_correlation_id(req)),
        )
