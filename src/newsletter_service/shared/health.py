from time import perf_counter

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health_check", status_code=status.HTTP_200_OK)
async def health_check() -> Response:
    return Response(status_code=status.HTTP_200_OK)


@router.get("/_health/db", status_code=status.HTTP_200_OK)
async def health_db(request: Request):
    database = request.app.state.database
    t0 = perf_counter()
    try:
        async with database.get_session() as s:
            await s.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", error=type(e).__name__)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "checks": {"db": "SELECT 1 failed"}, "error": type(e).__name__},
        )
    dt_ms = int((perf_counter() - t0) * 1000)
    return {"ok": True, "checks": {"db_select_1_ms": dt_ms}}
