import logging

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...store import get_sessionmaker
from ..middleware import error_payload, request_id_of

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health():
    """Basic liveness check."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness check; 503 when the database is unreachable."""
    try:
        session_local = await get_sessionmaker()
        async with session_local() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Readiness DB check failed", exc_info=True)
        raise HTTPException(
            status_code=503,
            detail=error_payload(
                "DEPENDENCY_UNAVAILABLE",
                "One or more dependencies are unavailable",
                request_id_of(request),
                {"database": "error"},
            ),
        )
    return {"status": "ready", "checks": {"database": "ok"}}
