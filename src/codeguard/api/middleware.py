import logging
import uuid
from typing import Any, Dict

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from ..errors import CodeGuardError, JobNotFoundError, JobStateError, RepositoryNotFoundError

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_payload(code: str, message: str, request_id: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
        }
    }


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routes raise ready-made envelopes; framework errors (unknown path, wrong method) get wrapped."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload("HTTP_ERROR", str(exc.detail), request_id_of(request)),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_payload("VALIDATION_ERROR", "Request validation failed", request_id_of(request), details),
    )


# Most specific first; the first isinstance match wins.
_ERROR_STATUS = (
    (JobNotFoundError, 404, "JOB_NOT_FOUND"),
    (RepositoryNotFoundError, 404, "REPOSITORY_NOT_FOUND"),
    (JobStateError, 409, "JOB_STATE_CONFLICT"),
)


async def codeguard_exception_handler(request: Request, exc: CodeGuardError) -> JSONResponse:
    for error_type, status_code, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return JSONResponse(
                status_code=status_code,
                content=error_payload(code, str(exc), request_id_of(request)),
            )
    logger.error("Unhandled scan error: %s", exc)
    return JSONResponse(
        status_code=500,
        content=error_payload("INTERNAL_ERROR", str(exc) or exc.__class__.__name__, request_id_of(request)),
    )
