from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..errors import CodeGuardError
from ..store import close_db, init_db
from .middleware import (
    RequestIDMiddleware,
    codeguard_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .routes import health, scans


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title="CodeGuard Scan API",
        version=__version__,
        docs_url="/docs",
        lifespan=lifespan,
    )

    # Exception handlers
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CodeGuardError, codeguard_exception_handler)

    app.add_middleware(RequestIDMiddleware)

    # Routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(scans.router, prefix="/api/v1", tags=["Scans"])
    return app


app = create_app()
