from typing import AsyncGenerator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from ..config import CodeGuardSettings, get_settings

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_session_local: Optional[async_sessionmaker] = None


def _engine_kwargs(settings: CodeGuardSettings) -> dict:
    url = make_url(settings.database_url)
    if url.get_backend_name() != "sqlite":
        return {
            "pool_pre_ping": True,
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_timeout": settings.db_pool_timeout_seconds,
        }
    kwargs: dict = {"connect_args": {"timeout": settings.db_pool_timeout_seconds}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every session sees an empty database.
        kwargs["poolclass"] = StaticPool
    return kwargs


async def init_db(settings: Optional[CodeGuardSettings] = None, create_schema: bool = True) -> None:
    global _engine, _session_local

    settings = settings or get_settings()

    if _engine is None:
        _engine = create_async_engine(settings.database_url, **_engine_kwargs(settings))
        _session_local = async_sessionmaker(_engine, expire_on_commit=False, class_=AsyncSession)

    if create_schema:
        # Import for side effect: registers the tables on Base.metadata.
        from . import models  # noqa: F401

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_local

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_local = None


async def get_sessionmaker() -> async_sessionmaker:
    if _session_local is None:
        await init_db()
    return _session_local


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    session_local = await get_sessionmaker()
    async with session_local() as session:
        yield session
