from __future__ import annotations

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from codeguard.config import CodeGuardSettings
from codeguard.store import JobStore, ResultStore, close_db, get_sessionmaker, init_db


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def settings(tmp_path: Path) -> CodeGuardSettings:
    return CodeGuardSettings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'codeguard.db'}",
        github_token="ghp_test",
        ml_service_url=None,
        upload_dir=str(tmp_path / "uploads"),
        max_workers=4,
        progress_interval=2,
        batch_size=3,
    )


@pytest.fixture
async def session_local(settings: CodeGuardSettings):
    await init_db(settings)
    yield await get_sessionmaker()
    await close_db()


@pytest.fixture
def job_store(session_local, settings: CodeGuardSettings) -> JobStore:
    return JobStore(session_local, stale_minutes=settings.stale_job_minutes, lease_seconds=settings.lease_seconds)


@pytest.fixture
def result_store(session_local, settings: CodeGuardSettings) -> ResultStore:
    return ResultStore(session_local, batch_size=settings.batch_size)
