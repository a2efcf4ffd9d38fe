from __future__ import annotations

import base64
import json

import httpx
import pytest

from codeguard.api import create_app
from codeguard.api.routes.scans import get_job_store, get_orchestrator
from codeguard.scan import ScanOrchestrator

pytestmark = pytest.mark.anyio


@pytest.fixture
async def client(job_store, result_store, settings):
    app = create_app()
    app.dependency_overrides[get_job_store] = lambda: job_store
    app.dependency_overrides[get_orchestrator] = lambda: ScanOrchestrator(
        job_store, result_store, settings, worker_id="api-test"
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
async def repository(result_store):
    return await result_store.add_repository("acme", "acme/api")


async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_ready_checks_database(client) -> None:
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json()["checks"] == {"database": "ok"}


async def test_ready_reports_unreachable_database(client, monkeypatch) -> None:
    async def unreachable():
        raise OSError("connection refused")

    monkeypatch.setattr("codeguard.api.routes.health.get_sessionmaker", unreachable)
    response = await client.get("/ready", headers={"X-Request-ID": "req_ready"})

    assert response.status_code == 503
    assert response.json() == {
        "error": {
            "code": "DEPENDENCY_UNAVAILABLE",
            "message": "One or more dependencies are unavailable",
            "details": {"database": "error"},
            "request_id": "req_ready",
        }
    }


async def test_unknown_path_uses_error_envelope(client) -> None:
    response = await client.get("/api/v1/nope", headers={"X-Request-ID": "req_404"})

    assert response.status_code == 404
    assert response.json()["error"] == {
        "code": "HTTP_ERROR",
        "message": "Not Found",
        "details": None,
        "request_id": "req_404",
    }


async def test_create_scan(client, repository) -> None:
    response = await client.post("/api/v1/scans", json={"repository_id": repository.id})

    assert response.status_code == 201
    body = response.json()
    assert body["repository_id"] == repository.id
    assert body["status"] == "pending"
    assert body["scan_type"] == "full"
    assert body["progress"] == 0
    assert response.headers["X-Request-ID"].startswith("req_")


async def test_create_scan_for_unknown_repository(client, session_local) -> None:
    response = await client.post("/api/v1/scans", json={"repository_id": 404})

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "REPOSITORY_NOT_FOUND"
    assert error["request_id"] == response.headers["X-Request-ID"]


async def test_upload_scan_requires_storage_key(client, repository) -> None:
    response = await client.post("/api/v1/scans", json={"repository_id": repository.id, "scan_type": "upload"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_scan_status(client, repository) -> None:
    created = await client.post("/api/v1/scans", json={"repository_id": repository.id})
    job_id = created.json()["id"]

    response = await client.get(f"/api/v1/scans/{job_id}", headers={"X-Request-ID": "req_fixed"})

    assert response.status_code == 200
    assert response.json() == {"status": "pending", "progress": 0, "error_message": None}
    assert response.headers["X-Request-ID"] == "req_fixed"


async def test_scan_status_unknown_job(client, session_local) -> None:
    response = await client.get("/api/v1/scans/987")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "JOB_NOT_FOUND"


async def test_process_next_idle(client, session_local) -> None:
    response = await client.post("/api/v1/scans/process-next")

    assert response.status_code == 200
    assert response.json()["processed"] is False


async def test_process_next_runs_upload_scan(client, repository, settings, tmp_path) -> None:
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    archive = {"src/util.py": base64.b64encode(b"def add(a, b):\n    return a + b\n").decode()}
    (upload_dir / "u1.json").write_text(json.dumps(archive), encoding="utf-8")
    created = await client.post(
        "/api/v1/scans",
        json={"repository_id": repository.id, "scan_type": "upload", "upload_storage_key": "u1.json"},
    )

    response = await client.post("/api/v1/scans/process-next")

    body = response.json()
    assert body["processed"] is True
    assert body["job_id"] == created.json()["id"]
    assert body["status"] == "completed"
    assert body["summary"]["total_files_scanned"] == 1

    status = await client.get(f"/api/v1/scans/{body['job_id']}")
    assert status.json()["progress"] == 100


async def test_process_next_reports_failed_scan(client, repository) -> None:
    await client.post(
        "/api/v1/scans",
        json={"repository_id": repository.id, "scan_type": "upload", "upload_storage_key": "missing.json"},
    )

    body = (await client.post("/api/v1/scans/process-next")).json()

    assert body["processed"] is True
    assert body["status"] == "failed"
    assert body["error_message"].startswith("Failed to download upload data")
