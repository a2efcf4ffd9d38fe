from __future__ import annotations

import json

import httpx
import pytest

from codeguard.config import CodeGuardSettings
from codeguard.logging import ScanLogger
from codeguard.signals.ml_client import classify_with_ml


class DummyResponse:
    def __init__(self, status_code: int = 200, json_data=None) -> None:
        self.status_code = status_code
        self._json_data = json_data

    def json(self):
        if isinstance(self._json_data, Exception):
            raise self._json_data
        return self._json_data


class DummyAsyncClient:
    def __init__(self, responses=None, exceptions=None) -> None:
        self._responses = list(responses or [])
        self._exceptions = list(exceptions or [])
        self.requests = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url, json=None, headers=None):
        self.requests.append({"method": "post", "url": url, "json": json})
        if self._exceptions:
            raise self._exceptions.pop(0)
        if self._responses:
            return self._responses.pop(0)
        return DummyResponse(status_code=500)


SETTINGS = CodeGuardSettings(ml_service_url="http://ml.internal/", ml_timeout_seconds=5)


def _patch(monkeypatch: pytest.MonkeyPatch, client: DummyAsyncClient) -> None:
    monkeypatch.setattr("codeguard.signals.ml_client.httpx.AsyncClient", lambda *args, **kwargs: client)


@pytest.mark.anyio
async def test_successful_classification(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DummyAsyncClient(
        responses=[DummyResponse(json_data={"probability": 0.82, "model_version": "m-3", "features_used": ["ast"]})]
    )
    _patch(monkeypatch, client)

    signal = await classify_with_ml("x = 1", "python", settings=SETTINGS)

    assert signal is not None
    assert signal.probability == 0.82
    assert signal.model_version == "m-3"
    assert signal.features_used == ["ast"]
    assert client.requests[0]["url"] == "http://ml.internal/detect"
    assert client.requests[0]["json"] == {"code": "x = 1", "language": "python"}


@pytest.mark.anyio
async def test_unset_url_skips_the_call(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DummyAsyncClient()
    _patch(monkeypatch, client)

    assert await classify_with_ml("x", "python", settings=CodeGuardSettings(ml_service_url=None)) is None
    assert client.requests == []


@pytest.mark.anyio
async def test_timeout_degrades_to_none(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _patch(monkeypatch, DummyAsyncClient(exceptions=[httpx.TimeoutException("timeout")]))

    signal = await classify_with_ml("x", "python", settings=SETTINGS, logger=ScanLogger("w-1"))

    assert signal is None
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert payload["level"] == "warning"
    assert payload["message"] == "ML classifier timeout"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        DummyResponse(status_code=503, json_data={"probability": 0.5}),
        DummyResponse(json_data={"probability": 1.5, "model_version": "m"}),
        DummyResponse(json_data={"model_version": "m"}),
        DummyResponse(json_data=["not", "an", "object"]),
        DummyResponse(json_data=ValueError("bad json")),
    ],
)
async def test_bad_responses_degrade_to_none(monkeypatch: pytest.MonkeyPatch, response: DummyResponse) -> None:
    _patch(monkeypatch, DummyAsyncClient(responses=[response]))
    assert await classify_with_ml("x", "python", settings=SETTINGS) is None


@pytest.mark.anyio
async def test_transport_error_degrades_to_none(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch(monkeypatch, DummyAsyncClient(exceptions=[httpx.ConnectError("refused")]))
    assert await classify_with_ml("x", "python", settings=SETTINGS) is None
