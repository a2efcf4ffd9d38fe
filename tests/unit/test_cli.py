from __future__ import annotations

import json

import pytest

from codeguard.cli import build_parser, main
from codeguard.config import get_settings
from codeguard.constants import ExitCode


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("CODEGUARD_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("CODEGUARD_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("CODEGUARD_ML_SERVICE_URL", "")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def _last_json(capsys) -> dict:
    return json.loads(capsys.readouterr().out)


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_worker_options() -> None:
    args = build_parser().parse_args(["worker", "--worker-id", "w1", "--poll-interval", "5"])
    assert args.worker_id == "w1"
    assert args.poll_interval == 5.0


def test_queue_lifecycle(cli_env, capsys) -> None:
    assert main(["init-db"]) == ExitCode.SUCCESS
    capsys.readouterr()

    assert main(["add-repo", "acme", "acme/api"]) == ExitCode.SUCCESS
    repository_id = _last_json(capsys)["id"]

    assert main(["enqueue", str(repository_id), "--upload", "missing.json"]) == ExitCode.SUCCESS
    job = _last_json(capsys)
    assert job["status"] == "pending"
    assert job["scan_type"] == "upload"

    assert main(["status", str(job["id"])]) == ExitCode.SUCCESS
    assert _last_json(capsys)["status"] == "pending"

    assert main(["process-next", "--worker-id", "cli-test"]) == ExitCode.ERROR
    outcome = _last_json(capsys)
    assert outcome["status"] == "failed"
    assert outcome["error_message"].startswith("Failed to download upload data")

    assert main(["process-next"]) == ExitCode.IDLE


def test_unknown_repository_exits_with_error(cli_env, capsys) -> None:
    assert main(["enqueue", "999"]) == ExitCode.ERROR
    assert "Repository 999 not found" in capsys.readouterr().err


def test_unknown_job_exits_with_error(cli_env, capsys) -> None:
    assert main(["status", "5"]) == ExitCode.ERROR
    assert "Scan job 5 not found" in capsys.readouterr().err


def test_invalid_configuration_exits_with_error(cli_env, monkeypatch, capsys) -> None:
    monkeypatch.setenv("CODEGUARD_BATCH_SIZE", "-1")
    get_settings.cache_clear()
    assert main(["init-db"]) == ExitCode.ERROR
    assert "Configuration error" in capsys.readouterr().err
