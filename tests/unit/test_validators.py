from __future__ import annotations

from codeguard.detection import detect_vulnerabilities


def _ids(code: str, language: str = "python", path: str = "app/settings.py") -> list[str]:
    return [finding.rule_id for finding in detect_vulnerabilities(code, language, file_path=path).findings]


def test_real_password_literal_is_reported() -> None:
    assert "VULN-002" in _ids('db_password = "S3cr3tPassw0rd!"')


def test_placeholder_password_is_suppressed() -> None:
    assert "VULN-002" not in _ids('db_password = "changeme123"')
    assert "VULN-002" not in _ids('password = "your-password-here"')


def test_environment_lookup_is_suppressed() -> None:
    assert "VULN-002" not in _ids('password = os.environ.get("DB_PASSWORD_VALUE")')


def test_placeholder_api_key_is_suppressed() -> None:
    assert "VULN-003" in _ids('api_key = "9f8e7d6c5b4a39281706"')
    assert "VULN-003" not in _ids('api_key = "example-key-12345"')
