from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, ValidationError, confloat, conint, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class CodeGuardSettings(BaseSettings):
    """Worker and API configuration loaded from ``CODEGUARD_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CODEGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./codeguard.db")
    db_pool_size: conint(ge=1) = Field(default=5)
    db_max_overflow: conint(ge=0) = Field(default=5)
    db_pool_timeout_seconds: conint(ge=1) = Field(default=30)

    # Code host
    github_token: SecretStr = Field(default="", description="Token used to read repository trees")
    github_api_url: str = Field(default="https://api.github.com")
    http_timeout_seconds: confloat(gt=0) = Field(default=15.0)

    # Optional ML classifier
    ml_service_url: Optional[str] = Field(default=None, description="Base URL of the AI-code classifier")
    ml_timeout_seconds: confloat(gt=0, le=5) = Field(default=5.0)

    # Scan limits
    max_file_size: conint(ge=1) = Field(default=50_000)
    max_workers: conint(ge=1, le=64) = Field(default=8)
    progress_interval: conint(ge=1) = Field(default=10)
    batch_size: conint(ge=1) = Field(default=25)

    # Job lifecycle
    stale_job_minutes: conint(ge=1) = Field(default=10)
    lease_seconds: conint(ge=30) = Field(default=600)
    poll_interval_seconds: confloat(gt=0) = Field(default=30.0)

    # Uploads
    upload_dir: str = Field(default="./uploads")

    # Debt score inputs not yet measured by the pipeline
    default_review_coverage: confloat(ge=0, le=1) = Field(default=0.5)

    @field_validator("github_api_url", "ml_service_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str):
            trimmed = value.strip().rstrip("/")
            return trimmed or None
        return value

    @model_validator(mode="after")
    def _validate_lease(self) -> "CodeGuardSettings":
        if self.lease_seconds > self.stale_job_minutes * 60:
            raise ValueError("lease_seconds must not exceed the stale job threshold")
        return self


@lru_cache
def get_settings() -> CodeGuardSettings:
    try:
        return CodeGuardSettings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
