from __future__ import annotations

from .constants import ExitCode


class CodeGuardError(Exception):
    """Base exception for all CodeGuard errors."""

    exit_code: ExitCode = ExitCode.ERROR


class ConfigError(CodeGuardError):
    """Configuration validation failed."""


class RuleCatalogError(CodeGuardError):
    """A rule catalog could not be loaded."""


class ManifestParseError(CodeGuardError):
    """A dependency manifest could not be parsed (skipped, never fatal)."""


class SourceError(CodeGuardError):
    """The scan source (code host or upload archive) is unusable. Fatal for the job."""


class MissingCredentialsError(SourceError):
    """No code-host token is available for the repository."""


class JobStateError(CodeGuardError):
    """A job transition was attempted from the wrong state or without the lease."""


class JobNotFoundError(CodeGuardError):
    """Requested job does not exist."""


class RepositoryNotFoundError(CodeGuardError):
    """Requested repository does not exist or is inactive."""
