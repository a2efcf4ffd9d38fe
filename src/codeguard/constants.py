from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Severity levels for findings."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class JobStatus(str, Enum):
    """Scan job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ScanType(str, Enum):
    FULL = "full"
    UPLOAD = "upload"


class ExitCode(int, Enum):
    """Process exit codes."""

    SUCCESS = 0
    ERROR = 2
    IDLE = 10


class Limits:
    """Shared hard limits."""

    MAX_FILE_SIZE = 50_000
    MAX_MATCH_CHARS = 80
    MAX_INFRA_MATCH_CHARS = 100
    MAX_LINE_CHARS = 4_000
    MANIFEST_MAX_DEPTH = 1
    RECENT_COMMITS = 5
    CONTRIBUTOR_WINDOW_DAYS = 30
    CONTRIBUTOR_COMMITS = 100
    CONTRIBUTOR_FILE_LOOKUPS = 20
    ALERT_LIST_LIMIT = 5


class Progress:
    """Progress band used while a job is running."""

    ENUMERATED = 10
    ANALYZED = 80
    PERSISTED = 85
    SCORED = 90
    DONE = 100


SEVERITY_ORDER = ("critical", "high", "medium", "low")
GRADE_ORDER = ("A", "B", "C", "D", "F")
