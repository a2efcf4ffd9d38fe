"""
JSON-lines logging for scan workers.

Every line carries the worker id, the job id once a job is claimed, and
the event name. Keys that look like credentials are masked.
"""
from __future__ import annotations

import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

SENSITIVE_KEY_PARTS = ("token", "secret", "password", "api_key", "apikey")


class ScanLogger:
    """Structured logger scoped to a worker and, once claimed, a job."""

    def __init__(self, worker_id: str, job_id: Optional[int] = None):
        self.worker_id = worker_id
        self.job_id = job_id
        self.stage_durations: Dict[str, int] = {}

    def bind(self, job_id: Optional[int]) -> "ScanLogger":
        """Same worker, bound to ``job_id``, with fresh stage timings."""
        return ScanLogger(self.worker_id, job_id=job_id)

    def info(self, event: str, **fields: Any) -> None:
        self._write("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._write("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._write("error", event, fields)

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Log ``stage_start``/``stage_end`` around a block and keep its duration in ``stage_durations``."""
        self.info("stage_start", stage=name)
        started = time.monotonic()
        status = "ok"
        try:
            yield
        except Exception as exc:
            status = "error"
            self.error("stage_error", stage=name, error=str(exc))
            raise
        finally:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            self.stage_durations[name] = elapsed_ms
            self.info("stage_end", stage=name, duration_ms=elapsed_ms, status=status)

    def _write(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "worker_id": self.worker_id,
            "message": event,
        }
        if self.job_id is not None:
            record["job_id"] = self.job_id
        for key, value in fields.items():
            record[key] = "***" if is_sensitive_key(key) else value

        sys.stderr.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
        sys.stderr.flush()


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in SENSITIVE_KEY_PARTS)
