from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..constants import JobStatus, ScanType
from ..errors import JobNotFoundError, JobStateError, RepositoryNotFoundError
from .models import Repository, ScanJob

PENDING_TIMEOUT_MESSAGE = "Scan timed out: stuck in pending state for over {minutes} minutes"
RUNNING_TIMEOUT_MESSAGE = "Scan timed out: stuck in running state for over {minutes} minutes"
CLAIM_BATCH = 5


@dataclass(frozen=True)
class ReapResult:
    pending: int
    running: int

    @property
    def total(self) -> int:
        return self.pending + self.running


class JobStore:
    """
    Scan job rows and their state machine.

    Every transition is a single conditional UPDATE so that competing workers
    never both win: claim requires ``status='pending'``; progress, completion
    and failure require ``status='running'`` and, when given, the caller's lease.
    """

    def __init__(
        self,
        session_local: async_sessionmaker,
        stale_minutes: int = 10,
        lease_seconds: int = 600,
    ):
        self.session_local = session_local
        self.stale_minutes = stale_minutes
        self.lease_seconds = lease_seconds

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _lease_expiry(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.lease_seconds)

    async def enqueue(
        self,
        repository_id: int,
        scan_type: ScanType | str = ScanType.FULL,
        upload_storage_key: Optional[str] = None,
    ) -> ScanJob:
        scan_type = ScanType(scan_type)
        if scan_type is ScanType.UPLOAD and not upload_storage_key:
            raise JobStateError("Upload scans require an upload_storage_key")

        async with self.session_local() as session:
            repository = await session.get(Repository, repository_id)
            if repository is None or not repository.is_active:
                raise RepositoryNotFoundError(f"Repository {repository_id} not found")

            job = ScanJob(
                repository_id=repository_id,
                scan_type=scan_type.value,
                status=JobStatus.PENDING.value,
                progress=0,
                created_at=self._now(),
                summary={"upload_storage_key": upload_storage_key} if upload_storage_key else None,
            )
            session.add(job)
            await session.commit()
            await session.refresh(job)
            return job

    async def get(self, job_id: int) -> ScanJob:
        async with self.session_local() as session:
            job = await session.get(ScanJob, job_id)
            if job is None:
                raise JobNotFoundError(f"Scan job {job_id} not found")
            return job

    async def get_status(self, job_id: int) -> Dict[str, Any]:
        job = await self.get(job_id)
        return {"status": job.status, "progress": job.progress, "error_message": job.error_message}

    async def reap_stale(self, now: Optional[datetime] = None) -> ReapResult:
        """Fail pending jobs older than the threshold and running jobs whose lease lapsed."""
        now = now or self._now()
        cutoff = now - timedelta(minutes=self.stale_minutes)

        async with self.session_local() as session:
            pending = await session.execute(
                update(ScanJob)
                .where(ScanJob.status == JobStatus.PENDING.value, ScanJob.created_at < cutoff)
                .values(
                    status=JobStatus.FAILED.value,
                    error_message=PENDING_TIMEOUT_MESSAGE.format(minutes=self.stale_minutes),
                    completed_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            running = await session.execute(
                update(ScanJob)
                .where(
                    ScanJob.status == JobStatus.RUNNING.value,
                    or_(
                        ScanJob.lease_expires_at < now,
                        and_(ScanJob.lease_expires_at.is_(None), ScanJob.started_at < cutoff),
                    ),
                )
                .values(
                    status=JobStatus.FAILED.value,
                    error_message=RUNNING_TIMEOUT_MESSAGE.format(minutes=self.stale_minutes),
                    completed_at=now,
                    lease_owner=None,
                    lease_expires_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()

        return ReapResult(pending=pending.rowcount or 0, running=running.rowcount or 0)

    async def claim_next(self, worker_id: str) -> Optional[ScanJob]:
        """
        Move the oldest pending job to running. ``None`` when the queue is empty.

        Candidates are read a few at a time; when other workers win every one
        of them the queue is read again, until a claim succeeds or no pending
        row is left.
        """
        while True:
            async with self.session_local() as session:
                candidates = await session.execute(
                    select(ScanJob.id)
                    .where(ScanJob.status == JobStatus.PENDING.value)
                    .order_by(ScanJob.created_at, ScanJob.id)
                    .limit(CLAIM_BATCH)
                )
                candidate_ids = list(candidates.scalars())
            if not candidate_ids:
                return None

            for job_id in candidate_ids:
                claimed = await self.claim(job_id, worker_id)
                if claimed is not None:
                    return claimed

    async def claim(self, job_id: int, worker_id: str) -> Optional[ScanJob]:
        """Compare-and-swap a specific job from pending to running."""
        now = self._now()
        async with self.session_local() as session:
            result = await session.execute(
                update(ScanJob)
                .where(ScanJob.id == job_id, ScanJob.status == JobStatus.PENDING.value)
                .values(
                    status=JobStatus.RUNNING.value,
                    progress=0,
                    started_at=now,
                    lease_owner=worker_id,
                    lease_expires_at=self._lease_expiry(now),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            if result.rowcount != 1:
                return None
            return await session.get(ScanJob, job_id, populate_existing=True)

    def _owned(self, job_id: int, worker_id: Optional[str]):
        conditions = [ScanJob.id == job_id, ScanJob.status == JobStatus.RUNNING.value]
        if worker_id is not None:
            conditions.append(ScanJob.lease_owner == worker_id)
        return and_(*conditions)

    async def update_progress(self, job_id: int, progress: int, worker_id: Optional[str] = None) -> bool:
        """
        Record a progress checkpoint and renew the lease.

        Writes are monotonic: a value below the stored one is ignored. Returns
        False when the job is no longer running under this worker.
        """
        progress = max(0, min(100, int(progress)))
        now = self._now()
        async with self.session_local() as session:
            renewed = await session.execute(
                update(ScanJob)
                .where(self._owned(job_id, worker_id))
                .values(lease_expires_at=self._lease_expiry(now))
                .execution_options(synchronize_session=False)
            )
            if renewed.rowcount == 1:
                await session.execute(
                    update(ScanJob)
                    .where(self._owned(job_id, worker_id), ScanJob.progress < progress)
                    .values(progress=progress)
                    .execution_options(synchronize_session=False)
                )
            await session.commit()
        return renewed.rowcount == 1

    async def complete(self, job_id: int, summary: Dict[str, Any], worker_id: Optional[str] = None) -> None:
        async with self.session_local() as session:
            result = await session.execute(
                update(ScanJob)
                .where(self._owned(job_id, worker_id))
                .values(
                    status=JobStatus.COMPLETED.value,
                    progress=100,
                    summary=summary,
                    completed_at=self._now(),
                    lease_owner=None,
                    lease_expires_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        if result.rowcount != 1:
            raise JobStateError(f"Scan job {job_id} is not running under this worker")

    async def fail(self, job_id: int, error_message: str, worker_id: Optional[str] = None) -> bool:
        """Mark a running job failed. Returns False if it already left the running state."""
        async with self.session_local() as session:
            result = await session.execute(
                update(ScanJob)
                .where(self._owned(job_id, worker_id))
                .values(
                    status=JobStatus.FAILED.value,
                    error_message=error_message[:2000],
                    completed_at=self._now(),
                    lease_owner=None,
                    lease_expires_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        return result.rowcount == 1
