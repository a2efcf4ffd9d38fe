"""
Scan job lifecycle.

One call to ``process_next_job`` reaps stale jobs, claims the oldest pending
one and drives it to a terminal state: enumerate the tree, analyze files in a
bounded worker pool, run the whole-tree detectors, persist results, score,
raise alerts, record weekly contributor metrics and write the summary. Any
exception outside the contributor step turns the job ``failed``.
"""
from __future__ import annotations

import asyncio
import socket
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..config import CodeGuardSettings, get_settings
from ..constants import JobStatus, Limits, Progress, ScanType
from ..dependencies import DependencyScanResult, scan_all_dependencies
from ..detection import LicenseResult, detect_infrastructure, detect_sensitive_files, infra_file_type, scan_npm_licenses
from ..errors import CodeGuardError, JobStateError, RepositoryNotFoundError
from ..languages import is_source_file, path_depth
from ..logging import ScanLogger
from ..models import DetectorResult
from ..scoring import (
    AttributedFile,
    ContributorProfile,
    DebtScore,
    TeamMetrics,
    adoption_score,
    attribute_contributors,
    calculate_debt_score,
    company_rollup,
    derive_team_metrics,
    files_to_attribute,
    week_period,
)
from ..scoring.debt import round_half_up
from ..sources import CommitAuthor, CommitContext, GitHubSource, ScanSource, TreeEntry, UploadSource
from ..store import JobStore, Repository, ResultStore, ScanJob
from .alerts import build_alerts
from .pipeline import FileAnalysis, analyze_file
from .summary import ScanTotals, build_summary, zero_summary

SourceFactory = Callable[[ScanJob, Repository], ScanSource]


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{uuid.uuid4().hex[:8]}"


def progress_for(completed: int, total: int) -> int:
    """Map analyzed files onto the 10..80 band."""
    if total <= 0:
        return Progress.ANALYZED
    span = Progress.ANALYZED - Progress.ENUMERATED
    return Progress.ENUMERATED + round_half_up(completed / total * span)


@dataclass
class ProcessOutcome:
    job_id: int
    status: JobStatus
    error_message: Optional[str] = None
    summary: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AncillaryResults:
    dependencies: DependencyScanResult
    sensitive_files: DetectorResult
    licenses: Optional[LicenseResult]
    infrastructure: DetectorResult


class ScanOrchestrator:
    def __init__(
        self,
        jobs: JobStore,
        results: ResultStore,
        settings: Optional[CodeGuardSettings] = None,
        worker_id: Optional[str] = None,
        source_factory: Optional[SourceFactory] = None,
        logger: Optional[ScanLogger] = None,
    ):
        self.jobs = jobs
        self.results = results
        self.settings = settings or get_settings()
        self.worker_id = worker_id or default_worker_id()
        self.source_factory = source_factory or self._default_source
        self.logger = logger or ScanLogger(self.worker_id)

    def _default_source(self, job: ScanJob, repository: Repository) -> ScanSource:
        if job.scan_type == ScanType.UPLOAD.value:
            return UploadSource(self.settings.upload_dir, (job.summary or {}).get("upload_storage_key"))
        return GitHubSource(
            repository.full_name,
            token=self.settings.github_token.get_secret_value(),
            ref=repository.default_branch or "main",
            api_url=self.settings.github_api_url,
            timeout=self.settings.http_timeout_seconds,
        )

    async def process_next_job(self) -> Optional[ProcessOutcome]:
        """Reap, claim and fully process one job. ``None`` when nothing is pending."""
        reaped = await self.jobs.reap_stale()
        if reaped.total:
            self.logger.warning("stale_jobs_reaped", pending=reaped.pending, running=reaped.running)

        job = await self.jobs.claim_next(self.worker_id)
        if job is None:
            return None

        log = self.logger.bind(job.id)
        log.info("job_claimed", repository_id=job.repository_id, scan_type=job.scan_type)
        try:
            summary = await self._process(job, log)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            log.error("job_failed", error=message, error_type=exc.__class__.__name__)
            await self.jobs.fail(job.id, message, worker_id=self.worker_id)
            await self.results.update_repository_scan(job.repository_id, JobStatus.FAILED.value)
            return ProcessOutcome(job_id=job.id, status=JobStatus.FAILED, error_message=message)

        log.info(
            "job_completed",
            files=summary.get("total_files_scanned", 0),
            debt_score=summary.get("debt_score"),
            stage_ms=log.stage_durations,
        )
        return ProcessOutcome(job_id=job.id, status=JobStatus.COMPLETED, summary=summary)

    async def run_forever(self, poll_interval: Optional[float] = None, stop: Optional[asyncio.Event] = None) -> None:
        """Process jobs back to back; sleep ``poll_interval`` seconds when the queue is empty."""
        interval = poll_interval if poll_interval is not None else self.settings.poll_interval_seconds
        stop = stop or asyncio.Event()
        while not stop.is_set():
            outcome = await self.process_next_job()
            if outcome is not None:
                continue
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def _checkpoint(self, job_id: int, progress: int) -> None:
        if not await self.jobs.update_progress(job_id, progress, worker_id=self.worker_id):
            raise JobStateError(f"Lost the lease on scan job {job_id}")

    async def _process(self, job: ScanJob, log: ScanLogger) -> Dict[str, Any]:
        repository = await self.results.get_repository(job.repository_id)
        if repository is None:
            raise RepositoryNotFoundError(f"Repository {job.repository_id} not found")
        upload_key = (job.summary or {}).get("upload_storage_key")

        source = self.source_factory(job, repository)
        async with source:
            with log.stage("enumerate"):
                commit = await source.recent_commits() if job.scan_type == ScanType.FULL.value else None
                tree = await source.list_tree()
                files = [
                    entry
                    for entry in tree
                    if is_source_file(entry.path) and entry.size <= self.settings.max_file_size
                ]
                log.info("tree_enumerated", blobs=len(tree), source_files=len(files))

            if not files:
                summary = zero_summary(commit)
                await self.jobs.complete(job.id, summary, worker_id=self.worker_id)
                await self.results.update_repository_scan(repository.id, JobStatus.COMPLETED.value)
                return summary

            await self._checkpoint(job.id, Progress.ENUMERATED)

            with log.stage("analyze"):
                analyses = await self._analyze_files(job.id, files, source, commit, log)
                totals = ScanTotals()
                for analysis in analyses:
                    totals.add(analysis)
                log.info("files_analyzed", analyzed=totals.files_scanned, total_loc=totals.total_loc)
            await self._checkpoint(job.id, Progress.ANALYZED)

            with log.stage("whole_tree"):
                ancillary = await self._scan_whole_tree(tree, source, log)

            with log.stage("contributors"):
                contributors = await self._analyze_contributors(source, analyses, log)

        with log.stage("persist"):
            rows = [analysis.to_row(job.id, repository.id) for analysis in analyses]
            report = await self.results.insert_results(rows)
            if report.dropped:
                log.warning("results_dropped", count=len(report.dropped), paths=report.dropped[: Limits.ALERT_LIST_LIMIT])
        await self._checkpoint(job.id, Progress.PERSISTED)

        with log.stage("score"):
            debt = await self._score(job, repository, totals)
        await self._checkpoint(job.id, Progress.SCORED)

        with log.stage("alerts"):
            alerts = build_alerts(
                repository.company_id,
                repository.id,
                repository.full_name,
                totals,
                debt,
                dependencies=ancillary.dependencies,
                sensitive_files=ancillary.sensitive_files,
                licenses=ancillary.licenses,
                infrastructure=ancillary.infrastructure,
            )
            await self.results.insert_alerts(alerts)
            log.info("alerts_raised", count=len(alerts))

        if contributors:
            with log.stage("team_metrics"):
                await self._record_team_metrics(repository, contributors, log)

        summary = build_summary(
            totals,
            debt,
            dependencies=ancillary.dependencies,
            sensitive_files=ancillary.sensitive_files,
            licenses=ancillary.licenses,
            infrastructure=ancillary.infrastructure,
            commit=commit,
            upload_storage_key=upload_key,
        )
        await self.jobs.complete(job.id, summary, worker_id=self.worker_id)
        await self.results.update_repository_scan(repository.id, JobStatus.COMPLETED.value)
        return summary

    async def _analyze_files(
        self,
        job_id: int,
        files: Sequence[TreeEntry],
        source: ScanSource,
        commit: Optional[CommitContext],
        log: ScanLogger,
    ) -> List[FileAnalysis]:
        """
        Analyze files concurrently, at most ``max_workers`` at a time.

        Results come back in tree order. A file that cannot be fetched or
        analyzed is logged and left out. Progress is written every
        ``progress_interval`` completed files; a failed or refused progress
        write cancels the files still in flight and becomes the job error.
        """
        total = len(files)
        slots: List[Optional[FileAnalysis]] = [None] * total
        semaphore = asyncio.Semaphore(self.settings.max_workers)
        commit_message = commit.message if commit else ""
        completed = 0

        async def work(index: int, entry: TreeEntry) -> None:
            nonlocal completed
            async with semaphore:
                try:
                    content = await source.fetch_file(entry.path)
                    if content is not None:
                        slots[index] = await analyze_file(
                            entry.path, content, commit_message, settings=self.settings, logger=log
                        )
                except Exception as exc:
                    log.warning("file_skipped", path=entry.path, error=str(exc), error_type=exc.__class__.__name__)

                completed += 1
                if completed % self.settings.progress_interval == 0 or completed == total:
                    await self._checkpoint(job_id, progress_for(completed, total))

        try:
            async with asyncio.TaskGroup() as group:
                for index, entry in enumerate(files):
                    group.create_task(work(index, entry))
        except ExceptionGroup as exc:
            raise exc.exceptions[0] from None
        return [analysis for analysis in slots if analysis is not None]

    async def _scan_whole_tree(self, tree: Sequence[TreeEntry], source: ScanSource, log: ScanLogger) -> AncillaryResults:
        paths = [entry.path for entry in tree]

        dependencies = await scan_all_dependencies(paths, source.fetch_file)
        sensitive = detect_sensitive_files(paths)

        infra_files: Dict[str, str] = {}
        for path in paths:
            if infra_file_type(path) is None:
                continue
            try:
                content = await source.fetch_file(path)
            except CodeGuardError as exc:
                log.warning("infra_file_skipped", path=path, error=str(exc))
                continue
            if content is not None:
                infra_files[path] = content
        infrastructure = detect_infrastructure(infra_files)

        licenses = await self._scan_licenses(paths, source, log)

        log.info(
            "whole_tree_scanned",
            ecosystems=dependencies.ecosystems_scanned,
            dependency_findings=len(dependencies.findings),
            sensitive_files=len(sensitive.findings),
            infrastructure_findings=len(infrastructure.findings),
            license_packages=licenses.total_packages if licenses else 0,
        )
        return AncillaryResults(
            dependencies=dependencies,
            sensitive_files=sensitive,
            licenses=licenses,
            infrastructure=infrastructure,
        )

    async def _scan_licenses(self, paths: Sequence[str], source: ScanSource, log: ScanLogger) -> Optional[LicenseResult]:
        """Classify npm licenses from the shallowest lockfile, else the shallowest package.json."""
        shallow = sorted(
            (path for path in paths if path_depth(path) <= Limits.MANIFEST_MAX_DEPTH),
            key=lambda path: (path_depth(path), path),
        )
        for name, is_lockfile in (("package-lock.json", True), ("package.json", False)):
            match = next((path for path in shallow if PurePosixPath(path).name == name), None)
            if match is None:
                continue
            try:
                content = await source.fetch_file(match)
            except CodeGuardError as exc:
                log.warning("license_manifest_skipped", path=match, error=str(exc))
                continue
            if content:
                return scan_npm_licenses(content, is_lockfile)
        return None

    async def _score(self, job: ScanJob, repository: Repository, totals: ScanTotals) -> DebtScore:
        debt = calculate_debt_score(
            ai_loc_ratio=totals.ai_loc_ratio,
            review_coverage=self.settings.default_review_coverage,
            refactor_backlog_growth=0.0,
            prompt_inconsistency=0.0,
        )
        await self.results.insert_score(
            repository.company_id,
            debt.score,
            debt.risk_zone,
            debt.breakdown,
            repository_id=repository.id,
            scan_id=job.id,
        )

        latest = await self.results.latest_scores_for_company(repository.company_id)
        rollup = company_rollup(latest.values(), breakdown=debt.breakdown)
        if rollup is not None:
            await self.results.insert_score(
                repository.company_id,
                rollup.score,
                rollup.risk_zone,
                rollup.breakdown,
                repository_id=None,
                scan_id=job.id,
            )
        return debt

    async def _analyze_contributors(
        self, source: ScanSource, analyses: Sequence[FileAnalysis], log: ScanLogger
    ) -> List[ContributorProfile]:
        """Attribute AI lines to recent committers; history problems skip the step instead of failing the job."""
        since = datetime.now(timezone.utc) - timedelta(days=Limits.CONTRIBUTOR_WINDOW_DAYS)
        files = [
            AttributedFile(analysis.path, analysis.ai_probability, analysis.ai_loc, analysis.total_loc)
            for analysis in analyses
        ]
        file_authors: Dict[str, CommitAuthor] = {}
        try:
            commits = await source.commit_authors(since)
            if not commits:
                return []
            for item in files_to_attribute(files, Limits.CONTRIBUTOR_FILE_LOOKUPS):
                author = await source.last_committer(item.path)
                if author is not None:
                    file_authors[item.path] = author
        except CodeGuardError as exc:
            log.warning("contributors_skipped", error=str(exc))
            return []
        return attribute_contributors(commits, file_authors, files)

    async def _record_team_metrics(
        self, repository: Repository, contributors: Sequence[ContributorProfile], log: ScanLogger
    ) -> None:
        period_start, period_end = week_period(datetime.now(timezone.utc).date())
        metrics: List[TeamMetrics] = []
        rows: List[Dict[str, Any]] = []
        for profile in contributors:
            derived = derive_team_metrics(profile)
            metrics.append(derived)
            rows.append(
                {
                    "github_username": profile.login,
                    "display_name": profile.display_name,
                    "avatar_url": profile.avatar_url,
                    "total_commits": profile.total_commits,
                    "ai_loc_authored": profile.ai_loc_attributed,
                    "total_loc_authored": profile.total_loc_attributed,
                    **derived.to_dict(),
                }
            )
        try:
            await self.results.upsert_team_metrics(repository.company_id, period_start, period_end, rows)
        except SQLAlchemyError as exc:
            log.warning("team_metrics_skipped", error=str(exc))
            return
        log.info(
            "team_metrics_recorded",
            contributors=len(rows),
            adoption_score=adoption_score(metrics, self.settings.default_review_coverage),
        )
