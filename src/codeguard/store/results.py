from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .models import AlertRecord, DebtScoreRecord, Repository, ScanResultRecord, TeamMetricRecord

logger = logging.getLogger(__name__)


@dataclass
class InsertReport:
    inserted: int
    dropped: List[str]

    @property
    def attempted(self) -> int:
        return self.inserted + len(self.dropped)


class ResultStore:
    """Append-only writes for per-file results, debt scores and alerts; upserts for weekly team metrics."""

    def __init__(self, session_local: async_sessionmaker, batch_size: int = 25):
        self.session_local = session_local
        self.batch_size = batch_size

    async def _insert_batch(self, rows: Sequence[Mapping[str, Any]]) -> None:
        async with self.session_local() as session:
            try:
                session.add_all([ScanResultRecord(**row) for row in rows])
                await session.commit()
            except (SQLAlchemyError, TypeError, ValueError):
                await session.rollback()
                raise

    async def insert_results(self, rows: Sequence[Mapping[str, Any]]) -> InsertReport:
        """
        Insert result rows in fixed-size batches.

        A failing batch is retried row by row, so one malformed row only
        loses itself; rows that fail individually are logged and dropped.
        """
        report = InsertReport(inserted=0, dropped=[])
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start : start + self.batch_size]
            try:
                await self._insert_batch(batch)
                report.inserted += len(batch)
                continue
            except (SQLAlchemyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Batch insert failed (batch %d), retrying rows individually: %s",
                    start // self.batch_size + 1,
                    exc,
                )

            for row in batch:
                try:
                    await self._insert_batch([row])
                    report.inserted += 1
                except (SQLAlchemyError, TypeError, ValueError) as exc:
                    path = str(row.get("file_path"))
                    logger.error("Dropping scan result for %s: %s", path, exc)
                    report.dropped.append(path)

        logger.info("Inserted %d/%d scan results", report.inserted, len(rows))
        return report

    async def insert_score(
        self,
        company_id: str,
        score: int,
        risk_zone: str,
        breakdown: Dict[str, Any],
        repository_id: Optional[int] = None,
        scan_id: Optional[int] = None,
    ) -> DebtScoreRecord:
        record = DebtScoreRecord(
            company_id=company_id,
            repository_id=repository_id,
            scan_id=scan_id,
            score=score,
            risk_zone=risk_zone,
            breakdown=breakdown,
            created_at=datetime.now(timezone.utc),
        )
        async with self.session_local() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        return record

    async def latest_scores_for_company(self, company_id: str) -> Dict[int, int]:
        """Latest score per active repository of ``company_id``."""
        async with self.session_local() as session:
            result = await session.execute(
                select(DebtScoreRecord.repository_id, DebtScoreRecord.score)
                .join(Repository, Repository.id == DebtScoreRecord.repository_id)
                .where(
                    DebtScoreRecord.company_id == company_id,
                    DebtScoreRecord.repository_id.is_not(None),
                    Repository.is_active.is_(True),
                )
                .order_by(DebtScoreRecord.created_at.desc(), DebtScoreRecord.id.desc())
            )
            latest: Dict[int, int] = {}
            for repository_id, score in result.all():
                latest.setdefault(repository_id, score)
        return latest

    async def insert_alerts(self, alerts: Sequence[Mapping[str, Any]]) -> int:
        if not alerts:
            return 0
        async with self.session_local() as session:
            session.add_all([AlertRecord(**alert) for alert in alerts])
            await session.commit()
        return len(alerts)

    async def add_repository(self, company_id: str, full_name: str, default_branch: str = "main") -> Repository:
        async with self.session_local() as session:
            repository = Repository(company_id=company_id, full_name=full_name, default_branch=default_branch)
            session.add(repository)
            await session.commit()
            await session.refresh(repository)
            return repository

    async def get_repository(self, repository_id: int) -> Optional[Repository]:
        async with self.session_local() as session:
            return await session.get(Repository, repository_id)

    async def update_repository_scan(self, repository_id: int, status: str) -> None:
        async with self.session_local() as session:
            await session.execute(
                update(Repository)
                .where(Repository.id == repository_id)
                .values(last_scan_at=datetime.now(timezone.utc), last_scan_status=status)
            )
            await session.commit()

    async def results_for_scan(self, scan_id: int) -> List[ScanResultRecord]:
        async with self.session_local() as session:
            result = await session.execute(
                select(ScanResultRecord).where(ScanResultRecord.scan_id == scan_id).order_by(ScanResultRecord.id)
            )
            return list(result.scalars())

    async def upsert_team_metrics(
        self, company_id: str, period_start: date, period_end: date, rows: Sequence[Mapping[str, Any]]
    ) -> int:
        """Insert or replace one row per ``github_username`` for the company and period."""
        if not rows:
            return 0
        async with self.session_local() as session:
            result = await session.execute(
                select(TeamMetricRecord).where(
                    TeamMetricRecord.company_id == company_id,
                    TeamMetricRecord.period_start == period_start,
                    TeamMetricRecord.period_end == period_end,
                    TeamMetricRecord.github_username.in_([row["github_username"] for row in rows]),
                )
            )
            existing = {record.github_username: record for record in result.scalars()}
            for row in rows:
                record = existing.get(row["github_username"])
                if record is None:
                    session.add(
                        TeamMetricRecord(company_id=company_id, period_start=period_start, period_end=period_end, **row)
                    )
                    continue
                for key, value in row.items():
                    setattr(record, key, value)
            await session.commit()
        return len(rows)

    async def team_metrics_for_company(self, company_id: str) -> List[TeamMetricRecord]:
        async with self.session_local() as session:
            result = await session.execute(
                select(TeamMetricRecord)
                .where(TeamMetricRecord.company_id == company_id)
                .order_by(TeamMetricRecord.period_start.desc(), TeamMetricRecord.total_commits.desc(), TeamMetricRecord.id)
            )
            return list(result.scalars())
