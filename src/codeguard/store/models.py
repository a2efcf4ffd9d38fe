from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from .connection import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Repository(Base):
    __tablename__ = "repositories"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    full_name = Column(String(256), nullable=False)
    default_branch = Column(String(128), nullable=False, default="main")
    is_active = Column(Boolean, nullable=False, default=True)
    last_scan_at = Column(DateTime(timezone=True))
    last_scan_status = Column(String(16))
    created_at = Column(DateTime(timezone=True), default=utcnow)


class ScanJob(Base):
    __tablename__ = "scan_jobs"

    id = Column(Integer, primary_key=True)
    repository_id = Column(Integer, ForeignKey("repositories.id"), nullable=False, index=True)
    scan_type = Column(String(16), nullable=False, default="full")
    status = Column(String(16), nullable=False, default="pending")
    progress = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)
    summary = Column(JSON)

    lease_owner = Column(String(128))
    lease_expires_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))

    __table_args__ = (Index("idx_scan_jobs_status_created", "status", "created_at"),)


class ScanResultRecord(Base):
    __tablename__ = "scan_results"

    id = Column(Integer, primary_key=True)
    scan_id = Column(Integer, ForeignKey("scan_jobs.id"), nullable=False, index=True)
    repository_id = Column(Integer, ForeignKey("repositories.id"), nullable=False)
    file_path = Column(String(1024), nullable=False)
    language = Column(String(32))
    total_loc = Column(Integer, nullable=False, default=0)
    ai_loc = Column(Integer, nullable=False, default=0)
    ai_probability = Column(Float, nullable=False, default=0.0)
    risk_tier = Column(String(16), nullable=False, default="low")
    detection_method = Column(String(32))
    signals = Column(JSON)
    vulnerabilities = Column(JSON)
    code_quality = Column(JSON)
    enhancements = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class DebtScoreRecord(Base):
    __tablename__ = "debt_scores"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    # NULL repository_id marks the company-wide rollup.
    repository_id = Column(Integer, ForeignKey("repositories.id"), nullable=True)
    scan_id = Column(Integer, ForeignKey("scan_jobs.id"), nullable=True)
    score = Column(Integer, nullable=False)
    risk_zone = Column(String(16), nullable=False)
    breakdown = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class AlertRecord(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    repository_id = Column(Integer, ForeignKey("repositories.id"), nullable=False)
    severity = Column(String(16), nullable=False)
    category = Column(String(32), nullable=False)
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=utcnow)


class TeamMetricRecord(Base):
    """Weekly AI adoption figures per contributor; one row per company, login and week."""

    __tablename__ = "team_metrics"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    github_username = Column(String(256), nullable=False)
    display_name = Column(String(256))
    avatar_url = Column(String(1024))
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    ai_usage_level = Column(String(16), nullable=False)
    review_quality = Column(String(16), nullable=False)
    risk_index = Column(String(16), nullable=False)
    governance_score = Column(Integer, nullable=False)
    total_commits = Column(Integer, nullable=False, default=0)
    ai_loc_authored = Column(Integer, nullable=False, default=0)
    total_loc_authored = Column(Integer, nullable=False, default=0)
    coaching_suggestions = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("company_id", "github_username", "period_start", "period_end", name="uq_team_metrics_period"),
    )
