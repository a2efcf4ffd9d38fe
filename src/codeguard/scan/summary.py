from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..constants import GRADE_ORDER
from ..dependencies import DependencyScanResult
from ..detection import LicenseResult, worse_grade
from ..models import DetectorResult, SeverityCounts
from ..scoring import DebtScore
from ..scoring.debt import round_half_up
from ..sources import CommitContext
from .pipeline import FileAnalysis


@dataclass
class ScanTotals:
    """Running per-repository totals, fed one file at a time in tree order."""

    files_scanned: int = 0
    ai_files: int = 0
    total_loc: int = 0
    total_ai_loc: int = 0
    vulnerabilities: SeverityCounts = field(default_factory=SeverityCounts)
    quality_errors: int = 0
    quality_warnings: int = 0
    quality_infos: int = 0
    worst_grade: str = GRADE_ORDER[0]
    enhancements_high: int = 0
    enhancements_medium: int = 0
    enhancements_low: int = 0

    def add(self, analysis: FileAnalysis) -> None:
        self.files_scanned += 1
        self.ai_files += 1 if analysis.is_ai_file else 0
        self.total_loc += analysis.total_loc
        self.total_ai_loc += analysis.ai_loc
        self.vulnerabilities.merge(analysis.vulnerabilities.counts)

        quality = analysis.code_quality
        self.quality_errors += quality.error_count
        self.quality_warnings += quality.warning_count
        self.quality_infos += quality.info_count
        self.worst_grade = worse_grade(self.worst_grade, quality.grade)

        enhancements = analysis.enhancements
        self.enhancements_high += enhancements.count("high")
        self.enhancements_medium += enhancements.count("medium")
        self.enhancements_low += enhancements.count("low")

    @property
    def ai_loc_ratio(self) -> float:
        return self.total_ai_loc / self.total_loc if self.total_loc else 0.0

    @property
    def ai_loc_percentage(self) -> int:
        return round_half_up(self.ai_loc_ratio * 100)

    @property
    def quality_findings(self) -> int:
        return self.quality_errors + self.quality_warnings + self.quality_infos


def zero_summary(commit: Optional[CommitContext] = None) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        "total_files_scanned": 0,
        "ai_files_detected": 0,
        "total_loc": 0,
        "total_ai_loc": 0,
        "ai_loc_percentage": 0,
    }
    if commit is not None:
        summary.update(commit.to_summary())
    return summary


def _detector_summary(result: Optional[DetectorResult]) -> Optional[Dict[str, Any]]:
    if result is None or not result.findings:
        return None
    summary = result.to_summary()
    summary["findings"] = [finding.to_dict() for finding in result.findings]
    return summary


def _license_summary(result: Optional[LicenseResult]) -> Optional[Dict[str, Any]]:
    if result is None or not result.total_packages:
        return None
    summary = result.to_summary()
    summary["findings"] = [
        {"package_name": f.package_name, "version": f.version, "license": f.license, "risk": f.risk}
        for f in result.findings
    ]
    return summary


def build_summary(
    totals: ScanTotals,
    debt: DebtScore,
    dependencies: Optional[DependencyScanResult] = None,
    sensitive_files: Optional[DetectorResult] = None,
    licenses: Optional[LicenseResult] = None,
    infrastructure: Optional[DetectorResult] = None,
    commit: Optional[CommitContext] = None,
    upload_storage_key: Optional[str] = None,
) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        "total_files_scanned": totals.files_scanned,
        "ai_files_detected": totals.ai_files,
        "total_loc": totals.total_loc,
        "total_ai_loc": totals.total_ai_loc,
        "ai_loc_percentage": totals.ai_loc_percentage,
        "debt_score": debt.score,
        "risk_zone": debt.risk_zone,
        "vulnerabilities": totals.vulnerabilities.to_dict(),
        "code_quality": {
            "worst_grade": totals.worst_grade,
            "total_errors": totals.quality_errors,
            "total_warnings": totals.quality_warnings,
            "total_infos": totals.quality_infos,
            "total_findings": totals.quality_findings,
        },
        "enhancements": {
            "total": totals.enhancements_high + totals.enhancements_medium + totals.enhancements_low,
            "high": totals.enhancements_high,
            "medium": totals.enhancements_medium,
            "low": totals.enhancements_low,
        },
        "dependency_vulnerabilities": dependencies.to_summary() if dependencies and dependencies.per_ecosystem else None,
        "sensitive_files": _detector_summary(sensitive_files),
        "license_compliance": _license_summary(licenses),
        "infrastructure": _detector_summary(infrastructure),
    }
    if commit is not None:
        summary.update(commit.to_summary())
    if upload_storage_key:
        summary["upload_storage_key"] = upload_storage_key
    return summary
