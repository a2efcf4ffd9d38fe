"""Threshold alerts raised at the end of a scan."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..constants import Limits
from ..dependencies import DependencyScanResult
from ..detection import LicenseResult
from ..models import DetectorResult
from ..scoring import DebtScore
from .summary import ScanTotals

AI_LOC_ALERT_PERCENT = 50
DEBT_ALERT_SCORE = 60


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def build_alerts(
    company_id: str,
    repository_id: int,
    repository_name: str,
    totals: ScanTotals,
    debt: DebtScore,
    dependencies: Optional[DependencyScanResult] = None,
    sensitive_files: Optional[DetectorResult] = None,
    licenses: Optional[LicenseResult] = None,
    infrastructure: Optional[DetectorResult] = None,
) -> List[Dict[str, Any]]:
    alerts: List[Dict[str, Any]] = []

    def add(severity: str, category: str, title: str, description: str) -> None:
        alerts.append(
            {
                "company_id": company_id,
                "repository_id": repository_id,
                "severity": severity,
                "category": category,
                "title": title,
                "description": description,
                "status": "active",
            }
        )

    percent = totals.ai_loc_percentage
    if percent > AI_LOC_ALERT_PERCENT:
        add(
            "high",
            "ai_loc",
            f"High AI-generated code in {repository_name}",
            f"{percent}% of code in {repository_name} is AI-generated. Consider reviewing AI contributions.",
        )

    if debt.score < DEBT_ALERT_SCORE:
        add(
            "high",
            "debt_score",
            f"Critical AI debt score for {repository_name}",
            f"AI debt score is {debt.score}/100 ({debt.risk_zone}). Immediate attention recommended.",
        )

    vulns = totals.vulnerabilities
    if vulns.critical:
        add(
            "high",
            "vulnerability",
            f"Critical vulnerabilities found in {repository_name}",
            f"{_plural(vulns.critical, 'critical vulnerability finding')} detected. Immediate remediation required.",
        )
    if vulns.high:
        add(
            "high",
            "vulnerability",
            f"High-severity vulnerabilities in {repository_name}",
            f"{_plural(vulns.high, 'high-severity finding')} detected. Review and fix recommended.",
        )

    if totals.worst_grade in ("D", "F"):
        findings = totals.quality_errors + totals.quality_warnings
        add(
            "high" if totals.worst_grade == "F" else "medium",
            "code_quality",
            f"Poor code quality detected in {repository_name}",
            f"Worst quality grade: {totals.worst_grade}. {_plural(findings, 'quality finding')} detected "
            f"({totals.quality_errors} errors, {totals.quality_warnings} warnings).",
        )

    if dependencies is not None and dependencies.per_ecosystem:
        counts = dependencies.counts
        ecosystems = ", ".join(dependencies.ecosystems_scanned)
        if counts.critical:
            add(
                "high",
                "dependency",
                f"Critical dependency vulnerabilities in {repository_name}",
                f"{_plural(counts.critical, 'critical vulnerable package')} found across {ecosystems}. "
                "Update affected packages immediately.",
            )
        if counts.high:
            add(
                "high",
                "dependency",
                f"Vulnerable dependencies in {repository_name}",
                f"{_plural(counts.high, 'high-severity vulnerable package')} found across {ecosystems}. Review and update.",
            )

    if sensitive_files is not None and sensitive_files.counts.critical:
        paths = [f.file_path for f in sensitive_files.findings if f.severity == "critical"][: Limits.ALERT_LIST_LIMIT]
        add(
            "high",
            "sensitive_file",
            f"Sensitive files detected in {repository_name}",
            f"{_plural(sensitive_files.counts.critical, 'sensitive file')} found: {', '.join(paths)}. "
            "These files may contain credentials or private keys.",
        )

    if licenses is not None and licenses.strong_copyleft_count:
        packages = [
            f"{f.package_name} ({f.license})" for f in licenses.findings if f.risk == "strong-copyleft"
        ][: Limits.ALERT_LIST_LIMIT]
        add(
            "medium",
            "license",
            f"Copyleft license dependencies in {repository_name}",
            f"{_plural(licenses.strong_copyleft_count, 'package')} with strong copyleft licenses: "
            f"{', '.join(packages)}. These may require open-sourcing derivative works.",
        )

    if infrastructure is not None:
        serious = infrastructure.counts.critical + infrastructure.counts.high
        if serious:
            add(
                "high",
                "infrastructure",
                f"Infrastructure security issues in {repository_name}",
                f"{_plural(serious, 'critical/high infrastructure finding')} in Dockerfiles, compose files or CI workflows.",
            )

    return alerts
