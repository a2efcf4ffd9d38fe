from __future__ import annotations

from typing import Iterable, List

from ..models import DetectorResult, Finding, SeverityCounts
from ..rules import load_ruleset


def detect_sensitive_files(paths: Iterable[str]) -> DetectorResult:
    """Match file paths (never content) against the sensitive-file catalog.

    One finding per path: the first matching pattern wins, repeated paths are ignored.
    """
    ruleset = load_ruleset("sensitive_files")
    findings: List[Finding] = []
    seen: set[str] = set()

    for path in paths:
        normalized = path.replace("\\", "/")
        if normalized in seen:
            continue
        for rule in ruleset.rules:
            if rule.pattern.search(normalized):
                seen.add(normalized)
                findings.append(
                    Finding(
                        rule_id=rule.id,
                        severity=rule.severity,
                        category=rule.category,
                        title=rule.title,
                        description=rule.description,
                        remediation=rule.remediation,
                        file_path=normalized,
                    )
                )
                break

    return DetectorResult(findings=findings, counts=SeverityCounts.from_findings(findings))
