from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import Finding, SeverityCounts
from ..rules import evaluate, load_ruleset


@dataclass
class VulnerabilityResult:
    findings: List[Finding] = field(default_factory=list)
    counts: SeverityCounts = field(default_factory=SeverityCounts)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = self.counts.to_dict()
        data["findings"] = [finding.to_dict() for finding in self.findings]
        return data


def detect_vulnerabilities(code: str, language: Optional[str], file_path: Optional[str] = None) -> VulnerabilityResult:
    findings = evaluate(code, language, load_ruleset("vulnerabilities"), file_path=file_path)
    return VulnerabilityResult(findings=findings, counts=SeverityCounts.from_findings(findings))
