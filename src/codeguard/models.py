from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Optional

RiskTier = Literal["low", "medium", "high"]
RiskZone = Literal["healthy", "caution", "critical"]
QualityGrade = Literal["A", "B", "C", "D", "F"]


@dataclass(frozen=True)
class Finding:
    """One rule hit. Severity holds the tier of the catalog that produced it
    (critical/high/medium/low, error/warning/info, or impact high/medium/low)."""

    rule_id: str
    severity: str
    category: str
    title: str
    description: str
    remediation: str
    file_path: Optional[str] = None
    line: Optional[int] = None
    matched_text: Optional[str] = None
    cwe: Optional[str] = None
    link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class SeverityCounts:
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def add(self, severity: str, amount: int = 1) -> None:
        if severity in ("critical", "high", "medium", "low"):
            setattr(self, severity, getattr(self, severity) + amount)

    def merge(self, other: "SeverityCounts") -> None:
        self.critical += other.critical
        self.high += other.high
        self.medium += other.medium
        self.low += other.low

    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    def to_dict(self) -> Dict[str, int]:
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "total": self.total(),
        }

    @classmethod
    def from_findings(cls, findings: Iterable[Finding]) -> "SeverityCounts":
        counts = cls()
        for finding in findings:
            counts.add(finding.severity)
        return counts


@dataclass
class DetectorResult:
    """Findings of a whole-tree detector plus its per-severity tally."""

    findings: List[Finding] = field(default_factory=list)
    counts: SeverityCounts = field(default_factory=SeverityCounts)
    scanned: bool = True

    def to_summary(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {"scanned": self.scanned}
        summary.update(self.counts.to_dict())
        return summary
