from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants import GRADE_ORDER
from ..models import Finding, QualityGrade
from ..rules import evaluate, load_ruleset
from .complexity import cyclomatic_complexity, max_function_length, max_nesting_depth

COMPLEXITY_THRESHOLD = 30
FUNCTION_LENGTH_THRESHOLD = 50
NESTING_THRESHOLD = 5


@dataclass
class CodeQualityResult:
    grade: QualityGrade
    findings: List[Finding] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    cyclomatic_complexity: int = 1
    max_function_length: int = 0
    max_nesting_depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quality_grade": self.grade,
            "total_findings": len(self.findings),
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "cyclomatic_complexity": self.cyclomatic_complexity,
            "max_function_length": self.max_function_length,
            "max_nesting_depth": self.max_nesting_depth,
            "findings": [finding.to_dict() for finding in self.findings],
        }


def calculate_grade(errors: int, warnings: int, complexity: int, function_length: int) -> QualityGrade:
    penalty = errors * 10 + warnings * 3

    if complexity > 50:
        penalty += 15
    elif complexity > 30:
        penalty += 8
    elif complexity > 20:
        penalty += 3

    if function_length > 100:
        penalty += 10
    elif function_length > 50:
        penalty += 5

    if penalty == 0:
        return "A"
    if penalty <= 10:
        return "B"
    if penalty <= 25:
        return "C"
    if penalty <= 50:
        return "D"
    return "F"


def worse_grade(current: Optional[str], candidate: str) -> str:
    """Return whichever of the two grades is lower (F is worst)."""
    if current is None:
        return candidate
    return candidate if GRADE_ORDER.index(candidate) > GRADE_ORDER.index(current) else current


def _complexity_finding(rule_id: str, title: str, description: str, remediation: str) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity="warning",
        category="complexity",
        title=title,
        description=description,
        remediation=remediation,
    )


def detect_code_quality(code: str, language: Optional[str], file_path: Optional[str] = None) -> CodeQualityResult:
    findings = evaluate(code, language, load_ruleset("code_quality"), file_path=file_path)

    complexity = cyclomatic_complexity(code)
    function_length = max_function_length(code)
    nesting = max_nesting_depth(code)

    if complexity > COMPLEXITY_THRESHOLD:
        findings.append(
            _complexity_finding(
                "CQ-COMPLEXITY",
                "High Cyclomatic Complexity",
                f"File has cyclomatic complexity of {complexity}. Highly complex code is harder to test and maintain.",
                "Break complex logic into smaller functions with single responsibilities.",
            )
        )
    if function_length > FUNCTION_LENGTH_THRESHOLD:
        findings.append(
            _complexity_finding(
                "CQ-FUNC-LENGTH",
                "Long Function Detected",
                f"A function in this file spans ~{function_length} lines.",
                "Extract logical sections into smaller helper functions.",
            )
        )
    if nesting > NESTING_THRESHOLD:
        findings.append(
            _complexity_finding(
                "CQ-NESTING",
                "Deep Nesting Detected",
                f"Code has a nesting depth of {nesting}.",
                "Use early returns, guard clauses, or extract nested blocks into functions.",
            )
        )

    errors = sum(1 for finding in findings if finding.severity == "error")
    warnings = sum(1 for finding in findings if finding.severity == "warning")
    infos = sum(1 for finding in findings if finding.severity == "info")

    return CodeQualityResult(
        grade=calculate_grade(errors, warnings, complexity, function_length),
        findings=findings,
        error_count=errors,
        warning_count=warnings,
        info_count=infos,
        cyclomatic_complexity=complexity,
        max_function_length=function_length,
        max_nesting_depth=nesting,
    )
