from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import Finding
from ..rules import evaluate, load_ruleset


@dataclass
class EnhancementResult:
    suggestions: List[Finding] = field(default_factory=list)

    def count(self, impact: str) -> int:
        return sum(1 for suggestion in self.suggestions if suggestion.severity == impact)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_suggestions": len(self.suggestions),
            "high_impact": self.count("high"),
            "medium_impact": self.count("medium"),
            "low_impact": self.count("low"),
            "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
        }


def detect_enhancements(code: str, language: Optional[str], file_path: Optional[str] = None) -> EnhancementResult:
    """Improvement suggestions; ``Finding.severity`` carries the impact tier."""
    return EnhancementResult(suggestions=evaluate(code, language, load_ruleset("enhancements"), file_path=file_path))
