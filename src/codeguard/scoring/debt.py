"""
AI debt score.

``score = 100 - 100 * (0.30 a + 0.30 (1 - r) + 0.20 f + 0.20 p)`` where ``a`` is
the AI lines-of-code ratio, ``r`` review coverage, ``f`` refactor backlog
growth and ``p`` prompt inconsistency, all in [0, 1]. The score is rounded
half-up and clamped to [0, 100].
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from ..models import RiskZone

WEIGHTS: Dict[str, float] = {
    "ai_loc_ratio": 0.30,
    "review_coverage": 0.30,
    "refactor_backlog_growth": 0.20,
    "prompt_inconsistency": 0.20,
}

HEALTHY_THRESHOLD = 80
CAUTION_THRESHOLD = 60


@dataclass(frozen=True)
class DebtScore:
    score: int
    risk_zone: RiskZone
    breakdown: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "risk_zone": self.risk_zone, "breakdown": self.breakdown}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def risk_zone(score: int) -> RiskZone:
    if score >= HEALTHY_THRESHOLD:
        return "healthy"
    if score >= CAUTION_THRESHOLD:
        return "caution"
    return "critical"


def calculate_debt_score(
    ai_loc_ratio: float,
    review_coverage: float,
    refactor_backlog_growth: float = 0.0,
    prompt_inconsistency: float = 0.0,
) -> DebtScore:
    penalty = 100 * (
        WEIGHTS["ai_loc_ratio"] * ai_loc_ratio
        + WEIGHTS["review_coverage"] * (1 - review_coverage)
        + WEIGHTS["refactor_backlog_growth"] * refactor_backlog_growth
        + WEIGHTS["prompt_inconsistency"] * prompt_inconsistency
    )
    score = max(0, min(100, round_half_up(100 - penalty)))
    breakdown: Dict[str, Any] = {
        "ai_loc_ratio": ai_loc_ratio,
        "review_coverage": review_coverage,
        "refactor_backlog_growth": refactor_backlog_growth,
        "prompt_inconsistency": prompt_inconsistency,
        "weights": dict(WEIGHTS),
    }
    return DebtScore(score=score, risk_zone=risk_zone(score), breakdown=breakdown)


def company_rollup(scores: Iterable[int], breakdown: Optional[Dict[str, Any]] = None) -> Optional[DebtScore]:
    """Rounded mean of the latest score of each repository; ``None`` when there are none."""
    values = list(scores)
    if not values:
        return None
    average = round_half_up(sum(values) / len(values))
    details = dict(breakdown or {})
    details["repositories"] = len(values)
    return DebtScore(score=average, risk_zone=risk_zone(average), breakdown=details)
