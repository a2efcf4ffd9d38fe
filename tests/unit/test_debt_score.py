from __future__ import annotations

import pytest

from codeguard.scoring import WEIGHTS, calculate_debt_score, company_rollup, risk_zone
from codeguard.scoring.debt import round_half_up


def test_half_ai_half_reviewed_is_caution() -> None:
    debt = calculate_debt_score(0.5, 0.5, 0, 0)
    assert debt.score == 70
    assert debt.risk_zone == "caution"


def test_best_and_worst_case_are_clamped() -> None:
    assert calculate_debt_score(0.0, 1.0).score == 100
    assert calculate_debt_score(1.0, 0.0, 1.0, 1.0).score == 0
    assert calculate_debt_score(1.0, 0.0, 1.0, 1.0).risk_zone == "critical"


def test_breakdown_carries_inputs_and_weights() -> None:
    debt = calculate_debt_score(0.25, 0.5, 0.1, 0.0)
    assert debt.breakdown["ai_loc_ratio"] == 0.25
    assert debt.breakdown["weights"] == WEIGHTS
    assert debt.to_dict()["score"] == debt.score


@pytest.mark.parametrize("score,zone", [(100, "healthy"), (80, "healthy"), (79, "caution"), (60, "caution"), (59, "critical")])
def test_risk_zones(score: int, zone: str) -> None:
    assert risk_zone(score) == zone


def test_rounding_is_half_up() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_company_rollup_is_rounded_mean() -> None:
    rollup = company_rollup([70, 85, 90], breakdown={"ai_loc_ratio": 0.1})
    assert rollup.score == 82
    assert rollup.risk_zone == "healthy"
    assert rollup.breakdown["repositories"] == 3
    assert rollup.breakdown["ai_loc_ratio"] == 0.1


def test_company_rollup_of_nothing_is_none() -> None:
    assert company_rollup([]) is None
