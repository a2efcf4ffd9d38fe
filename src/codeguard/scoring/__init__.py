from .debt import WEIGHTS, DebtScore, calculate_debt_score, company_rollup, risk_zone
from .team import (
    AttributedFile,
    ContributorProfile,
    TeamMetrics,
    adoption_score,
    attribute_contributors,
    derive_team_metrics,
    files_to_attribute,
    week_period,
)

__all__ = [
    "AttributedFile",
    "ContributorProfile",
    "DebtScore",
    "TeamMetrics",
    "WEIGHTS",
    "adoption_score",
    "attribute_contributors",
    "calculate_debt_score",
    "company_rollup",
    "derive_team_metrics",
    "files_to_attribute",
    "risk_zone",
    "week_period",
]
