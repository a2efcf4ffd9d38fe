"""
Per-contributor AI adoption.

Files with a high AI probability are credited to their last committer;
lines in every other file are split across contributors by their share of
recent commits. Each contributor then gets a usage level, a governance
score, a risk index, a review-quality guess and coaching suggestions.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..sources import CommitAuthor
from .debt import round_half_up

AI_FILE_THRESHOLD = 0.5

HIGH_USAGE_RATIO = 0.5
MEDIUM_USAGE_RATIO = 0.2
BASE_GOVERNANCE = 85
ACTIVE_COMMITS = 10
MODERATE_COMMITS = 5


@dataclass(frozen=True)
class AttributedFile:
    path: str
    ai_probability: float
    ai_loc: int
    total_loc: int

    @property
    def is_ai_file(self) -> bool:
        return self.ai_probability > AI_FILE_THRESHOLD


@dataclass
class ContributorProfile:
    login: str
    display_name: str
    avatar_url: Optional[str] = None
    total_commits: int = 0
    ai_loc_attributed: int = 0
    total_loc_attributed: int = 0

    @property
    def ai_ratio(self) -> float:
        if self.total_loc_attributed <= 0:
            return 0.0
        return self.ai_loc_attributed / self.total_loc_attributed


@dataclass(frozen=True)
class TeamMetrics:
    ai_usage_level: str
    governance_score: int
    risk_index: str
    review_quality: str
    coaching_suggestions: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def files_to_attribute(files: Iterable[AttributedFile], limit: int) -> List[AttributedFile]:
    """AI files that carry AI lines, most AI lines first, at most ``limit`` of them."""
    candidates = [item for item in files if item.is_ai_file and item.ai_loc > 0]
    candidates.sort(key=lambda item: item.ai_loc, reverse=True)
    return candidates[:limit]


def attribute_contributors(
    commits: Sequence[CommitAuthor],
    file_authors: Mapping[str, CommitAuthor],
    files: Sequence[AttributedFile],
) -> List[ContributorProfile]:
    """
    Build one profile per contributor, most commits first.

    ``commits`` holds one author per recent commit. ``file_authors`` maps a
    path to its last committer; those files are credited in full, the rest
    proportionally to commit share. No recent commits means no profiles.
    """
    profiles: Dict[str, ContributorProfile] = {}
    for author in commits:
        profile = profiles.setdefault(
            author.login, ContributorProfile(author.login, author.display_name, author.avatar_url)
        )
        profile.total_commits += 1
    if not profiles:
        return []

    for author in file_authors.values():
        profiles.setdefault(author.login, ContributorProfile(author.login, author.display_name, author.avatar_url))

    unattributed = [item for item in files if item.path not in file_authors]
    unattributed_ai_loc = sum(item.ai_loc for item in unattributed if item.is_ai_file)
    unattributed_total_loc = sum(item.total_loc for item in unattributed)
    total_commits = sum(profile.total_commits for profile in profiles.values())

    by_path = {item.path: item for item in files}
    for path, author in file_authors.items():
        item = by_path.get(path)
        if item is None:
            continue
        profiles[author.login].ai_loc_attributed += item.ai_loc
        profiles[author.login].total_loc_attributed += item.total_loc

    for profile in profiles.values():
        share = profile.total_commits / total_commits if total_commits else 0.0
        profile.ai_loc_attributed += round_half_up(unattributed_ai_loc * share)
        profile.total_loc_attributed += round_half_up(unattributed_total_loc * share)

    return sorted(profiles.values(), key=lambda profile: profile.total_commits, reverse=True)


def derive_team_metrics(profile: ContributorProfile) -> TeamMetrics:
    ratio = profile.ai_ratio
    if ratio > HIGH_USAGE_RATIO:
        usage = "high"
    elif ratio > MEDIUM_USAGE_RATIO:
        usage = "medium"
    else:
        usage = "low"

    bonus = 5 if profile.total_commits > ACTIVE_COMMITS else 0
    governance = max(0, min(100, round_half_up(BASE_GOVERNANCE - ratio * 40 + bonus)))

    if governance >= 75:
        risk = "low"
    elif governance >= 50:
        risk = "medium"
    else:
        risk = "high"

    if profile.total_commits >= ACTIVE_COMMITS and ratio < 0.3:
        review = "strong"
    elif profile.total_commits >= MODERATE_COMMITS:
        review = "moderate"
    else:
        review = "weak"

    coaching: List[Dict[str, str]] = []
    if usage == "high":
        coaching.append(
            {
                "type": "ai_usage",
                "priority": "high",
                "message": "High AI code usage detected. Ensure thorough code reviews for all AI-generated contributions.",
            }
        )
    if risk == "high":
        coaching.append(
            {
                "type": "risk",
                "priority": "high",
                "message": "High risk index. Increase test coverage for AI-generated code and follow review guidelines.",
            }
        )
    if governance < 60:
        coaching.append(
            {
                "type": "governance",
                "priority": "high",
                "message": "Low governance score. Align with team coding standards and request peer reviews before merging.",
            }
        )
    if usage == "medium":
        coaching.append(
            {
                "type": "ai_usage",
                "priority": "medium",
                "message": "Moderate AI usage. Continue monitoring AI code quality and review coverage.",
            }
        )
    if review == "weak" and profile.total_commits < MODERATE_COMMITS:
        coaching.append(
            {
                "type": "review_quality",
                "priority": "low",
                "message": "Limited commit activity. Increase contributions and participate in code reviews.",
            }
        )

    return TeamMetrics(
        ai_usage_level=usage,
        governance_score=governance,
        risk_index=risk,
        review_quality=review,
        coaching_suggestions=coaching,
    )


def adoption_score(metrics: Sequence[TeamMetrics], review_coverage: float) -> int:
    """``30 * adoption rate + 40 * mean governance / 100 + 30 * review coverage``, clamped to [0, 100]."""
    if not metrics:
        return 0
    using_ai = sum(1 for item in metrics if item.ai_usage_level != "low")
    governance = sum(item.governance_score for item in metrics) / len(metrics)
    score = round_half_up(using_ai / len(metrics) * 30 + governance / 100 * 40 + review_coverage * 30)
    return max(0, min(100, score))


def week_period(today: date) -> Tuple[date, date]:
    """Monday and Sunday of the week containing ``today``."""
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)
