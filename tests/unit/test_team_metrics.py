from __future__ import annotations

from datetime import date

from codeguard.scoring import (
    AttributedFile,
    ContributorProfile,
    adoption_score,
    attribute_contributors,
    derive_team_metrics,
    files_to_attribute,
    week_period,
)
from codeguard.sources import CommitAuthor

ALICE = CommitAuthor("alice", "Alice", "https://avatars/alice")
BOB = CommitAuthor("bob@example.com", "Bob")
CAROL = CommitAuthor("carol", "Carol")

FILES = [
    AttributedFile("src/a.py", ai_probability=0.9, ai_loc=90, total_loc=100),
    AttributedFile("src/b.py", ai_probability=0.8, ai_loc=40, total_loc=50),
    AttributedFile("src/c.py", ai_probability=0.2, ai_loc=4, total_loc=20),
]


def test_files_to_attribute_picks_largest_ai_files() -> None:
    picked = files_to_attribute(FILES, limit=1)
    assert [item.path for item in picked] == ["src/a.py"]
    assert [item.path for item in files_to_attribute(FILES, limit=20)] == ["src/a.py", "src/b.py"]


def test_last_committer_gets_direct_credit_and_the_rest_is_split_by_commits() -> None:
    profiles = attribute_contributors([ALICE, ALICE, BOB, ALICE], {"src/a.py": CAROL}, FILES)

    assert [(p.login, p.total_commits, p.ai_loc_attributed, p.total_loc_attributed) for p in profiles] == [
        ("alice", 3, 30, 53),
        ("bob@example.com", 1, 10, 18),
        ("carol", 0, 90, 100),
    ]
    assert profiles[0].avatar_url == "https://avatars/alice"


def test_no_recent_commits_means_no_profiles() -> None:
    assert attribute_contributors([], {"src/a.py": CAROL}, FILES) == []


def test_metrics_for_a_heavy_ai_newcomer() -> None:
    metrics = derive_team_metrics(ContributorProfile("carol", "Carol", total_commits=0, ai_loc_attributed=90, total_loc_attributed=100))

    assert metrics.ai_usage_level == "high"
    assert metrics.governance_score == 49
    assert metrics.risk_index == "high"
    assert metrics.review_quality == "weak"
    assert [item["type"] for item in metrics.coaching_suggestions] == ["ai_usage", "risk", "governance", "review_quality"]


def test_metrics_for_an_active_low_ai_contributor() -> None:
    metrics = derive_team_metrics(ContributorProfile("dan", "Dan", total_commits=12, ai_loc_attributed=10, total_loc_attributed=100))

    assert metrics.ai_usage_level == "low"
    assert metrics.governance_score == 86
    assert metrics.risk_index == "low"
    assert metrics.review_quality == "strong"
    assert metrics.coaching_suggestions == []


def test_metrics_for_moderate_usage() -> None:
    metrics = derive_team_metrics(ContributorProfile("eve", "Eve", total_commits=6, ai_loc_attributed=30, total_loc_attributed=100))

    assert (metrics.ai_usage_level, metrics.governance_score, metrics.risk_index, metrics.review_quality) == (
        "medium",
        73,
        "medium",
        "moderate",
    )
    assert metrics.coaching_suggestions == [
        {
            "type": "ai_usage",
            "priority": "medium",
            "message": "Moderate AI usage. Continue monitoring AI code quality and review coverage.",
        }
    ]


def test_zero_lines_counts_as_no_ai() -> None:
    assert derive_team_metrics(ContributorProfile("x", "X", total_commits=1)).ai_usage_level == "low"


def test_adoption_score() -> None:
    heavy = derive_team_metrics(ContributorProfile("a", "A", total_commits=3, ai_loc_attributed=30, total_loc_attributed=53))
    light = derive_team_metrics(ContributorProfile("d", "D", total_commits=12, ai_loc_attributed=10, total_loc_attributed=100))

    assert adoption_score([heavy, light], review_coverage=0.5) == 60
    assert adoption_score([], review_coverage=1.0) == 0


def test_week_period_runs_monday_to_sunday() -> None:
    assert week_period(date(2024, 5, 1)) == (date(2024, 4, 29), date(2024, 5, 5))
    assert week_period(date(2024, 5, 5)) == (date(2024, 4, 29), date(2024, 5, 5))
    assert week_period(date(2024, 4, 29)) == (date(2024, 4, 29), date(2024, 5, 5))
