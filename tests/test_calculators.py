"""
Tests for the scalar metric calculators and the per-category row assembly.
"""

from datetime import timedelta

import pytest

from analyzers.activity import (
    CommitActivityCalculator,
    ContributorActivityCalculator,
    RepositoryActivityCalculator,
)
from analyzers.collaboration import CollaborationCalculator
from analyzers.github_calculator import GitHubMetricsCalculator
from analyzers.pr_size import PRSizeCalculator
from analyzers.quality import QualityCalculator
from analyzers.velocity import VelocityCalculator
from conftest import TODAY, build_last_commit, build_pr, build_release, build_review, utc

CREATED = utc(2024, 3, 1, 9)


@pytest.mark.parametrize(
    "calculator",
    [
        VelocityCalculator,
        CollaborationCalculator,
        PRSizeCalculator,
        RepositoryActivityCalculator,
        ContributorActivityCalculator,
        CommitActivityCalculator,
    ],
)
def test_empty_input_yields_nothing(calculator):
    """Calculators return no metrics and no rows for no pull requests."""
    instance = calculator([], TODAY)
    assert instance.calculate() == {}
    assert instance.to_rows() == []


def test_quality_without_pull_requests_yields_nothing():
    """Releases alone do not produce quality metrics."""
    calculator = QualityCalculator([], [build_release(utc(2024, 3, 10))], TODAY)
    assert calculator.calculate() == {}


def test_time_to_first_review_is_averaged_in_days():
    """Reviews 2h and 6h after creation average to 4h, 0.1667 days."""
    prs = [
        build_pr(
            created_at=CREATED,
            reviews=[build_review("COMMENTED", CREATED + timedelta(hours=2))],
        ),
        build_pr(
            created_at=CREATED,
            reviews=[
                build_review("APPROVED", CREATED + timedelta(hours=9)),
                build_review("COMMENTED", CREATED + timedelta(hours=6)),
            ],
        ),
        build_pr(created_at=CREATED, reviews=[]),
    ]

    metrics = VelocityCalculator(prs, TODAY).calculate()

    assert metrics["avg_time_to_first_review_days"] == 0.1667
    assert metrics["avg_time_to_approval_days"] == 0.375


def test_velocity_merge_metrics():
    """Merge time covers merged pull requests, merge rate excludes open ones."""
    prs = [
        build_pr(created_at=CREATED, merged_at=CREATED + timedelta(days=1)),
        build_pr(created_at=CREATED, merged_at=CREATED + timedelta(days=2)),
        build_pr(state="MERGED", merged_at=None),
        build_pr(state="CLOSED", merged_at=None),
        build_pr(state="OPEN", merged_at=None),
    ]

    metrics = VelocityCalculator(prs, TODAY).calculate()

    assert metrics["avg_time_to_merge_days"] == 1.5
    assert metrics["total_merged"] == 3
    assert metrics["merge_rate"] == 75.0
    assert metrics["avg_time_to_first_review_days"] == 0.0


def test_velocity_durations_are_not_clamped():
    """A merge stamped before creation yields a negative duration."""
    prs = [build_pr(created_at=CREATED, merged_at=CREATED - timedelta(hours=12))]
    assert VelocityCalculator(prs, TODAY).calculate()["avg_time_to_merge_days"] == -0.5


def test_velocity_rows_use_output_names():
    """Rows carry the collection date and renamed metrics."""
    rows = VelocityCalculator([build_pr()], TODAY).to_rows("github:Platform")

    assert {row.metric for row in rows} == {
        "avg_time_to_merge_days",
        "total_merged_prs",
        "avg_time_to_first_review_days",
        "merge_rate",
        "avg_time_to_approval_days",
    }
    assert {row.date for row in rows} == {"2024-03-15"}
    assert {row.category for row in rows} == {"github:Platform"}


def test_collaboration():
    """Review, comment and rework averages with the unreviewed share."""
    prs = [
        build_pr(
            review_count=3,
            comment_count=4,
            reviews=[
                build_review("CHANGES_REQUESTED", CREATED),
                build_review("CHANGES_REQUESTED", CREATED),
                build_review("APPROVED", CREATED),
            ],
        ),
        build_pr(review_count=0, comment_count=1),
        build_pr(review_count=0, comment_count=0),
    ]

    assert CollaborationCalculator(prs, TODAY).calculate() == {
        "avg_reviews_per_pr": 1.0,
        "avg_comments_per_pr": 1.67,
        "avg_rework_cycles": 0.67,
        "unreviewed_pr_rate": 66.67,
    }


def test_pr_size():
    """Size averages are rounded to two decimals."""
    prs = [
        build_pr(additions=10, deletions=1, changed_files=1, commit_count=1),
        build_pr(additions=25, deletions=4, changed_files=2, commit_count=4),
    ]

    rows = PRSizeCalculator(prs, TODAY).to_rows()

    assert {row.metric: row.value for row in rows} == {
        "avg_additions_per_pr": 17.5,
        "avg_deletions_per_pr": 2.5,
        "avg_changed_files_per_pr": 1.5,
        "avg_commits_per_pr": 2.5,
    }


def test_ci_success_rate_counts_merged_pull_requests():
    """Two merged pull requests, one green: 50 percent."""
    prs = [
        build_pr(last_commit=build_last_commit("SUCCESS")),
        build_pr(last_commit=build_last_commit("FAILURE")),
        build_pr(state="OPEN", merged_at=None, last_commit=build_last_commit("SUCCESS")),
    ]

    assert QualityCalculator(prs, [], TODAY).calculate()["ci_success_rate"] == 50.0


def test_deploy_frequency_and_hotfix_rate():
    """Three releases over fourteen days: 1.5 per week, 0.21 per day."""
    releases = [
        build_release(utc(2024, 3, 1, 10), name="v1"),
        build_release(utc(2024, 3, 7), name="v1.0.1 hotfix"),
        build_release(utc(2024, 3, 14), name="v1.1"),
    ]

    metrics = QualityCalculator([build_pr()], releases, TODAY).calculate()

    assert metrics["deploy_frequency_weekly"] == 1.5
    assert metrics["deploy_frequency_daily"] == 0.21
    assert metrics["hotfix_rate"] == 33.33


def test_deploy_frequency_floors_the_period():
    """Releases within the last week are not scaled up."""
    releases = [build_release(utc(2024, 3, 14)), build_release(utc(2024, 3, 15))]

    metrics = QualityCalculator([build_pr()], releases, TODAY).calculate()

    assert metrics["deploy_frequency_weekly"] == 2.0
    assert metrics["deploy_frequency_daily"] == 2.0


def test_no_releases():
    """Without releases cadence and hotfix metrics are zero."""
    metrics = QualityCalculator([build_pr()], [], TODAY).calculate()

    assert metrics["deploy_frequency_weekly"] == 0.0
    assert metrics["deploy_frequency_daily"] == 0.0
    assert metrics["hotfix_rate"] == 0.0


def test_time_to_green_uses_latest_successful_suite():
    """Hours from the head commit to its newest successful suite."""
    committed = utc(2024, 3, 1, 10)
    prs = [
        build_pr(
            last_commit=build_last_commit(
                committed_date=committed,
                suites=[
                    ("SUCCESS", committed + timedelta(hours=1)),
                    ("SUCCESS", committed + timedelta(hours=3)),
                    ("FAILURE", committed + timedelta(hours=5)),
                ],
            )
        ),
        build_pr(
            last_commit=build_last_commit(
                committed_date=committed,
                suites=[("SUCCESS", committed + timedelta(minutes=30))],
            )
        ),
        build_pr(last_commit=build_last_commit(committed_date=committed, suites=[])),
    ]

    assert QualityCalculator(prs, [], TODAY).calculate()["time_to_green_hours"] == 1.75


def test_repository_and_contributor_activity():
    """Pull requests are counted per creation date and repository or author."""
    prs = [
        build_pr(created_at=utc(2024, 3, 1, 9), repository="api", author="alice"),
        build_pr(created_at=utc(2024, 3, 1, 17), repository="api", author="bob"),
        build_pr(created_at=utc(2024, 3, 2, 9), repository="web", author="alice"),
    ]

    repo_rows = RepositoryActivityCalculator(prs, TODAY).to_rows()
    contributor = ContributorActivityCalculator(prs, TODAY).calculate()

    assert sorted(repo_rows) == [
        ("2024-03-01", "github_repo_activity", "api", 2),
        ("2024-03-02", "github_repo_activity", "web", 1),
    ]
    assert contributor == {
        ("2024-03-01", "alice"): 1,
        ("2024-03-01", "bob"): 1,
        ("2024-03-02", "alice"): 1,
    }


def test_commit_activity_counts_weekday_from_sunday():
    """2024-03-03 is a Sunday (0) and 2024-03-04 a Monday (1)."""
    prs = [
        build_pr(commit_dates=[utc(2024, 3, 3, 14), utc(2024, 3, 3, 14, 45)]),
        build_pr(commit_dates=[utc(2024, 3, 4, 9)]),
    ]

    calculator = CommitActivityCalculator(prs, TODAY)

    assert calculator.calculate() == {(0, 14): 2, (1, 9): 1}
    assert sorted(calculator.to_rows("github:Platform")) == [
        ("2024-03-15", "github:Platform_commit_activity", "0_14", 2),
        ("2024-03-15", "github:Platform_commit_activity", "1_9", 1),
    ]


def test_calculate_all_covers_every_family():
    """Scalar families come first, then daily and activity families."""
    prs = [
        build_pr(
            commit_dates=[utc(2024, 3, 1, 8)],
            last_commit=build_last_commit("SUCCESS"),
        )
    ]
    releases = [build_release(utc(2024, 3, 1, 12))]

    rows = GitHubMetricsCalculator(prs, releases, TODAY).calculate_all()

    categories = []
    for row in rows:
        if row.category not in categories:
            categories.append(row.category)
    assert categories == [
        "github",
        "github_daily",
        "github_repo_activity",
        "github_contributor_activity",
        "github_commit_activity",
    ]
    metrics = {row.metric: row.value for row in rows if row.category == "github"}
    assert metrics["total_merged_prs"] == 1
    assert metrics["ci_success_rate"] == 100.0


def test_calculate_all_without_pull_requests_keeps_release_days():
    """Only daily release rows remain when no pull request was collected."""
    rows = GitHubMetricsCalculator([], [build_release(utc(2024, 3, 5))], TODAY).calculate_all()

    assert rows
    assert {row.category for row in rows} == {"github_daily"}
    assert {row.date for row in rows} == {"2024-03-05"}
