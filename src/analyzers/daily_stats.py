"""
Daily Statistics Aggregation Module.

Folds pull requests and releases, one at a time, into per-date buckets keyed
by creation date. Each bucket holds one accumulator per metric family:

- PullRequestActivity: created/merged/closed/open counts and merge duration
- ReviewActivity: reviews, comments, rework cycles, time to first review and approval
- CodeChurn: additions and deletions
- CIActivity: successful rollups and time to green
- ReleaseActivity: releases and hotfixes

Accumulators change only through ``record`` and are read through ``metrics``,
so finalizing a bucket never revisits the raw input.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Union

from analyzers.base import (
    DAYS_DIGITS,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    rate,
)
from analyzers.models import DEFAULT_CATEGORY, MetricRow
from miners.models import PullRequestRecord, PullRequestState, ReleaseRecord

DAILY_CATEGORY_SUFFIX = "_daily"


def _mean(total: float, count: int, divisor: float = 1.0, digits: int = 2) -> float:
    if count <= 0:
        return 0.0
    return round(total / count / divisor, digits)


@dataclass
class PullRequestActivity:
    created: int = 0
    merged: int = 0
    closed: int = 0
    open: int = 0
    merge_seconds: float = 0.0
    timed_merges: int = 0

    def record(self, pr: PullRequestRecord) -> None:
        self.created += 1
        if pr.state == PullRequestState.MERGED.value:
            self.merged += 1
            if pr.merged_at is not None:
                self.merge_seconds += (pr.merged_at - pr.created_at).total_seconds()
                self.timed_merges += 1
        elif pr.state == PullRequestState.CLOSED.value:
            self.closed += 1
        elif pr.state == PullRequestState.OPEN.value:
            self.open += 1

    def merge_rate(self) -> float:
        return rate(self.merged, self.merged + self.closed)

    def metrics(self) -> Dict[str, float]:
        return {
            "created": self.created,
            "merged": self.merged,
            "closed": self.closed,
            "open": self.open,
            "avg_time_to_merge_hours": _mean(
                self.merge_seconds, self.timed_merges, SECONDS_PER_HOUR
            ),
        }


@dataclass
class ReviewActivity:
    pull_requests: int = 0
    reviews: int = 0
    comments: int = 0
    rework_cycles: int = 0
    first_review_seconds: float = 0.0
    reviewed: int = 0
    approval_seconds: float = 0.0
    approved: int = 0
    zero_review: int = 0

    def record(self, pr: PullRequestRecord) -> None:
        self.pull_requests += 1
        self.reviews += pr.review_count
        self.comments += pr.comment_count
        self.rework_cycles += pr.changes_requested_count

        if not pr.reviews:
            self.zero_review += 1
            return

        first_review = min(review.created_at for review in pr.reviews)
        self.first_review_seconds += (first_review - pr.created_at).total_seconds()
        self.reviewed += 1

        if pr.approvals:
            first_approval = min(review.created_at for review in pr.approvals)
            self.approval_seconds += (first_approval - pr.created_at).total_seconds()
            self.approved += 1

    def metrics(self) -> Dict[str, float]:
        return {
            "avg_reviews_per_pr": _mean(self.reviews, self.pull_requests),
            "avg_comments_per_pr": _mean(self.comments, self.pull_requests),
            "avg_rework_cycles": _mean(self.rework_cycles, self.pull_requests),
            "avg_time_to_first_review_days": _mean(
                self.first_review_seconds, self.reviewed, SECONDS_PER_DAY, DAYS_DIGITS
            ),
            "avg_time_to_approval_days": _mean(
                self.approval_seconds, self.approved, SECONDS_PER_DAY, DAYS_DIGITS
            ),
            "unreviewed_pr_rate": rate(self.zero_review, self.pull_requests),
        }


@dataclass
class CodeChurn:
    pull_requests: int = 0
    additions: int = 0
    deletions: int = 0

    def record(self, pr: PullRequestRecord) -> None:
        self.pull_requests += 1
        self.additions += pr.additions
        self.deletions += pr.deletions

    def metrics(self) -> Dict[str, float]:
        return {
            "avg_additions_per_pr": _mean(self.additions, self.pull_requests),
            "avg_deletions_per_pr": _mean(self.deletions, self.pull_requests),
        }


@dataclass
class CIActivity:
    pull_requests: int = 0
    successes: int = 0
    green_seconds: float = 0.0
    greened: int = 0

    def record(self, pr: PullRequestRecord) -> None:
        self.pull_requests += 1
        commit = pr.last_commit
        if commit is None:
            return

        if commit.ci_state == "SUCCESS":
            self.successes += 1

        if not pr.is_merged or commit.committed_date is None:
            return
        suite = commit.latest_successful_suite()
        if suite is None:
            return
        self.green_seconds += (suite.updated_at - commit.committed_date).total_seconds()
        self.greened += 1

    def metrics(self) -> Dict[str, float]:
        return {
            "ci_success_rate": rate(self.successes, self.pull_requests),
            "avg_time_to_green_hours": _mean(
                self.green_seconds, self.greened, SECONDS_PER_HOUR
            ),
        }


@dataclass
class ReleaseActivity:
    releases: int = 0
    hotfixes: int = 0

    def record(self, release: ReleaseRecord) -> None:
        self.releases += 1
        if release.is_hotfix:
            self.hotfixes += 1

    def metrics(self) -> Dict[str, float]:
        return {
            "releases_count": self.releases,
            "hotfix_count": self.hotfixes,
            "hotfix_rate": rate(self.hotfixes, self.releases),
            "deploy_frequency_daily": self.releases,
        }


@dataclass
class DailyStats:
    """All accumulators of one calendar date."""

    pr_activity: PullRequestActivity = field(default_factory=PullRequestActivity)
    reviews: ReviewActivity = field(default_factory=ReviewActivity)
    code: CodeChurn = field(default_factory=CodeChurn)
    ci: CIActivity = field(default_factory=CIActivity)
    releases: ReleaseActivity = field(default_factory=ReleaseActivity)

    def record_pull_request(self, pr: PullRequestRecord) -> None:
        self.pr_activity.record(pr)
        self.reviews.record(pr)
        self.code.record(pr)
        self.ci.record(pr)

    def record_release(self, release: ReleaseRecord) -> None:
        self.releases.record(release)

    def metrics(self) -> Dict[str, float]:
        return {
            **self.pr_activity.metrics(),
            **self.reviews.metrics(),
            **self.code.metrics(),
            **self.ci.metrics(),
            **self.releases.metrics(),
            "merge_rate": self.pr_activity.merge_rate(),
        }


class DailyStatsAggregator:
    """
    Streaming per-date accumulator.

    Buckets are created lazily on the first record of their date; ``to_rows``
    is a pure read of the accumulated totals.
    """

    def __init__(self):
        self._buckets: Dict[str, DailyStats] = {}

    @classmethod
    def from_records(
        cls,
        pull_requests: Iterable[PullRequestRecord],
        releases: Iterable[ReleaseRecord] = (),
    ) -> "DailyStatsAggregator":
        aggregator = cls()
        for pr in pull_requests:
            aggregator.record(pr)
        for release in releases:
            aggregator.record(release)
        return aggregator

    @property
    def dates(self) -> List[str]:
        return sorted(self._buckets)

    def bucket(self, day: str) -> DailyStats:
        if day not in self._buckets:
            self._buckets[day] = DailyStats()
        return self._buckets[day]

    def record(self, item: Union[PullRequestRecord, ReleaseRecord]) -> None:
        """Fold one pull request or release into the bucket of its creation date."""
        if isinstance(item, PullRequestRecord):
            self.bucket(item.created_date).record_pull_request(item)
        elif isinstance(item, ReleaseRecord):
            self.bucket(item.created_date).record_release(item)
        else:
            raise TypeError(f"Cannot aggregate {type(item).__name__}")

    def calculate(self) -> Dict[str, Dict[str, float]]:
        return {day: self._buckets[day].metrics() for day in self.dates}

    def to_rows(self, category: str = DEFAULT_CATEGORY) -> List[MetricRow]:
        daily_category = f"{category}{DAILY_CATEGORY_SUFFIX}"
        return [
            MetricRow(day, daily_category, metric, value)
            for day, metrics in self.calculate().items()
            for metric, value in metrics.items()
        ]
