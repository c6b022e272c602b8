"""
Delivery Quality Metrics.

Combines CI outcomes of merged pull requests with the release cadence:

- ci_success_rate: share of merged pull requests whose head commit rolled up to SUCCESS
- deploy_frequency_weekly / deploy_frequency_daily: releases per elapsed week / day
  since the earliest release, with the denominator floored to 1
- hotfix_rate: share of releases whose name or tag mentions "hotfix"
- time_to_green_hours: mean time from the head commit to its latest successful check suite
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from analyzers.base import MetricCalculator, average, hours_between, rate
from miners.models import PullRequestRecord, ReleaseRecord


class QualityCalculator(MetricCalculator):
    def __init__(
        self,
        pull_requests: Iterable[PullRequestRecord],
        releases: Iterable[ReleaseRecord],
        today: Optional[date] = None,
    ):
        super().__init__(pull_requests, today)
        self.releases = list(releases)

    def calculate(self) -> Dict[str, float]:
        if not self.pull_requests:
            return {}

        return {
            "ci_success_rate": self._ci_success_rate(),
            "deploy_frequency_weekly": self._deploy_frequency(days_per_period=7),
            "deploy_frequency_daily": self._deploy_frequency(days_per_period=1),
            "hotfix_rate": rate(
                sum(1 for release in self.releases if release.is_hotfix),
                len(self.releases),
            ),
            "time_to_green_hours": average(self._times_to_green()),
        }

    def _ci_success_rate(self) -> float:
        merged = self.merged_prs
        successful = sum(
            1
            for pr in merged
            if pr.last_commit is not None and pr.last_commit.ci_state == "SUCCESS"
        )
        return rate(successful, len(merged))

    def _release_span_days(self) -> int:
        first = min(release.created_at.date() for release in self.releases)
        return (self.today - first).days

    def _deploy_frequency(self, days_per_period: int) -> float:
        if not self.releases:
            return 0.0
        periods = max(self._release_span_days() / days_per_period, 1.0)
        return round(len(self.releases) / periods, 2)

    def _times_to_green(self) -> List[float]:
        times = []
        for pr in self.merged_prs:
            commit = pr.last_commit
            if commit is None or commit.committed_date is None:
                continue
            suite = commit.latest_successful_suite()
            if suite is None:
                continue
            times.append(hours_between(commit.committed_date, suite.updated_at))
        return times
