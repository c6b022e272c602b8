"""
Pull Request Velocity Metrics.

How fast pull requests move: time to merge, to first review and to first
approval, plus how many of the finished pull requests were merged.
"""

from typing import Dict

from analyzers.base import DAYS_DIGITS, MetricCalculator, average, days_between, rate
from miners.models import PullRequestState


class VelocityCalculator(MetricCalculator):
    METRIC_NAMES = {
        "avg_time_to_merge_days": "avg_time_to_merge_days",
        "total_merged": "total_merged_prs",
        "avg_time_to_first_review_days": "avg_time_to_first_review_days",
        "merge_rate": "merge_rate",
        "avg_time_to_approval_days": "avg_time_to_approval_days",
    }

    def calculate(self) -> Dict[str, float]:
        if not self.pull_requests:
            return {}

        merged = self.merged_prs
        closed_count = sum(
            1 for pr in self.pull_requests if pr.state == PullRequestState.CLOSED.value
        )

        return {
            "avg_time_to_merge_days": average(
                (days_between(pr.created_at, pr.merged_at) for pr in merged if pr.merged_at),
                DAYS_DIGITS,
            ),
            "total_merged": len(merged),
            "avg_time_to_first_review_days": self._avg_time_to_first_review(),
            "merge_rate": rate(len(merged), len(merged) + closed_count),
            "avg_time_to_approval_days": self._avg_time_to_approval(),
        }

    def _avg_time_to_first_review(self) -> float:
        return average(
            (
                days_between(
                    pr.created_at, min(review.created_at for review in pr.reviews)
                )
                for pr in self.pull_requests
                if pr.reviews
            ),
            DAYS_DIGITS,
        )

    def _avg_time_to_approval(self) -> float:
        return average(
            (
                days_between(
                    pr.created_at, min(review.created_at for review in pr.approvals)
                )
                for pr in self.pull_requests
                if pr.approvals
            ),
            DAYS_DIGITS,
        )
