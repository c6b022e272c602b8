"""
Review collaboration metrics: review and comment volume, rework, unreviewed share.
"""

from typing import Dict

from analyzers.base import MetricCalculator, average, rate


class CollaborationCalculator(MetricCalculator):
    def calculate(self) -> Dict[str, float]:
        if not self.pull_requests:
            return {}

        count = len(self.pull_requests)
        unreviewed = sum(1 for pr in self.pull_requests if pr.review_count == 0)

        return {
            "avg_reviews_per_pr": average(pr.review_count for pr in self.pull_requests),
            "avg_comments_per_pr": average(pr.comment_count for pr in self.pull_requests),
            # Each CHANGES_REQUESTED review counts as one rework cycle
            "avg_rework_cycles": average(
                pr.changes_requested_count for pr in self.pull_requests
            ),
            "unreviewed_pr_rate": rate(unreviewed, count),
        }
