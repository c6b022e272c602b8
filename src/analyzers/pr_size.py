from typing import Dict

from analyzers.base import MetricCalculator, average


class PRSizeCalculator(MetricCalculator):
    """Average size of pull requests in lines, files and commits."""

    METRIC_NAMES = {
        "avg_additions": "avg_additions_per_pr",
        "avg_deletions": "avg_deletions_per_pr",
        "avg_changed_files": "avg_changed_files_per_pr",
        "avg_commits": "avg_commits_per_pr",
    }

    def calculate(self) -> Dict[str, float]:
        if not self.pull_requests:
            return {}

        return {
            "avg_additions": average(pr.additions for pr in self.pull_requests),
            "avg_deletions": average(pr.deletions for pr in self.pull_requests),
            "avg_changed_files": average(pr.changed_files for pr in self.pull_requests),
            "avg_commits": average(pr.commit_count for pr in self.pull_requests),
        }
