"""
GitHub Metrics Calculation Module.

Runs every calculator family over one reconciled pull request and release set
and concatenates their rows under a single category namespace.
"""

from datetime import date
from typing import Iterable, List, Optional

from analyzers.activity import (
    CommitActivityCalculator,
    ContributorActivityCalculator,
    RepositoryActivityCalculator,
)
from analyzers.base import utc_today
from analyzers.collaboration import CollaborationCalculator
from analyzers.daily_stats import DailyStatsAggregator
from analyzers.models import DEFAULT_CATEGORY, MetricRow
from analyzers.pr_size import PRSizeCalculator
from analyzers.quality import QualityCalculator
from analyzers.velocity import VelocityCalculator
from config import logger
from miners.models import PullRequestRecord, ReleaseRecord


class GitHubMetricsCalculator:
    """
    Produces every metric row for a set of pull requests and releases.

    Attributes:
        pull_requests (List[PullRequestRecord]): Reconciled pull requests.
        releases (List[ReleaseRecord]): Releases in the collection window.
        today (date): Date stamped on undated metrics.
    """

    def __init__(
        self,
        pull_requests: Iterable[PullRequestRecord],
        releases: Iterable[ReleaseRecord] = (),
        today: Optional[date] = None,
    ):
        self.pull_requests = list(pull_requests)
        self.releases = list(releases)
        self.today = today or utc_today()

    def calculate_all(self, category: str = DEFAULT_CATEGORY) -> List[MetricRow]:
        """
        Calculate every metric family.

        Args:
            category (str): Namespace of the rows, e.g. ``github`` or ``github:Platform``.

        Returns:
            List[MetricRow]: Rows of all families, scalar metrics first.
        """
        prs, today = self.pull_requests, self.today
        families = [
            VelocityCalculator(prs, today).to_rows(category),
            CollaborationCalculator(prs, today).to_rows(category),
            PRSizeCalculator(prs, today).to_rows(category),
            QualityCalculator(prs, self.releases, today).to_rows(category),
            DailyStatsAggregator.from_records(prs, self.releases).to_rows(category),
            RepositoryActivityCalculator(prs, today).to_rows(category),
            ContributorActivityCalculator(prs, today).to_rows(category),
            CommitActivityCalculator(prs, today).to_rows(category),
        ]
        rows = [row for family in families for row in family]

        logger.info(
            {
                "message": "Calculated metrics",
                "category": category,
                "pull_requests": len(prs),
                "releases": len(self.releases),
                "rows": len(rows),
            }
        )
        return rows
