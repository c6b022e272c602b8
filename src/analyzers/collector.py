"""
Metrics Collection Module.

Coordinates one collection run: obtain the pull requests of an organization or
of a single repository through the snapshot cache, list releases, and compute
metric rows for the whole target and for each configured team.

Each data source is isolated: a source that fails is logged and contributes
nothing, while the other sources still produce their rows.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from analyzers.base import utc_today
from analyzers.github_calculator import GitHubMetricsCalculator
from analyzers.models import DEFAULT_CATEGORY, MetricRow
from analyzers.teams import TeamMatcher
from config import logger
from miners.base import RepositoryMiner
from miners.models import PullRequestRecord, ReleaseRecord
from storage.cache_merge import CacheMergeStrategy

SUMMARY_MAX_ITEMS = 6


class MetricsCollector:
    """
    Orchestrates fetching and metric calculation for one organization or repository.

    Attributes:
        cache_strategy (CacheMergeStrategy): Source of reconciled pull requests.
        miner (RepositoryMiner): Source of releases and repository listings.
        target (str): Organization login, or ``owner/name`` for one repository.
        owner (str): Organization or user owning the collected repositories.
        repository (Optional[str]): Repository name in single repository mode.
        lookback_days (int): Size of the collection window.
        release_repositories (List[str]): Repositories to list releases for.
        team_matcher (Optional[TeamMatcher]): Team slicing, None for the target only.
        today (date): Last day of the collection window.
    """

    def __init__(
        self,
        cache_strategy: CacheMergeStrategy,
        miner: RepositoryMiner,
        target: str,
        lookback_days: int = 90,
        release_repositories: Optional[List[str]] = None,
        team_matcher: Optional[TeamMatcher] = None,
        today: Optional[date] = None,
    ):
        self.cache_strategy = cache_strategy
        self.miner = miner
        self.target = target
        owner, _, repository = target.partition("/")
        self.owner = owner
        self.repository = repository or None
        self.lookback_days = lookback_days
        self.release_repositories = release_repositories or []
        self.team_matcher = team_matcher
        self.today = today or utc_today()

    @property
    def window_start(self) -> date:
        return self.today - timedelta(days=self.lookback_days)

    def collect(self) -> List[MetricRow]:
        """
        Run the collection.

        Returns:
            List[MetricRow]: Target rows followed by per-team rows.
        """
        logger.info(
            {
                "message": "Starting metrics collection",
                "target": self.target,
                "window_start": self.window_start.isoformat(),
                "today": self.today.isoformat(),
            }
        )

        pull_requests = self._collect_pull_requests()
        releases = self._collect_releases()

        rows = GitHubMetricsCalculator(pull_requests, releases, self.today).calculate_all(
            DEFAULT_CATEGORY
        )

        if self.team_matcher is not None:
            for team in self.team_matcher.teams:
                team_prs = self.team_matcher.pull_requests_for(team, pull_requests)
                if not team_prs:
                    logger.info({"message": "No pull requests for team", "team": team})
                    continue
                rows.extend(
                    GitHubMetricsCalculator(
                        team_prs,
                        self.team_matcher.releases_for(team, releases),
                        self.today,
                    ).calculate_all(self.team_matcher.category(team))
                )

        logger.info({"message": "Metrics collection finished", "rows": len(rows)})
        return rows

    def _collect_pull_requests(self) -> List[PullRequestRecord]:
        try:
            records = self.cache_strategy.load(self.target, self.window_start, self.today)
        except Exception as e:
            logger.error(
                {
                    "message": "Failed to fetch pull requests",
                    "target": self.target,
                    "error": str(e),
                }
            )
            return []

        # The snapshot keeps older records; metrics only cover the window
        in_window = [pr for pr in records if pr.created_at.date() >= self.window_start]
        logger.info(
            {
                "message": "Pull requests in window",
                "target": self.target,
                "pull_requests": len(in_window),
                "window_start": self.window_start.isoformat(),
            }
        )
        return in_window

    def _release_repositories(self) -> List[str]:
        if self.release_repositories:
            return self.release_repositories
        if self.repository:
            return [self.repository]
        return self.miner.list_repositories(self.owner)

    def _collect_releases(self) -> List[ReleaseRecord]:
        since = datetime.combine(self.window_start, time.min, tzinfo=timezone.utc)
        try:
            repositories = self._release_repositories()
            if not repositories:
                return []
            return self.miner.fetch_releases(self.owner, repositories, since)
        except Exception as e:
            logger.error(
                {
                    "message": "Failed to fetch releases",
                    "target": self.target,
                    "error": str(e),
                }
            )
            return []


def log_metrics_summary(rows: List[MetricRow]) -> None:
    """Log the first target-level scalar metrics of a run."""
    summary = [row for row in rows if row.category == DEFAULT_CATEGORY][:SUMMARY_MAX_ITEMS]
    logger.info(
        {
            "message": "Metrics summary",
            "metrics": {row.metric: row.value for row in summary},
        }
    )
