"""
Main Application Entry Point.

This module serves as the primary entry point for the metrics collector.
It orchestrates the collection workflow, including:
- Settings and logging initialization
- GitHub transport and miner wiring
- Snapshot cache preparation
- Metric calculation and CSV output
- Summary logging

The application can be run directly to collect metrics for the configured
organization.
"""

from github import Auth, Github

from analyzers.collector import MetricsCollector, log_metrics_summary
from analyzers.teams import TeamMatcher
from config import Settings, logger
from logger import LogManager
from miners.github_miner import GitHubMiner
from miners.graphql_client import GitHubGraphQLClient
from storage.cache_merge import CacheMergeStrategy
from storage.metrics_writer import MetricsWriter
from storage.snapshot_store import SnapshotStore


def main() -> None:
    """
    Execute the main application workflow.

    Performs the following steps:
    1. Loads settings and reconfigures logging from them
    2. Wires the GraphQL client, PyGithub client and miner
    3. Prepares the snapshot cache (optionally cleared or disabled)
    4. Collects metric rows for the organization or repository and its teams
    5. Writes the rows to CSV and logs a summary

    Note:
        - A failing data source is logged and contributes no rows
        - Nothing is written when no rows were produced
    """
    settings = Settings()
    LogManager(
        app_name=logger.name,
        log_dir=settings.log_dir,
        development=settings.dev,
        level=settings.log_level,
    )
    logger.info(
        {
            "message": "Starting application",
            "app": settings.app_name,
            "target": settings.collection_target,
        }
    )

    token = settings.github_token.get_secret_value()

    logger.debug("initializing github miner...")
    graphql = GitHubGraphQLClient(
        token,
        endpoint=settings.github_graphql_url,
        max_attempts=settings.max_transient_retries,
        backoff_seconds=settings.retry_backoff_seconds,
        default_rate_limit_wait=settings.rate_limit_default_wait_seconds,
    )
    miner = GitHubMiner(
        graphql,
        Github(auth=Auth.Token(token)),
        result_cap=settings.search_result_cap,
        page_size=settings.search_page_size,
        default_rate_limit_wait=settings.rate_limit_default_wait_seconds,
    )

    logger.debug("initializing snapshot cache...")
    store = None
    if settings.cache_enabled:
        store = SnapshotStore(settings.cache_dir)
        if settings.clear_cache:
            store.clear()
    cache_strategy = CacheMergeStrategy(miner, store, settings.cache_max_age_hours)

    team_matcher = TeamMatcher(settings.github_teams) if settings.github_teams else None
    collector = MetricsCollector(
        cache_strategy,
        miner,
        settings.collection_target,
        lookback_days=settings.lookback_days,
        release_repositories=settings.release_repositories,
        team_matcher=team_matcher,
    )

    rows = collector.collect()
    if not rows:
        logger.warning({"message": "No metrics collected, nothing written"})
        return

    MetricsWriter(settings.output_file).write_rows(rows)
    log_metrics_summary(rows)

    logger.info(
        {
            "message": "application finished",
            "github_requests": graphql.request_count,
            "count_queries": miner.progress.count_queries,
            "search_pages": miner.progress.search_pages,
        }
    )


if __name__ == "__main__":
    main()
