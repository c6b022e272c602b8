"""
GitHub Activity Mining Module.

Retrieves pull requests through the GraphQL search endpoint and releases through
the REST API. The search endpoint never returns more than 1000 results for one
query, so the requested window is partitioned: a cheap count query runs first
and any range over the cap is halved until each piece fits or is a single day.

Known limitation: a single day holding more results than the cap cannot be
split further and is fetched as-is, so its results may be truncated. This is
logged as a warning.
"""

import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, List

from github import Github
from github.GithubException import (
    BadCredentialsException,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)

from config import logger
from miners.base import RepositoryMiner
from miners.errors import AuthenticationFailure, UpstreamLogicalError
from miners.graphql_client import GitHubGraphQLClient
from miners.models import DateField, DateRange, PullRequestRecord, ReleaseRecord
from miners.queries import COUNT_QUERY, SEARCH_QUERY, search_predicate


@dataclass
class FetchProgress:
    """Monotonic counters describing the work done by a miner."""

    count_queries: int = 0
    search_pages: int = 0
    records: int = 0


class GitHubMiner(RepositoryMiner):
    """
    GitHubMiner is responsible for mining pull requests and releases from GitHub.
    It partitions search windows around the result cap and transforms raw nodes
    into normalized records.
    """

    def __init__(
        self,
        graphql: GitHubGraphQLClient,
        github: Github,
        result_cap: int = 1000,
        page_size: int = 25,
        default_rate_limit_wait: float = 60,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize GitHub miner with its transports and search tuning.

        Args:
            graphql (GitHubGraphQLClient): Transport for search queries.
            github (Github): PyGithub client used for the releases listing.
            result_cap (int): Result count above which a range is split.
            page_size (int): Nodes requested per search page.
            default_rate_limit_wait (float): REST rate limit wait when none is given.
            sleep (Callable[[float], None]): Blocking sleep for REST rate limits.
        """
        self.graphql = graphql
        self.github = github
        self.result_cap = result_cap
        self.page_size = page_size
        self.default_rate_limit_wait = default_rate_limit_wait
        self._sleep = sleep
        self.progress = FetchProgress()

    def fetch_pull_requests(
        self,
        org: str,
        start: date,
        end: date,
        date_field: DateField = DateField.CREATED,
    ) -> List[PullRequestRecord]:
        """
        Fetch every pull request of an organization or repository in a day range.

        Pending ranges are kept on a stack. A range whose count exceeds the cap
        is replaced by its two halves, the earlier half on top so results come
        back in chronological range order. Halves are disjoint, so no
        deduplication is needed here.

        Args:
            org (str): Organization login, or ``owner/name`` for a single repository.
            start (date): First day of the window.
            end (date): Last day of the window.
            date_field (DateField): Whether the window bounds creation or update time.

        Returns:
            List[PullRequestRecord]: Records of every range, concatenated.
        """
        date_field = DateField(date_field)
        pending = [DateRange(start, end)]
        records: List[PullRequestRecord] = []

        while pending:
            current = pending.pop()
            query = search_predicate(org, current, date_field)
            total_count = self._count(query)

            if total_count > self.result_cap:
                halves = current.split()
                if halves:
                    logger.info(
                        {
                            "message": "Splitting date range",
                            "range": str(current),
                            "count": total_count,
                        }
                    )
                    earlier, later = halves
                    pending.append(later)
                    pending.append(earlier)
                    continue

                logger.warning(
                    {
                        "message": "Single day exceeds search cap, results may be truncated",
                        "range": str(current),
                        "count": total_count,
                        "cap": self.result_cap,
                    }
                )

            logger.info(
                {
                    "message": "Fetching pull requests",
                    "range": str(current),
                    "date_field": date_field.value,
                    "count": total_count,
                }
            )
            fetched = self._search(query)
            records.extend(fetched)

            logger.info(
                {
                    "message": "Fetched pull requests",
                    "range": str(current),
                    "fetched": len(fetched),
                    "count_queries": self.progress.count_queries,
                    "search_pages": self.progress.search_pages,
                    "records": self.progress.records,
                }
            )

        return records

    def _count(self, query: str) -> int:
        data = self.graphql.execute(COUNT_QUERY, {"query": query})
        self.progress.count_queries += 1
        search = data.get("search")
        if search is None:
            raise UpstreamLogicalError(f"Count query returned no search object: {query}")
        return search.get("issueCount") or 0

    def _search(self, query: str) -> List[PullRequestRecord]:
        records = []
        cursor = None
        while True:
            data = self.graphql.execute(
                SEARCH_QUERY, {"query": query, "first": self.page_size, "after": cursor}
            )
            self.progress.search_pages += 1

            search = data.get("search")
            if search is None:
                raise UpstreamLogicalError(f"Search query returned no search object: {query}")

            for node in search.get("nodes") or []:
                # Non pull request results come back as empty objects
                if node and node.get("url"):
                    records.append(PullRequestRecord.from_node(node))
                    self.progress.records += 1

            page_info = search.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return records
            cursor = page_info.get("endCursor")

    def fetch_releases(
        self, org: str, repositories: List[str], since: datetime
    ) -> List[ReleaseRecord]:
        """
        Fetch releases created at or after ``since`` for the given repositories.

        Repositories that cannot be read or have no releases contribute nothing.

        Args:
            org (str): Organization login owning the repositories.
            repositories (List[str]): Repository names within the organization.
            since (datetime): Inclusive lower bound on release creation time.

        Returns:
            List[ReleaseRecord]: Releases in the window.

        Raises:
            AuthenticationFailure: If the token is rejected.
        """
        since = _as_utc(since)
        releases: List[ReleaseRecord] = []
        for name in repositories:
            releases.extend(self._repository_releases(org, name, since))

        logger.info(
            {
                "message": "Fetched releases",
                "organization": org,
                "repositories": len(repositories),
                "releases": len(releases),
            }
        )
        return releases

    def _repository_releases(
        self, org: str, name: str, since: datetime
    ) -> List[ReleaseRecord]:
        full_name = f"{org}/{name}"
        while True:
            try:
                repo = self.github.get_repo(full_name)
                return [
                    ReleaseRecord(
                        name=release.title,
                        tag=release.tag_name,
                        created_at=_as_utc(release.created_at),
                        repository_name=name,
                    )
                    for release in repo.get_releases()
                    if release.created_at is not None
                    and _as_utc(release.created_at) >= since
                ]
            except UnknownObjectException:
                logger.info(
                    {"message": "No releases found for repository", "repository": full_name}
                )
                return []
            except BadCredentialsException as e:
                raise AuthenticationFailure(
                    f"GitHub rejected the token while listing releases of {full_name}"
                ) from e
            except RateLimitExceededException as e:
                wait_seconds = self._rest_retry_after(e)
                logger.warning(
                    {
                        "message": "GitHub REST rate limit hit, waiting before retrying",
                        "repository": full_name,
                        "wait_seconds": wait_seconds,
                    }
                )
                self._sleep(wait_seconds)
            except GithubException as e:
                # One inaccessible repository must not hide the others' releases
                logger.error(
                    {
                        "message": "Failed to list releases for repository",
                        "repository": full_name,
                        "status": e.status,
                        "error": str(e),
                    }
                )
                return []

    def list_repositories(self, org: str) -> List[str]:
        """
        List the names of an organization's repositories.

        Args:
            org (str): Organization login.

        Returns:
            List[str]: Repository names, empty when the organization does not exist.

        Raises:
            AuthenticationFailure: If the token is rejected.
        """
        while True:
            try:
                names = [repo.name for repo in self.github.get_organization(org).get_repos()]
                logger.info(
                    {
                        "message": "Listed organization repositories",
                        "organization": org,
                        "repositories": len(names),
                    }
                )
                return names
            except UnknownObjectException:
                logger.warning({"message": "Organization not found", "organization": org})
                return []
            except BadCredentialsException as e:
                raise AuthenticationFailure(
                    f"GitHub rejected the token while listing repositories of {org}"
                ) from e
            except RateLimitExceededException as e:
                wait_seconds = self._rest_retry_after(e)
                logger.warning(
                    {
                        "message": "GitHub REST rate limit hit, waiting before retrying",
                        "organization": org,
                        "wait_seconds": wait_seconds,
                    }
                )
                self._sleep(wait_seconds)

    def _rest_retry_after(self, error: RateLimitExceededException) -> float:
        headers = {key.lower(): value for key, value in (error.headers or {}).items()}
        try:
            if headers.get("retry-after"):
                return max(float(headers["retry-after"]), 0.0)
            if headers.get("x-ratelimit-reset"):
                return max(float(headers["x-ratelimit-reset"]) - time.time(), 1.0)
        except ValueError:
            pass
        return self.default_rate_limit_wait


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
