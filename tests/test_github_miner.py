"""
Tests for partitioned pull request search and release listing.
"""

import re
from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest
from github.GithubException import (
    BadCredentialsException,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)

from conftest import build_node, utc
from miners.errors import AuthenticationFailure
from miners.github_miner import GitHubMiner
from miners.models import DateField
from miners.queries import COUNT_QUERY, SEARCH_QUERY

RANGE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})\.\.(\d{4}-\d{2}-\d{2})")


class FakeSearch:
    """Answers count and search queries from a table of range counts."""

    def __init__(self, counts, default_count=10, page_nodes=None):
        self.counts = counts
        self.default_count = default_count
        self.page_nodes = page_nodes
        self.calls = []

    def execute(self, query, variables):
        predicate = variables["query"]
        found = RANGE_PATTERN.search(predicate)
        window = f"{found.group(1)}..{found.group(2)}"
        if query == COUNT_QUERY:
            self.calls.append(("count", window))
            return {"search": {"issueCount": self.counts.get(window, self.default_count)}}

        assert query == SEARCH_QUERY
        self.calls.append(("search", window))
        if self.page_nodes is not None:
            cursor = variables["after"]
            index = 0 if cursor is None else int(cursor)
            nodes = self.page_nodes[index]
            has_next = index + 1 < len(self.page_nodes)
            return {
                "search": {
                    "nodes": nodes,
                    "pageInfo": {"hasNextPage": has_next, "endCursor": str(index + 1)},
                }
            }
        return {
            "search": {
                "nodes": [build_node(url=f"https://github.com/acme/api/pull/{window}")],
                "pageInfo": {"hasNextPage": False, "endCursor": None},
            }
        }


@pytest.fixture
def github():
    """PyGithub client stub."""
    return Mock()


def test_range_over_cap_is_split_before_searching(github):
    """A 1500 result window is counted, halved, and only the halves are searched."""
    fake = FakeSearch(
        {
            "2024-01-01..2024-01-10": 1500,
            "2024-01-01..2024-01-05": 600,
            "2024-01-06..2024-01-10": 900,
        }
    )
    miner = GitHubMiner(fake, github)

    records = miner.fetch_pull_requests("acme", date(2024, 1, 1), date(2024, 1, 10))

    assert fake.calls == [
        ("count", "2024-01-01..2024-01-10"),
        ("count", "2024-01-01..2024-01-05"),
        ("search", "2024-01-01..2024-01-05"),
        ("count", "2024-01-06..2024-01-10"),
        ("search", "2024-01-06..2024-01-10"),
    ]
    assert len(records) == 2
    assert miner.progress.count_queries == 3
    assert miner.progress.search_pages == 2
    assert miner.progress.records == 2


def test_nested_splits_cover_window_in_order(github):
    """Searched ranges are disjoint and together cover the whole window."""
    fake = FakeSearch({"2024-01-01..2024-01-31": 5000, "2024-01-01..2024-01-16": 2000})
    miner = GitHubMiner(fake, github)

    miner.fetch_pull_requests("acme", date(2024, 1, 1), date(2024, 1, 31))

    searched = [window for kind, window in fake.calls if kind == "search"]
    assert searched == [
        "2024-01-01..2024-01-08",
        "2024-01-09..2024-01-16",
        "2024-01-17..2024-01-31",
    ]


def test_single_day_over_cap_is_fetched_anyway(github):
    """A single day cannot be split, so it is searched and the loop ends."""
    fake = FakeSearch({"2024-01-05..2024-01-05": 4000})
    miner = GitHubMiner(fake, github)

    records = miner.fetch_pull_requests("acme", date(2024, 1, 5), date(2024, 1, 5))

    assert fake.calls == [
        ("count", "2024-01-05..2024-01-05"),
        ("search", "2024-01-05..2024-01-05"),
    ]
    assert len(records) == 1


def test_search_follows_cursor_and_skips_empty_nodes(github):
    """Pages are requested until hasNextPage is false."""
    pages = [
        [build_node(), {}, build_node()],
        [build_node()],
        [None, build_node()],
    ]
    fake = FakeSearch({}, page_nodes=pages)
    miner = GitHubMiner(fake, github)

    records = miner.fetch_pull_requests("acme", date(2024, 3, 1), date(2024, 3, 2))

    assert len(records) == 4
    assert miner.progress.search_pages == 3


def test_updated_field_is_used_in_predicate(github):
    """Incremental fetches bound the search by update time."""
    graphql = Mock()
    graphql.execute.side_effect = [
        {"search": {"issueCount": 0}},
        {"search": {"nodes": [], "pageInfo": {"hasNextPage": False}}},
    ]
    miner = GitHubMiner(graphql, github)

    assert (
        miner.fetch_pull_requests(
            "acme", date(2024, 3, 1), date(2024, 3, 4), DateField.UPDATED
        )
        == []
    )
    _, variables = graphql.execute.call_args_list[0].args
    assert variables == {"query": "org:acme is:pr updated:2024-03-01..2024-03-04"}


def test_repository_target_is_searched_by_repo_qualifier(github):
    """A single repository is searched with the repo: qualifier."""
    graphql = Mock()
    graphql.execute.side_effect = [
        {"search": {"issueCount": 1}},
        {"search": {"nodes": [build_node()], "pageInfo": {"hasNextPage": False}}},
    ]
    miner = GitHubMiner(graphql, github)

    records = miner.fetch_pull_requests("acme/api", date(2024, 3, 1), date(2024, 3, 4))

    assert len(records) == 1
    for call in graphql.execute.call_args_list:
        _, variables = call.args
        assert variables["query"] == "repo:acme/api is:pr created:2024-03-01..2024-03-04"


def release(title, tag, created_at):
    return Mock(title=title, tag_name=tag, created_at=created_at)


def test_fetch_releases_filters_by_creation_time(github):
    """Only releases at or after the window start are kept."""
    github.get_repo.return_value.get_releases.return_value = [
        release("v3", "v3", datetime(2024, 3, 10, 12)),
        release("v2-hotfix", "v2.1", utc(2024, 3, 1)),
        release("v1", "v1", utc(2024, 1, 1)),
    ]
    miner = GitHubMiner(Mock(), github)

    releases = miner.fetch_releases("acme", ["api"], utc(2024, 3, 1))

    github.get_repo.assert_called_once_with("acme/api")
    assert [r.tag for r in releases] == ["v3", "v2.1"]
    assert releases[0].created_at == datetime(2024, 3, 10, 12, tzinfo=timezone.utc)
    assert releases[1].is_hotfix
    assert all(r.repository_name == "api" for r in releases)


def test_missing_repository_has_no_releases(github):
    """A repository that does not exist contributes nothing."""
    github.get_repo.side_effect = UnknownObjectException(404, {"message": "Not Found"}, {})
    miner = GitHubMiner(Mock(), github)

    assert miner.fetch_releases("acme", ["ghost"], utc(2024, 3, 1)) == []


def test_rejected_token_while_listing_releases(github):
    """Bad credentials are an authentication failure."""
    github.get_repo.side_effect = BadCredentialsException(
        401, {"message": "Bad credentials"}, {}
    )
    miner = GitHubMiner(Mock(), github)

    with pytest.raises(AuthenticationFailure):
        miner.fetch_releases("acme", ["api"], utc(2024, 3, 1))


def test_release_rate_limit_sleeps_and_retries(github):
    """A REST rate limit waits for Retry-After, then lists again."""
    repo = Mock()
    repo.get_releases.return_value = [release("v1", "v1", utc(2024, 3, 2))]
    github.get_repo.side_effect = [
        RateLimitExceededException(403, {"message": "rate limit"}, {"Retry-After": "7"}),
        repo,
    ]
    sleeps = []
    miner = GitHubMiner(Mock(), github, sleep=sleeps.append)

    releases = miner.fetch_releases("acme", ["api"], utc(2024, 3, 1))

    assert len(releases) == 1
    assert sleeps == [7.0]


def test_unreadable_repository_does_not_hide_other_releases(github):
    """A repository failing with another API error contributes nothing."""
    repo = Mock()
    repo.get_releases.return_value = [release("v1", "v1", utc(2024, 3, 2))]
    github.get_repo.side_effect = [
        GithubException(403, {"message": "Resource not accessible"}, {}),
        repo,
    ]
    miner = GitHubMiner(Mock(), github)

    releases = miner.fetch_releases("acme", ["private", "api"], utc(2024, 3, 1))

    assert [r.repository_name for r in releases] == ["api"]


def test_list_repositories(github):
    """Organization repositories are listed by name."""
    repos = [Mock(), Mock()]
    repos[0].name = "api"
    repos[1].name = "web"
    github.get_organization.return_value.get_repos.return_value = repos
    miner = GitHubMiner(Mock(), github)

    assert miner.list_repositories("acme") == ["api", "web"]
    github.get_organization.assert_called_once_with("acme")


def test_list_repositories_of_missing_organization(github):
    """An unknown organization has no repositories."""
    github.get_organization.side_effect = UnknownObjectException(404, {"message": "Not Found"}, {})
    miner = GitHubMiner(Mock(), github)

    assert miner.list_repositories("ghost") == []


def test_list_repositories_with_rejected_token(github):
    """Bad credentials are an authentication failure."""
    github.get_organization.side_effect = BadCredentialsException(
        401, {"message": "Bad credentials"}, {}
    )
    miner = GitHubMiner(Mock(), github)

    with pytest.raises(AuthenticationFailure):
        miner.list_repositories("acme")
