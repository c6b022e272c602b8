"""
Shared fixtures for the metrics collector test suite.

Provides builders for raw GraphQL search nodes and normalized pull request and
release records.
"""

import itertools
from datetime import date, datetime, timezone

import pytest

from miners.models import (
    CheckSuiteRecord,
    LastCommitRecord,
    PullRequestRecord,
    ReleaseRecord,
    ReviewRecord,
)

TODAY = date(2024, 3, 15)

_ids = itertools.count(1)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def build_pr(**overrides) -> PullRequestRecord:
    number = next(_ids)
    fields = {
        "url": f"https://github.com/acme/api/pull/{number}",
        "title": f"Change {number}",
        "state": "MERGED",
        "created_at": utc(2024, 3, 1, 9),
        "updated_at": utc(2024, 3, 2, 9),
        "merged_at": utc(2024, 3, 2, 9),
        "additions": 10,
        "deletions": 2,
        "changed_files": 1,
        "author": "alice",
        "repository": "api",
        "commit_count": 1,
    }
    fields.update(overrides)
    return PullRequestRecord(**fields)


def build_review(state: str, created_at: datetime, author: str = "bob") -> ReviewRecord:
    return ReviewRecord(state=state, created_at=created_at, author=author)


def build_last_commit(
    ci_state: str = "SUCCESS",
    committed_date: datetime = None,
    suites=(),
) -> LastCommitRecord:
    return LastCommitRecord(
        committed_date=committed_date,
        ci_state=ci_state,
        check_suites=[
            CheckSuiteRecord(conclusion=conclusion, updated_at=updated_at)
            for conclusion, updated_at in suites
        ],
    )


def build_release(
    created_at: datetime, name: str = "v1.0.0", tag: str = "v1.0.0", repository: str = "api"
) -> ReleaseRecord:
    return ReleaseRecord(
        name=name, tag=tag, created_at=created_at, repository_name=repository
    )


def build_node(**overrides) -> dict:
    """Raw GraphQL search node as returned by the API."""
    number = next(_ids)
    node = {
        "url": f"https://github.com/acme/api/pull/{number}",
        "title": f"Change {number}",
        "state": "MERGED",
        "createdAt": "2024-03-01T09:00:00Z",
        "updatedAt": "2024-03-02T09:00:00Z",
        "mergedAt": "2024-03-02T09:00:00Z",
        "closedAt": "2024-03-02T09:00:00Z",
        "additions": 10,
        "deletions": 2,
        "changedFiles": 1,
        "author": {"login": "alice"},
        "repository": {"name": "api"},
        "reviews": {"totalCount": 0, "nodes": []},
        "comments": {"totalCount": 0},
        "commits": {"totalCount": 0, "nodes": []},
        "lastCommit": {"nodes": []},
    }
    node.update(overrides)
    return node


@pytest.fixture
def today():
    """Fixed collection date."""
    return TODAY
