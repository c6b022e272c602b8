"""
Repository Mining Data Models.

Defines the normalized records produced from raw GitHub payloads. Raw GraphQL
nodes use camelCase keys, nested connections and nullable actors; they are
converted once, at ingestion, into the fixed snake_case shape below so the
calculators never deal with transport details.
Uses Pydantic for validation and serialization.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN = "unknown"

REPOSITORY_URL_PATTERN = re.compile(r"github\.com/[^/]+/([^/]+)")


class DateField(str, Enum):
    """Search qualifier used to bound a pull request query by date."""

    CREATED = "created"
    UPDATED = "updated"


class PullRequestState(str, Enum):
    OPEN = "OPEN"
    MERGED = "MERGED"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive range of calendar days.

    Attributes:
        start (date): First day of the range.
        end (date): Last day of the range.
    """

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Range end {self.end} precedes start {self.start}")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def split(self) -> Optional[Tuple["DateRange", "DateRange"]]:
        """
        Split the range at its midpoint into two disjoint, contiguous halves.

        Returns:
            Optional[Tuple[DateRange, DateRange]]: ``[start, mid]`` and
                ``[mid + 1, end]``, or None for a single day.
        """
        if self.start >= self.end:
            return None

        mid = self.start + timedelta(days=(self.end - self.start).days // 2)
        return DateRange(self.start, mid), DateRange(mid + timedelta(days=1), self.end)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


def _login(actor: Optional[Dict[str, Any]]) -> str:
    if isinstance(actor, dict) and actor.get("login"):
        return actor["login"]
    return UNKNOWN


def _nodes(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not isinstance(connection, dict):
        return []
    return [node for node in connection.get("nodes") or [] if node]


def _total_count(connection: Optional[Dict[str, Any]]) -> int:
    if not isinstance(connection, dict):
        return 0
    return connection.get("totalCount") or 0


def repository_from_url(url: Optional[str]) -> str:
    """Extract the repository name from a github.com pull request url."""
    if not url:
        return UNKNOWN
    match = REPOSITORY_URL_PATTERN.search(url)
    return match.group(1) if match else UNKNOWN


class ReviewRecord(BaseModel):
    """A single review left on a pull request."""

    model_config = ConfigDict(frozen=True)

    state: str
    created_at: datetime
    author: str = UNKNOWN


class CheckSuiteRecord(BaseModel):
    """Outcome of one check suite run on a commit."""

    model_config = ConfigDict(frozen=True)

    conclusion: Optional[str] = None
    updated_at: Optional[datetime] = None


class LastCommitRecord(BaseModel):
    """The head commit of a pull request with its CI state."""

    model_config = ConfigDict(frozen=True)

    committed_date: Optional[datetime] = None
    ci_state: Optional[str] = None
    check_suites: List[CheckSuiteRecord] = Field(default_factory=list)

    def latest_successful_suite(self) -> Optional[CheckSuiteRecord]:
        successful = [
            suite
            for suite in self.check_suites
            if suite.conclusion == "SUCCESS" and suite.updated_at is not None
        ]
        return max(successful, key=lambda suite: suite.updated_at, default=None)


class PullRequestRecord(BaseModel):
    """
    Normalized pull request.

    ``url`` is the stable identity used to merge snapshots. Records are frozen:
    a newer observation replaces an older one wholesale.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    state: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    author: str = UNKNOWN
    repository: str = UNKNOWN
    reviews: List[ReviewRecord] = Field(default_factory=list)
    review_count: int = 0
    comment_count: int = 0
    commit_count: int = 0
    commit_dates: List[datetime] = Field(default_factory=list)
    last_commit: Optional[LastCommitRecord] = None

    @property
    def is_merged(self) -> bool:
        return self.state == PullRequestState.MERGED.value

    @property
    def created_date(self) -> str:
        return self.created_at.date().isoformat()

    @property
    def approvals(self) -> List[ReviewRecord]:
        return [review for review in self.reviews if review.state == "APPROVED"]

    @property
    def changes_requested_count(self) -> int:
        return sum(1 for review in self.reviews if review.state == "CHANGES_REQUESTED")

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "PullRequestRecord":
        """
        Build a record from a raw GraphQL search node.

        Args:
            node (Dict[str, Any]): ``PullRequest`` node as returned by the search query.

        Returns:
            PullRequestRecord: The normalized record.
        """
        repository = (node.get("repository") or {}).get("name") or repository_from_url(
            node.get("url")
        )

        reviews = [
            ReviewRecord(
                state=review.get("state") or "",
                created_at=review["createdAt"],
                author=_login(review.get("author")),
            )
            for review in _nodes(node.get("reviews"))
            if review.get("createdAt")
        ]

        commit_dates = [
            commit_node["commit"]["committedDate"]
            for commit_node in _nodes(node.get("commits"))
            if (commit_node.get("commit") or {}).get("committedDate")
        ]

        last_commit = None
        last_commit_nodes = _nodes(node.get("lastCommit"))
        if last_commit_nodes and last_commit_nodes[-1].get("commit"):
            commit = last_commit_nodes[-1]["commit"]
            last_commit = LastCommitRecord(
                committed_date=commit.get("committedDate"),
                ci_state=(commit.get("statusCheckRollup") or {}).get("state"),
                check_suites=[
                    CheckSuiteRecord(
                        conclusion=suite.get("conclusion"),
                        updated_at=suite.get("updatedAt"),
                    )
                    for suite in _nodes(commit.get("checkSuites"))
                ],
            )

        return cls(
            url=node["url"],
            title=node.get("title") or "",
            state=node.get("state") or "",
            created_at=node["createdAt"],
            updated_at=node.get("updatedAt"),
            merged_at=node.get("mergedAt"),
            closed_at=node.get("closedAt"),
            additions=node.get("additions") or 0,
            deletions=node.get("deletions") or 0,
            changed_files=node.get("changedFiles") or 0,
            author=_login(node.get("author")),
            repository=repository,
            reviews=reviews,
            review_count=_total_count(node.get("reviews")),
            comment_count=_total_count(node.get("comments")),
            commit_count=_total_count(node.get("commits")),
            commit_dates=commit_dates,
            last_commit=last_commit,
        )


class ReleaseRecord(BaseModel):
    """A published release of a repository."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    tag: str = ""
    created_at: datetime
    repository_name: str

    @field_validator("name", "tag", mode="before")
    @classmethod
    def empty_when_missing(cls, v: Optional[str]) -> str:
        return v or ""

    @property
    def created_date(self) -> str:
        return self.created_at.date().isoformat()

    @property
    def is_hotfix(self) -> bool:
        return "hotfix" in self.name.lower() or "hotfix" in self.tag.lower()
