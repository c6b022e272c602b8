"""
Abstract Base Class for Repository Miners.

Defines the interface for pull request and release mining implementations.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List

from miners.models import DateField, PullRequestRecord, ReleaseRecord


class RepositoryMiner(ABC):
    """
    Abstract base class for repository miners.

    Defines the contract for mining activity from a hosting service.
    Implementations should handle:
    - Authentication with the hosting service
    - Working around per-query result caps
    - Transformation of raw payloads into normalized records
    """

    @abstractmethod
    def fetch_pull_requests(
        self,
        org: str,
        start: date,
        end: date,
        date_field: DateField = DateField.CREATED,
    ) -> List[PullRequestRecord]:
        """
        Fetch every pull request of an organization or repository in a day range.

        Args:
            org (str): Organization login, or ``owner/name`` for a single repository
            start (date): First day of the window
            end (date): Last day of the window
            date_field (DateField): Whether the window bounds creation or update time

        Returns:
            List[PullRequestRecord]: Complete, non-duplicated records for the window
        """
        pass

    @abstractmethod
    def fetch_releases(
        self, org: str, repositories: List[str], since: datetime
    ) -> List[ReleaseRecord]:
        """
        Fetch releases created at or after ``since`` for the given repositories.

        Args:
            org (str): Organization login owning the repositories
            repositories (List[str]): Repository names within the organization
            since (datetime): Inclusive lower bound on release creation time

        Returns:
            List[ReleaseRecord]: Releases in the window
        """
        pass

    @abstractmethod
    def list_repositories(self, org: str) -> List[str]:
        """
        List the repository names of an organization.

        Args:
            org (str): Organization login

        Returns:
            List[str]: Repository names
        """
        pass
