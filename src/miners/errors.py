"""
GitHub Error Taxonomy.

Classifies failures of the hosting API so callers can decide between aborting,
sleeping, retrying with backoff, or treating the result as empty.
"""

from typing import Any, List, Optional


class GitHubError(Exception):
    """Base class for every failure raised while talking to GitHub."""


class AuthenticationFailure(GitHubError):
    """Credentials were rejected. Fatal and never retried."""


class RateLimited(GitHubError):
    """The server asked us to slow down; retry the same request after a wait."""

    def __init__(self, message: str, retry_after: float):
        super().__init__(message)
        self.retry_after = retry_after


class TransientServiceError(GitHubError):
    """Network or server-side failure, retried with exponential backoff."""


class UpstreamLogicalError(GitHubError):
    """The request succeeded but the payload carries errors or no data."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(GitHubError):
    """The requested resource does not exist; callers treat it as empty."""
