"""
Application Configuration Module.

Manages application settings and environment variables using Pydantic for validation.
Provides centralized configuration management with type safety and validation.

Features:
- Environment variable loading and validation
- Secure credential management
- Search, retry and cache tuning
- Path normalization for output files
"""

import os
from typing import Dict, List, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from logger import LogManager

APP_NAME = "PRMetrics"


class Settings(BaseSettings):
    """
    Application configuration settings with validation.

    Manages and validates all application settings including:
    - Application identification and logging
    - GitHub authentication and organization
    - Search partitioning and retry behaviour
    - Snapshot cache location and freshness
    - Output file location

    Attributes:
        app_name (str): Name of the application
        dev (bool): Development mode flag (console logging only)
        log_dir (str): Directory for log files
        log_level (int): Logging level (default: info)
        github_token (SecretStr): GitHub API authentication token
        github_org (Optional[str]): Organization whose pull requests are collected
        github_repo (Optional[str]): Single "owner/name" repository, used when no organization is set
        github_graphql_url (str): GraphQL endpoint
        github_release_repos (str): Comma-separated repositories to list releases for
        github_teams (Dict[str, List[str]]): Team name to repository glob patterns
        lookback_days (int): Size of the collection window in days
        cache_enabled (bool): Whether the snapshot cache is used at all
        clear_cache (bool): Whether to wipe the snapshot cache before running
        cache_dir (str): Directory for snapshot files
        cache_max_age_hours (float): Freshness threshold of a snapshot
        search_result_cap (int): Result count above which a range is split
        search_page_size (int): Page size of the search query
        max_transient_retries (int): Attempts for transient failures
        retry_backoff_seconds (float): First backoff delay, doubled per attempt
        rate_limit_default_wait_seconds (int): Wait when the server gives none
        output_file (str): CSV file receiving metric rows
    """

    # Application settings
    app_name: str = Field(default=APP_NAME, description="Application name")
    dev: bool = Field(default=False, description="Development mode")
    log_dir: str = Field(default="logs", description="Logging directory")
    log_level: int = Field(default=20, description="Logging level, default info")

    # GitHub configuration
    github_token: SecretStr = Field(..., description="GitHub token")
    github_org: Optional[str] = Field(
        default=None, description="GitHub organization to analyze"
    )
    github_repo: Optional[str] = Field(
        default=None, description="Single owner/name repository to analyze"
    )
    github_graphql_url: str = Field(
        default="https://api.github.com/graphql", description="GraphQL endpoint"
    )
    github_release_repos: str = Field(
        default="", description="Comma-separated repositories to list releases for"
    )
    github_teams: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Team name to repository glob patterns, as JSON",
    )

    # Collection window
    lookback_days: int = Field(default=90, description="Days of history to collect")

    # Cache configuration
    cache_enabled: bool = Field(default=True, description="Use the snapshot cache")
    clear_cache: bool = Field(default=False, description="Clear cache before run")
    cache_dir: str = Field(default="data/cache", description="Snapshot directory")
    cache_max_age_hours: float = Field(
        default=24, description="Snapshot freshness threshold in hours"
    )

    # Search and retry tuning
    search_result_cap: int = Field(
        default=1000, description="Search results returned at most per query"
    )
    search_page_size: int = Field(default=25, description="Search page size")
    max_transient_retries: int = Field(
        default=5, description="Attempts for transient failures"
    )
    retry_backoff_seconds: float = Field(
        default=1.0, description="First backoff delay in seconds"
    )
    rate_limit_default_wait_seconds: int = Field(
        default=60, description="Rate limit wait when the server gives none"
    )

    output_file: str = Field(
        default="reports/metrics.csv", description="Metrics CSV output file"
    )

    @property
    def release_repositories(self) -> List[str]:
        """
        Get list of release repositories from configuration.

        Returns:
            List[str]: Cleaned repository names, empty when unset
        """
        return [
            name.strip() for name in self.github_release_repos.split(",") if name.strip()
        ]

    @property
    def collection_target(self) -> str:
        """
        Get the organization login or ``owner/name`` repository to collect.

        The organization takes precedence when both are configured.
        """
        return self.github_org or self.github_repo

    @field_validator("github_repo")
    def validate_repository(cls, v: Optional[str]) -> Optional[str]:
        """
        Ensure the repository is given as owner/name.

        Args:
            v (Optional[str]): Configured repository

        Returns:
            Optional[str]: The stripped repository, None when unset

        Raises:
            ValueError: If the value is not of the form owner/name
        """
        if not v or not v.strip():
            return None
        owner, _, name = v.strip().partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(f"GITHUB_REPO must be owner/name, got {v!r}")
        return f"{owner}/{name}"

    @model_validator(mode="after")
    def require_target(self) -> "Settings":
        """Require an organization or a repository to collect."""
        if not self.github_org and not self.github_repo:
            raise ValueError("GITHUB_ORG or GITHUB_REPO must be set")
        return self

    @field_validator("output_file")
    def ensure_absolute_path(cls, v: str) -> str:
        """
        Ensure output file path is absolute.

        Args:
            v (str): File path to validate

        Returns:
            str: Absolute path to the output file
        """
        if not os.path.isabs(v):
            return os.path.abspath(v)
        return v

    # Configure env file loading
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )


# Console logger until app.main() reconfigures it from settings
logger = LogManager(app_name=APP_NAME.lower(), development=True, level=20).logger
