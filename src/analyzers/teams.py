"""
Team assignment of repositories.

Teams are configured as canonical names mapped to repository-name glob
patterns; matching is case-insensitive.
"""

import fnmatch
from typing import Dict, Iterable, List

from miners.models import PullRequestRecord, ReleaseRecord

TEAM_CATEGORY_PREFIX = "github:"


class TeamMatcher:
    def __init__(self, teams: Dict[str, Iterable[str]]):
        self._teams = {
            name: [patterns] if isinstance(patterns, str) else list(patterns)
            for name, patterns in teams.items()
        }

    @property
    def teams(self) -> List[str]:
        return list(self._teams)

    def patterns_for(self, team: str) -> List[str]:
        return self._teams.get(team, [])

    def matches(self, team: str, repository: str) -> bool:
        repository = repository.lower()
        return any(
            fnmatch.fnmatchcase(repository, pattern.lower())
            for pattern in self.patterns_for(team)
        )

    def category(self, team: str) -> str:
        return f"{TEAM_CATEGORY_PREFIX}{team}"

    def pull_requests_for(
        self, team: str, pull_requests: Iterable[PullRequestRecord]
    ) -> List[PullRequestRecord]:
        return [pr for pr in pull_requests if self.matches(team, pr.repository)]

    def releases_for(
        self, team: str, releases: Iterable[ReleaseRecord]
    ) -> List[ReleaseRecord]:
        return [
            release for release in releases if self.matches(team, release.repository_name)
        ]
