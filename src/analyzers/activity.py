"""
Activity Distribution Metrics.

Counts pull requests per day and repository, per day and author, and commits
per weekday and hour. Each family is written under its own category suffix so
the report layer can pick them apart from the scalar metrics.
"""

from typing import Dict, List, Tuple

import pandas as pd

from analyzers.base import MetricCalculator
from analyzers.models import DEFAULT_CATEGORY, MetricRow


def _group_counts(frame: pd.DataFrame, keys: List[str]) -> Dict[Tuple, int]:
    counts = frame.groupby(keys).size()
    return {key: int(count) for key, count in counts.items()}


class RepositoryActivityCalculator(MetricCalculator):
    """Pull requests opened per (date, repository)."""

    CATEGORY_SUFFIX = "_repo_activity"

    def calculate(self) -> Dict[Tuple[str, str], int]:
        if not self.pull_requests:
            return {}

        frame = pd.DataFrame(
            {
                "date": [pr.created_date for pr in self.pull_requests],
                "repository": [pr.repository for pr in self.pull_requests],
            }
        )
        return _group_counts(frame, ["date", "repository"])

    def to_rows(self, category: str = DEFAULT_CATEGORY) -> List[MetricRow]:
        return [
            MetricRow(day, f"{category}{self.CATEGORY_SUFFIX}", repository, count)
            for (day, repository), count in self.calculate().items()
        ]


class ContributorActivityCalculator(MetricCalculator):
    """Pull requests opened per (date, author); missing authors count as "unknown"."""

    CATEGORY_SUFFIX = "_contributor_activity"

    def calculate(self) -> Dict[Tuple[str, str], int]:
        if not self.pull_requests:
            return {}

        frame = pd.DataFrame(
            {
                "date": [pr.created_date for pr in self.pull_requests],
                "author": [pr.author for pr in self.pull_requests],
            }
        )
        return _group_counts(frame, ["date", "author"])

    def to_rows(self, category: str = DEFAULT_CATEGORY) -> List[MetricRow]:
        return [
            MetricRow(day, f"{category}{self.CATEGORY_SUFFIX}", author, count)
            for (day, author), count in self.calculate().items()
        ]


class CommitActivityCalculator(MetricCalculator):
    """
    Commits per (weekday, hour) in UTC, weekday 0 being Sunday.

    Rows are dated at the collection day and named ``<weekday>_<hour>``.
    """

    CATEGORY_SUFFIX = "_commit_activity"

    def calculate(self) -> Dict[Tuple[int, int], int]:
        commit_dates = [
            committed for pr in self.pull_requests for committed in pr.commit_dates
        ]
        if not commit_dates:
            return {}

        stamps = pd.Series(pd.to_datetime(commit_dates, utc=True))
        frame = pd.DataFrame(
            {
                # pandas counts Monday as 0
                "weekday": (stamps.dt.dayofweek + 1) % 7,
                "hour": stamps.dt.hour,
            }
        )
        return {
            (int(weekday), int(hour)): count
            for (weekday, hour), count in _group_counts(frame, ["weekday", "hour"]).items()
        }

    def to_rows(self, category: str = DEFAULT_CATEGORY) -> List[MetricRow]:
        date_text = self.today.isoformat()
        return [
            MetricRow(date_text, f"{category}{self.CATEGORY_SUFFIX}", f"{weekday}_{hour}", count)
            for (weekday, hour), count in self.calculate().items()
        ]
