"""
Base class and shared arithmetic for metric calculators.

Ratios and percentages are rounded to 2 decimals and day-denominated durations
to 4 decimals so that output stays stable between runs. Durations are always
``event - created`` and are never clamped, so inconsistent source data shows up
as negative values rather than being hidden.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from analyzers.models import DEFAULT_CATEGORY, MetricRow
from miners.models import PullRequestRecord

SECONDS_PER_HOUR = 3600.0
SECONDS_PER_DAY = 86400.0

RATIO_DIGITS = 2
DAYS_DIGITS = 4


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def average(values: Iterable[float], digits: int = RATIO_DIGITS) -> float:
    """Rounded mean, 0.0 for no values."""
    values = list(values)
    if not values:
        return 0.0
    return round(sum(values) / len(values), digits)


def rate(numerator: float, denominator: float) -> float:
    """Percentage rounded to 2 decimals, 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, RATIO_DIGITS)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class MetricCalculator(ABC):
    """
    Stateless reducer over a fixed list of pull requests.

    Subclasses implement ``calculate``; ``to_rows`` turns the result into rows
    dated at the collection day. ``METRIC_NAMES`` maps result keys to the metric
    names written out, keys are used as-is when absent.
    """

    METRIC_NAMES: Dict[str, str] = {}

    def __init__(
        self, pull_requests: Iterable[PullRequestRecord], today: Optional[date] = None
    ):
        self.pull_requests = list(pull_requests)
        self.today = today or utc_today()

    @property
    def merged_prs(self) -> List[PullRequestRecord]:
        return [pr for pr in self.pull_requests if pr.is_merged]

    @abstractmethod
    def calculate(self) -> Dict[Any, float]:
        """Compute the metrics, an empty mapping for empty input."""
        pass

    def to_rows(self, category: str = DEFAULT_CATEGORY) -> List[MetricRow]:
        date_text = self.today.isoformat()
        return [
            MetricRow(date_text, category, self.METRIC_NAMES.get(key, key), value)
            for key, value in self.calculate().items()
        ]
