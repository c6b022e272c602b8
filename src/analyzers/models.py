"""
Metric Output Models.

Defines the row shape shared by every calculator and understood by the report
writer: a dated value under a category namespace and a metric name.
"""

from typing import NamedTuple, Union

DEFAULT_CATEGORY = "github"


class MetricRow(NamedTuple):
    """
    One dated statistic.

    Attributes:
        date (str): ISO-8601 date the value applies to.
        category (str): Namespace such as ``github`` or ``github:Platform``.
        metric (str): Metric name within the category.
        value (Union[int, float, str]): Number, or an opaque string-encoded composite.
    """

    date: str
    category: str
    metric: str
    value: Union[int, float, str]


METRIC_ROW_HEADERS = MetricRow._fields
