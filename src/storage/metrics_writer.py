"""
Metric Row CSV Output.

Writes metric rows to the CSV file consumed by the report layer. The file has
exactly four columns: date, category, metric, value.
"""

import os
from typing import Iterable

import pandas as pd

from analyzers.models import METRIC_ROW_HEADERS, MetricRow
from config import logger


class MetricsWriter:
    """Writes metric rows to a CSV file, replacing or appending."""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def _frame(self, rows: Iterable[MetricRow]) -> pd.DataFrame:
        # object dtype keeps numbers and string-encoded composites as given
        return pd.DataFrame(
            [tuple(row) for row in rows], columns=list(METRIC_ROW_HEADERS), dtype=object
        )

    def write_rows(self, rows: Iterable[MetricRow]) -> None:
        """Replace the file with the given rows."""
        frame = self._frame(rows)
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        frame.to_csv(self.file_path, index=False)
        logger.info(
            {"message": "Metrics written", "file": self.file_path, "rows": len(frame)}
        )

    def append_rows(self, rows: Iterable[MetricRow]) -> None:
        """Append rows, writing the header only when the file is new."""
        frame = self._frame(rows)
        file_exists = os.path.exists(self.file_path)
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        frame.to_csv(self.file_path, mode="a", header=not file_exists, index=False)
        logger.info(
            {"message": "Metrics appended", "file": self.file_path, "rows": len(frame)}
        )
