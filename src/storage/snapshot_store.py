"""
Pull Request Snapshot Storage Module.

Persists the deduplicated pull request list of an organization as a JSON
document at a stable per-organization path. Freshness is judged purely from the
file modification time; the document carries no timestamp of its own.

The store performs no locking: concurrent runs against the same key are unsafe
and the last writer wins.
"""

import json
import os
import shutil
import time
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from config import logger
from miners.models import PullRequestRecord


class SnapshotStore:
    """
    Manages persistent snapshots of normalized pull requests.
    Handles saving, loading and age checks of one snapshot per organization.
    """

    def __init__(self, cache_dir: str):
        """Initialize the snapshot storage.

        Args:
            cache_dir (str): Base directory path for snapshot files.
        """
        self.storage_dir = Path(cache_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def snapshot_path(self, key: str) -> Path:
        """Generate the file path of a snapshot.

        Args:
            key (str): Organization or repository identifier.

        Returns:
            Path: Snapshot file path.
        """
        safe_name = key.replace("/", "_").replace("\\", "_")
        return self.storage_dir / f"github_prs_{safe_name}.json"

    def exists(self, key: str) -> bool:
        return self.snapshot_path(key).is_file()

    def age_hours(self, key: str) -> Optional[float]:
        """Hours elapsed since the snapshot was last written, None if absent."""
        path = self.snapshot_path(key)
        if not path.is_file():
            return None
        return (time.time() - path.stat().st_mtime) / 3600.0

    def is_fresh(self, key: str, max_age_hours: float) -> bool:
        age = self.age_hours(key)
        return age is not None and age < max_age_hours

    def load(self, key: str) -> Optional[List[PullRequestRecord]]:
        """Load a snapshot.

        Args:
            key (str): Organization or repository identifier.

        Returns:
            Optional[List[PullRequestRecord]]: Stored records, None when the
                snapshot is missing or unreadable.
        """
        path = self.snapshot_path(key)
        if not path.is_file():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [PullRequestRecord.model_validate(item) for item in data]
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError, TypeError) as e:
            # Unreadable snapshots are treated as missing
            logger.error(
                {
                    "message": "Corrupted pull request snapshot",
                    "key": key,
                    "file": str(path),
                    "error": str(e),
                }
            )
            return None

    def save(self, key: str, records: List[PullRequestRecord]) -> None:
        """Rewrite a snapshot wholesale, refreshing its modification time.

        Args:
            key (str): Organization or repository identifier.
            records (List[PullRequestRecord]): Records to persist.
        """
        path = self.snapshot_path(key)
        tmp_path = path.with_suffix(".json.tmp")
        data = [record.model_dump(mode="json") for record in records]

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)

        logger.info(
            {
                "message": "Pull request snapshot saved",
                "key": key,
                "file": str(path),
                "records": len(records),
            }
        )

    def clear(self) -> None:
        """Remove every snapshot."""
        shutil.rmtree(self.storage_dir, ignore_errors=True)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        logger.info({"message": "Snapshot cache cleared", "directory": str(self.storage_dir)})
