"""
Logging Configuration Module.

Configures the application logger used by every component. Log calls pass
dictionaries (``logger.info({"message": ..., "key": value})``) which are
rendered as one JSON object per line, so runs can be grepped and parsed.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler


class JsonFormatter(logging.Formatter):
    """Render dict log messages as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            payload = dict(record.msg)
        else:
            payload = {"message": record.getMessage()}

        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            **payload,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class LogManager:
    """
    Configure a named application logger.

    Handlers are reset on every construction so the logger can be configured
    once with defaults at import time and again from settings at startup.

    Attributes:
        logger (logging.Logger): The configured application logger.
    """

    def __init__(
        self,
        app_name: str,
        log_dir: str = "logs",
        development: bool = False,
        level: int = logging.DEBUG,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 3,
    ):
        """Initialize the logger.

        Args:
            app_name (str): Logger name, also used as the log file stem.
            log_dir (str): Directory for the rotating log file.
            development (bool): Console only when True.
            level (int): Logging level.
            max_bytes (int): Rotation threshold of the log file.
            backup_count (int): Number of rotated files to keep.
        """
        self.logger = logging.getLogger(app_name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        formatter = JsonFormatter()

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        self.logger.addHandler(console)

        if not development:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, f"{app_name}.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)
