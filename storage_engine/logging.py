"""Logging setup for hosts and the config doctor CLI.

Library modules only create module loggers; nothing here runs on import.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from storage_engine.errors import StorageEngineError

__all__ = ["setup_logging", "JSONFormatter", "NOISY_LOGGERS"]

# Client libraries that log every request at DEBUG/INFO
NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "paramiko", "pymongo", "fsspec")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Storage engine exceptions attached via ``exc_info`` are rendered with
    their structured details under ``error``.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "WARNING",
         "logger": "storage_engine.resolver",
         "message": "Path traversal attempt rejected: 'local:../../etc/passwd'"}
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, StorageEngineError):
                log_data["error"] = error.to_dict()

        # Attributes passed via extra=
        extra_attrs = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


def setup_logging(verbose: bool = False, json_format: bool = False) -> None:
    """Send log records to stderr so stdout only carries command output."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
