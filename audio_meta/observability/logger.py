"""Structured JSON logger for cloud log ingestion.

Outputs JSON to stdout with severity, timestamp, and message fields
compatible with structured log collectors (CloudWatch, Cloud Logging).
"""

import json
import logging
import sys
from datetime import UTC, datetime


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    SEVERITY_MAP: dict[int, str] = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    EXTRA_FIELDS: tuple[str, ...] = (
        "file_key",
        "bucket",
        "stage",
        "duration_seconds",
        "job_name",
        "error",
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON string with severity, timestamp, message, and extra fields.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Include extra fields passed via the `extra` kwarg
        for key in self.EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
            log_entry["exception_type"] = type(record.exc_info[1]).__name__

        return json.dumps(log_entry, default=str)


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure the root logger with structured JSON output.

    Replaces any handlers already installed on the root logger, so it is
    safe to call from warm function runtimes that pre-install their own.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)

