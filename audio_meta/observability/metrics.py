"""Per-file processing metrics.

Provides FileMetrics dataclass for structured observability data,
StageTimer context manager for measuring pipeline stage durations,
and log_file_metrics() for emitting metrics as structured JSON to stdout.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime


@dataclass
class FileMetrics:
    """All metrics collected for a single processed audio file."""

    bucket: str
    file_key: str
    status: str
    processing_wall_time_seconds: float
    source_size_bytes: int = 0
    length_ms: int | None = None
    cover_uploaded: bool | None = None
    transcription_state: str | None = None
    transcription_job_name: str | None = None
    index_entries: int = 0
    stage_timings: dict[str, float] = field(default_factory=dict)
    error_stage: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of a pipeline stage.

    Durations land in the shared ``timings`` dict under the stage name.
    A stage that raises is recorded under ``_<stage>_failed`` instead, so
    the failing stage can be recovered afterwards.

    Usage:
        timings = {}
        with StageTimer("fetch", timings):
            do_work()
        print(timings["fetch"])
    """

    def __init__(self, stage_name: str, timings: dict[str, float]) -> None:
        self.stage_name = stage_name
        self._timings = timings
        self.start_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        if exc_type is not None:
            self._timings[f"_{self.stage_name}_failed"] = self.duration_seconds
        else:
            self._timings[self.stage_name] = self.duration_seconds


def failed_stage(timings: dict[str, float]) -> str | None:
    """Return the stage recorded as failed by a StageTimer, if any."""
    for key in timings:
        if key.startswith("_") and key.endswith("_failed"):
            return key[1 : -len("_failed")]
    return None


def log_file_metrics(metrics: FileMetrics) -> None:
    """Emit file metrics as a single structured JSON line to stdout.

    Args:
        metrics: Populated FileMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO" if metrics.status == "completed" else "ERROR",
        "metric_type": "file_completion",
        **asdict(metrics),
    }
    print(json.dumps(entry))
