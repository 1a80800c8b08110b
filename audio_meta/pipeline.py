"""Per-event orchestrator for the metadata pipeline.

Contains the processing result models and the MetadataPipeline driver.
Per file: fetch -> tags -> comment -> cover -> transcription -> store
-> index. Files of one notification run concurrently in worker threads;
a failing file never blocks its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from audio_meta.config import PipelineConfig
from audio_meta.meta.cover import CoverArtCache
from audio_meta.meta.index import FolderIndexer
from audio_meta.meta.paths import SourceObject
from audio_meta.meta.record import MetadataRecord, build_record
from audio_meta.observability.metrics import (
    FileMetrics,
    StageTimer,
    failed_stage,
    log_file_metrics,
)
from audio_meta.queue.events import parse_notification
from audio_meta.storage.object_store import Found, ObjectStore, S3ObjectStore
from audio_meta.tags.comment import parse_comment
from audio_meta.tags.derived import derive_fields
from audio_meta.tags.reader import read_tags
from audio_meta.transcription.decision import TranscriptionDecider
from audio_meta.transcription.interface import TranscriptionService
from audio_meta.transcription.registry import get_transcription_service
from audio_meta.utils.errors import EventProcessingError, ObjectNotFoundError

logger = logging.getLogger(__name__)

STAGES = ("fetch", "tags", "comment", "cover", "transcription", "store", "index")


@dataclass
class ProcessingError:
    """Details about a processing failure."""

    stage: str
    message: str
    exception_type: str


@dataclass
class ProcessingResult:
    """Result of processing a single audio file."""

    status: Literal["completed", "failed"]
    bucket: str
    file_key: str
    artifact_paths: dict[str, str] = field(default_factory=dict)
    stage_timings: dict[str, float] = field(default_factory=dict)
    record: MetadataRecord | None = None
    transcription_state: str | None = None
    error: ProcessingError | None = None


@dataclass
class EventResult:
    """Results of every file reported by one notification."""

    results: list[ProcessingResult]

    @property
    def failed(self) -> list[ProcessingResult]:
        return [result for result in self.results if result.status == "failed"]

    def summary(self) -> dict[str, Any]:
        return {
            "processed": len(self.results),
            "failed": [result.file_key for result in self.failed],
        }

    def raise_for_failures(self) -> None:
        """Raise EventProcessingError if any file failed."""
        failed_keys = [result.file_key for result in self.failed]
        if failed_keys:
            raise EventProcessingError(
                f"{len(failed_keys)} of {len(self.results)} files failed",
                failed_keys=failed_keys,
            )


def _determine_error_stage(timings: dict[str, float]) -> str:
    """Failed stage recorded by StageTimer, else the first stage not completed."""
    stage = failed_stage(timings)
    if stage:
        return stage
    for stage in STAGES:
        if stage not in timings:
            return stage
    return "unknown"


class MetadataPipeline:
    """Derives and persists metadata for uploaded audio files.

    Args:
        config: Deployment configuration.
        store: Blob store holding sources and generated artifacts.
        transcriber: Transcription service for new jobs.
        clock: Time source for transcription job names.
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: ObjectStore,
        transcriber: TranscriptionService,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._store = store
        self._covers = CoverArtCache(store)
        self._indexer = FolderIndexer(store)
        self._decider = TranscriptionDecider(
            store,
            transcriber,
            language_code=config.language_code,
            media_format=config.media_format,
            clock=clock,
        )
        self._episode_pattern = re.compile(config.episode_pattern)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> MetadataPipeline:
        """Build a pipeline wired to the configured S3 and transcription clients."""
        store = S3ObjectStore(region=config.region, endpoint_url=config.endpoint_url)
        transcriber = get_transcription_service(
            config.transcription_provider, region=config.region
        )
        return cls(config, store, transcriber)

    def process_file(self, source: SourceObject) -> ProcessingResult:
        """Process one uploaded file end to end.

        Never raises: failures are logged with the file key and stage and
        returned as a failed ProcessingResult.
        """
        wall_start = time.monotonic()
        timings: dict[str, float] = {}
        artifacts: dict[str, str] = {}
        metrics = FileMetrics(
            bucket=source.bucket,
            file_key=source.key,
            status="completed",
            processing_wall_time_seconds=0.0,
            stage_timings=timings,
        )

        try:
            record = self._run(source, timings, artifacts, metrics)
        except Exception as exc:
            stage = _determine_error_stage(timings)
            logger.error(
                "Processing failed at stage '%s': %s",
                stage,
                exc,
                exc_info=True,
                extra={
                    "file_key": source.key,
                    "bucket": source.bucket,
                    "stage": stage,
                    "error": type(exc).__name__,
                },
            )
            metrics.status = "failed"
            metrics.error_stage = stage
            metrics.error_message = str(exc)
            metrics.processing_wall_time_seconds = time.monotonic() - wall_start
            log_file_metrics(metrics)
            return ProcessingResult(
                status="failed",
                bucket=source.bucket,
                file_key=source.key,
                artifact_paths=artifacts,
                stage_timings=timings,
                transcription_state=metrics.transcription_state,
                error=ProcessingError(
                    stage=stage,
                    message=str(exc),
                    exception_type=type(exc).__name__,
                ),
            )

        metrics.processing_wall_time_seconds = time.monotonic() - wall_start
        log_file_metrics(metrics)
        return ProcessingResult(
            status="completed",
            bucket=source.bucket,
            file_key=source.key,
            artifact_paths=artifacts,
            stage_timings=timings,
            record=record,
            transcription_state=metrics.transcription_state,
        )

    def _run(
        self,
        source: SourceObject,
        timings: dict[str, float],
        artifacts: dict[str, str],
        metrics: FileMetrics,
    ) -> MetadataRecord:
        """Execute the stages for one file. Raises on failure."""
        with StageTimer("fetch", timings):
            lookup = self._store.get(source.bucket, source.key)
            if not isinstance(lookup, Found):
                raise ObjectNotFoundError(
                    "Source object no longer exists",
                    file_key=source.key,
                    operation="get_object",
                    key=source.key,
                )
            data = lookup.value
        metrics.source_size_bytes = len(data)

        with StageTimer("tags", timings):
            tags = read_tags(data)
        metrics.length_ms = tags.length

        with StageTimer("comment", timings):
            comment = parse_comment(tags.comment, self.config.timezone)
            derived = derive_fields(
                source.key,
                tags.title,
                self.config.season_prefixes,
                self._episode_pattern,
            )

        cover_key = None
        with StageTimer("cover", timings):
            if tags.image is not None:
                cover = self._covers.make_available(tags.image, source)
                cover_key = cover.key
                metrics.cover_uploaded = cover.uploaded
                artifacts["cover"] = cover.key

        with StageTimer("transcription", timings):
            outcome = self._decider.resolve(source, tags.length)
        metrics.transcription_state = outcome.state.value
        metrics.transcription_job_name = outcome.job_name
        artifacts["transcript"] = outcome.reference

        record = build_record(
            source,
            tags,
            comment,
            derived,
            transcription=outcome.reference,
            cover_key=cover_key,
        )
        logger.info(
            "Extracted metadata",
            extra={"file_key": source.key, "bucket": source.bucket, "stage": "store"},
        )

        with StageTimer("store", timings):
            self._store.put(
                source.bucket, source.meta_key, record.to_json(), "application/json"
            )
        artifacts["meta"] = source.meta_key

        with StageTimer("index", timings):
            entries = self._indexer.rebuild(source)
        metrics.index_entries = len(entries)
        artifacts["index"] = source.index_key

        return record

    async def process_event(self, event: Any) -> EventResult:
        """Process every created object reported by a notification.

        Files run concurrently; each file's stages run sequentially.

        Raises:
            ValueError: If the notification payload is malformed.
        """
        sources = parse_notification(event, self.config.generated_folder_name)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.process_file, source) for source in sources)
        )
        return EventResult(results=list(results))
