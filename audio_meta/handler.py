"""Function entry point for S3 object-created notifications.

Configure the function runtime to call ``audio_meta.handler.handler``.
Any failed file makes the invocation fail so the platform redelivers the
notification; already processed files are idempotent on redelivery.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from audio_meta.config import PipelineConfig
from audio_meta.observability.logger import setup_logging
from audio_meta.pipeline import MetadataPipeline

logger = logging.getLogger(__name__)

_pipeline: MetadataPipeline | None = None


def _get_pipeline() -> MetadataPipeline:
    """Build the pipeline once per warm runtime."""
    global _pipeline
    if _pipeline is None:
        setup_logging()
        _pipeline = MetadataPipeline.from_config(PipelineConfig.from_env())
    return _pipeline


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Process an object-created notification.

    Raises:
        ValueError: If the notification is malformed.
        EventProcessingError: If any file of the notification failed.
    """
    pipeline = _get_pipeline()
    result = asyncio.run(pipeline.process_event(event))
    summary = result.summary()
    logger.info("Processed %d files, %d failed", summary["processed"], len(summary["failed"]))
    result.raise_for_failures()
    return summary
