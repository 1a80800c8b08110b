"""Reuse-or-request decision for a file's transcript.

A stored metadata record whose ``length`` equals the current file's
length and which already names a transcript is trusted; re-processing an
unchanged file therefore never pays for a second transcription. In every
other case a new job is submitted and the record points at the location
the service will write to.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from audio_meta.meta.paths import SourceObject, sanitize_job_name
from audio_meta.storage.object_store import Found, Lookup, ObjectStore
from audio_meta.transcription.interface import (
    TranscriptionRequest,
    TranscriptionService,
)

logger = logging.getLogger(__name__)


class PriorState(Enum):
    """What the previously stored record says about the transcript."""

    NO_PRIOR_RECORD = "no_prior_record"
    PRIOR_RECORD_VALID = "prior_record_valid"
    PRIOR_RECORD_STALE = "prior_record_stale"


@dataclass(frozen=True)
class PriorAssessment:
    state: PriorState
    transcription: str | None = None


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Transcript reference chosen for the record."""

    state: PriorState
    reference: str
    job_name: str | None = None

    @property
    def submitted(self) -> bool:
        return self.job_name is not None


def evaluate_prior(lookup: Lookup[bytes], length: int | None) -> PriorAssessment:
    """Classify a prior-record lookup against the current file length."""
    if not isinstance(lookup, Found):
        return PriorAssessment(PriorState.NO_PRIOR_RECORD)
    try:
        previous = json.loads(lookup.value)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Ignoring unparseable prior metadata record")
        return PriorAssessment(PriorState.NO_PRIOR_RECORD)
    if not isinstance(previous, dict):
        logger.warning("Ignoring prior metadata record that is not an object")
        return PriorAssessment(PriorState.NO_PRIOR_RECORD)

    transcription = previous.get("transcription")
    if not transcription or not isinstance(transcription, str):
        return PriorAssessment(PriorState.PRIOR_RECORD_STALE)
    # An unknown length cannot prove the audio is unchanged
    if length is None or previous.get("length") != length:
        return PriorAssessment(PriorState.PRIOR_RECORD_STALE)
    return PriorAssessment(PriorState.PRIOR_RECORD_VALID, transcription)


def build_job_name(basename: str, clock: Callable[[], float] = time.time) -> str:
    """Sanitized, length-bounded basename with a millisecond timestamp suffix."""
    return f"{sanitize_job_name(basename)}--{int(clock() * 1000)}"


class TranscriptionDecider:
    """Decides, and if needed requests, the transcript for one file.

    Args:
        store: Blob store holding prior metadata records.
        service: Transcription service used for new jobs.
        language_code: Language of the spoken audio (e.g. "de-DE").
        media_format: Media format reported to the service.
        clock: Time source for job-name suffixes.
    """

    def __init__(
        self,
        store: ObjectStore,
        service: TranscriptionService,
        language_code: str,
        media_format: str = "mp3",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._service = service
        self._language_code = language_code
        self._media_format = media_format
        self._clock = clock

    def resolve(self, source: SourceObject, length: int | None) -> TranscriptionOutcome:
        """Reuse the prior transcript reference or submit a new job.

        Raises:
            StorageTransientError: If the prior record cannot be read for a
                reason other than its absence.
            TranscriptionSubmitError: If the job submission fails.
        """
        prior = evaluate_prior(self._store.get(source.bucket, source.meta_key), length)
        if prior.state is PriorState.PRIOR_RECORD_VALID:
            logger.info(
                "Reusing transcript %s",
                prior.transcription,
                extra={"file_key": source.key, "stage": "transcription"},
            )
            return TranscriptionOutcome(prior.state, prior.transcription)

        request = TranscriptionRequest(
            language_code=self._language_code,
            media_uri=source.source_uri,
            media_format=self._media_format,
            job_name=build_job_name(source.basename, self._clock),
            output_bucket=source.bucket,
            output_key=source.transcript_key,
        )
        job = self._service.submit(request)
        logger.info(
            "Requested transcription (%s)",
            prior.state.value,
            extra={"file_key": source.key, "job_name": job.name},
        )
        return TranscriptionOutcome(prior.state, request.output_key, request.job_name)
