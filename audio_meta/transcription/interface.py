"""Abstract transcription service interface.

Submission is fire-and-forget: the service writes its result to the
requested output location asynchronously. Concrete implementations
(e.g., AWS Transcribe) subclass TranscriptionService.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from audio_meta.utils.errors import TranscriptionSubmitError


@dataclass(frozen=True)
class TranscriptionRequest:
    """Everything needed to start one transcription job."""

    language_code: str
    media_uri: str
    media_format: str
    job_name: str
    output_bucket: str
    output_key: str


@dataclass(frozen=True)
class TranscriptionJob:
    """Handle of a submitted job, validated from the service response."""

    name: str
    status: str

    @classmethod
    def from_response(cls, response: Any, provider: str) -> TranscriptionJob:
        """Validate a start-job response.

        Raises:
            TranscriptionSubmitError: If the response lacks a job name or status.
        """
        job = response.get("TranscriptionJob") if isinstance(response, dict) else None
        if not isinstance(job, dict):
            raise TranscriptionSubmitError(
                "Response is missing 'TranscriptionJob'", provider=provider
            )
        name = job.get("TranscriptionJobName")
        status = job.get("TranscriptionJobStatus")
        if not name or not isinstance(name, str):
            raise TranscriptionSubmitError(
                "Response is missing 'TranscriptionJobName'", provider=provider
            )
        if not status or not isinstance(status, str):
            raise TranscriptionSubmitError(
                "Response is missing 'TranscriptionJobStatus'", provider=provider
            )
        if status == "FAILED":
            reason = job.get("FailureReason", "unknown reason")
            raise TranscriptionSubmitError(
                f"Job '{name}' failed on submission: {reason}", provider=provider
            )
        return cls(name=name, status=status)


class TranscriptionService(ABC):
    """Abstract base class for transcription service clients.

    Subclasses must implement the submit() method.
    """

    @abstractmethod
    def submit(self, request: TranscriptionRequest) -> TranscriptionJob:
        """Start a transcription job.

        Args:
            request: Source media, destination and language of the job.

        Returns:
            Handle of the accepted job.

        Raises:
            TranscriptionSubmitError: If the service rejects or cannot be reached.
        """
