"""Custom exception hierarchy for the metadata pipeline.

All exceptions inherit from PipelineError, enabling targeted handling
at pipeline boundaries while preserving specific failure context.
Storage failures carry a closed StorageErrorKind so callers never
inspect error codes or message text.
"""

from enum import Enum


class StorageErrorKind(Enum):
    """Classification of a failed storage operation."""

    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    THROTTLED = "throttled"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """Base exception for all metadata pipeline errors."""

    def __init__(self, message: str, file_key: str | None = None) -> None:
        self.file_key = file_key
        super().__init__(message)

    def __str__(self) -> str:
        if self.file_key:
            return f"[file={self.file_key}] {super().__str__()}"
        return super().__str__()


class TagReadError(PipelineError):
    """Raised when the audio tag container is present but cannot be decoded."""


class CommentGrammarError(PipelineError):
    """Raised when a structured comment block is unparseable or not a mapping."""

    def __init__(
        self,
        message: str,
        file_key: str | None = None,
        segment: str | None = None,
    ) -> None:
        self.segment = segment
        super().__init__(message, file_key)


class StorageError(PipelineError):
    """Raised when a blob store operation fails."""

    def __init__(
        self,
        message: str,
        file_key: str | None = None,
        kind: StorageErrorKind = StorageErrorKind.UNKNOWN,
        operation: str | None = None,
        key: str | None = None,
    ) -> None:
        self.kind = kind
        self.operation = operation
        self.key = key
        super().__init__(message, file_key)


class ObjectNotFoundError(StorageError):
    """Raised when an object that must exist is missing."""

    def __init__(
        self,
        message: str,
        file_key: str | None = None,
        operation: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(
            message,
            file_key,
            kind=StorageErrorKind.NOT_FOUND,
            operation=operation,
            key=key,
        )


class StorageTransientError(StorageError):
    """Raised for storage failures other than a missing object."""


class TranscriptionSubmitError(PipelineError):
    """Raised when the transcription service rejects or cannot take a job."""

    def __init__(
        self,
        message: str,
        file_key: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, file_key)


class EventProcessingError(PipelineError):
    """Raised when one or more files of a notification failed."""

    def __init__(self, message: str, failed_keys: list[str]) -> None:
        self.failed_keys = failed_keys
        super().__init__(message)
