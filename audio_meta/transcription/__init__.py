"""Transcription job submission and transcript reuse decisions."""

from audio_meta.transcription.interface import (
    TranscriptionJob,
    TranscriptionRequest,
    TranscriptionService,
)
from audio_meta.transcription.registry import get_transcription_service

__all__ = [
    "TranscriptionJob",
    "TranscriptionRequest",
    "TranscriptionService",
    "get_transcription_service",
]
