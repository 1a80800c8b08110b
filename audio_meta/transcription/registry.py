"""Transcription service registry with configuration-driven provider selection.

Maps provider name strings to service classes. Use
get_transcription_service() to instantiate a service by name with
service-specific configuration.
"""

from audio_meta.transcription.aws import AwsTranscribeService
from audio_meta.transcription.interface import TranscriptionService
from audio_meta.utils.errors import TranscriptionSubmitError

TRANSCRIPTION_SERVICES: dict[str, type[TranscriptionService]] = {
    "aws-transcribe": AwsTranscribeService,
}


def get_transcription_service(provider: str, **kwargs: object) -> TranscriptionService:
    """Create a transcription service instance by provider name.

    Args:
        provider: Provider name (e.g., "aws-transcribe").
        **kwargs: Service-specific configuration passed to the constructor.

    Returns:
        An initialized TranscriptionService instance.

    Raises:
        TranscriptionSubmitError: If the provider name is not registered.
    """
    service_cls = TRANSCRIPTION_SERVICES.get(provider)
    if not service_cls:
        available = ", ".join(sorted(TRANSCRIPTION_SERVICES.keys()))
        raise TranscriptionSubmitError(
            f"Unknown transcription provider: '{provider}'. Available: {available}",
            provider=provider,
        )
    return service_cls(**kwargs)
