"""Tests for audio_meta.transcription service, interface and registry."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from audio_meta.transcription.aws import AwsTranscribeService
from audio_meta.transcription.interface import (
    TranscriptionJob,
    TranscriptionRequest,
    TranscriptionService,
)
from audio_meta.transcription.registry import (
    TRANSCRIPTION_SERVICES,
    get_transcription_service,
)
from audio_meta.utils.errors import TranscriptionSubmitError

REQUEST = TranscriptionRequest(
    language_code="de-DE",
    media_uri="s3://bucket/s2/Tagesform 12.mp3",
    media_format="mp3",
    job_name="Tagesform-12--1643068800000",
    output_bucket="bucket",
    output_key="s2/generated/transcript/Tagesform-12.json",
)


def _job_response(status: str = "IN_PROGRESS", **extra) -> dict:
    return {
        "TranscriptionJob": {
            "TranscriptionJobName": REQUEST.job_name,
            "TranscriptionJobStatus": status,
            **extra,
        }
    }


class TestTranscriptionJobFromResponse:
    """Tests for TranscriptionJob.from_response() validation."""

    def test_valid_response(self):
        job = TranscriptionJob.from_response(_job_response(), provider="p")
        assert job == TranscriptionJob(name=REQUEST.job_name, status="IN_PROGRESS")

    def test_missing_job_raises(self):
        with pytest.raises(TranscriptionSubmitError, match="TranscriptionJob"):
            TranscriptionJob.from_response({}, provider="p")

    def test_missing_status_raises(self):
        response = {"TranscriptionJob": {"TranscriptionJobName": "x"}}
        with pytest.raises(TranscriptionSubmitError, match="TranscriptionJobStatus"):
            TranscriptionJob.from_response(response, provider="p")

    def test_failed_status_raises_with_reason(self):
        response = _job_response("FAILED", FailureReason="Unsupported media")
        with pytest.raises(TranscriptionSubmitError, match="Unsupported media"):
            TranscriptionJob.from_response(response, provider="p")


class TestAwsTranscribeService:
    """Tests for AwsTranscribeService.submit()."""

    def test_submit_starts_job(self):
        client = MagicMock()
        client.start_transcription_job.return_value = _job_response()

        job = AwsTranscribeService(client=client).submit(REQUEST)

        assert job.name == REQUEST.job_name
        client.start_transcription_job.assert_called_once_with(
            TranscriptionJobName=REQUEST.job_name,
            LanguageCode="de-DE",
            MediaFormat="mp3",
            Media={"MediaFileUri": "s3://bucket/s2/Tagesform 12.mp3"},
            OutputBucketName="bucket",
            OutputKey="s2/generated/transcript/Tagesform-12.json",
        )

    def test_rejection_raises_submit_error(self):
        client = MagicMock()
        client.start_transcription_job.side_effect = ClientError(
            {"Error": {"Code": "ConflictException", "Message": "exists"}},
            "StartTranscriptionJob",
        )

        with pytest.raises(TranscriptionSubmitError, match="ConflictException") as exc_info:
            AwsTranscribeService(client=client).submit(REQUEST)
        assert exc_info.value.provider == "aws-transcribe"

    def test_transport_failure_raises_submit_error(self):
        client = MagicMock()
        client.start_transcription_job.side_effect = EndpointConnectionError(
            endpoint_url="https://transcribe.example.com"
        )

        with pytest.raises(TranscriptionSubmitError):
            AwsTranscribeService(client=client).submit(REQUEST)

    def test_client_built_for_region(self):
        with patch("audio_meta.transcription.aws.boto3") as mock_boto:
            AwsTranscribeService(region="eu-central-1")
        mock_boto.client.assert_called_once_with("transcribe", region_name="eu-central-1")


class TestRegistry:
    """Tests for provider lookup."""

    def test_registered_services_implement_interface(self):
        for service_cls in TRANSCRIPTION_SERVICES.values():
            assert issubclass(service_cls, TranscriptionService)

    def test_get_known_provider(self):
        with patch("audio_meta.transcription.aws.boto3"):
            service = get_transcription_service("aws-transcribe", region="eu-central-1")
        assert isinstance(service, AwsTranscribeService)
        assert service.region == "eu-central-1"

    def test_unknown_provider_raises(self):
        with pytest.raises(TranscriptionSubmitError, match="Unknown transcription provider"):
            get_transcription_service("whisper")
