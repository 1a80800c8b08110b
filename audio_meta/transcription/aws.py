"""AWS Transcribe client implementation.

Starts batch transcription jobs whose JSON result is written by the
service straight into the source bucket.
"""

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from audio_meta.transcription.interface import (
    TranscriptionJob,
    TranscriptionRequest,
    TranscriptionService,
)
from audio_meta.utils.errors import TranscriptionSubmitError

logger = logging.getLogger(__name__)

PROVIDER = "aws-transcribe"


class AwsTranscribeService(TranscriptionService):
    """AWS Transcribe batch job submitter.

    Args:
        region: AWS region of the Transcribe endpoint.
        client: Pre-built boto3 transcribe client, mainly for tests.
    """

    def __init__(self, region: str | None = None, client: object | None = None) -> None:
        if client is None:
            kwargs: dict = {}
            if region:
                kwargs["region_name"] = region
            client = boto3.client("transcribe", **kwargs)
        self.region = region
        self._client = client

    def submit(self, request: TranscriptionRequest) -> TranscriptionJob:
        """Start a transcription job via StartTranscriptionJob.

        Raises:
            TranscriptionSubmitError: On rejection, transport failure, or a
                malformed response.
        """
        try:
            response = self._client.start_transcription_job(
                TranscriptionJobName=request.job_name,
                LanguageCode=request.language_code,
                MediaFormat=request.media_format,
                Media={"MediaFileUri": request.media_uri},
                OutputBucketName=request.output_bucket,
                OutputKey=request.output_key,
            )
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code", "Unknown")
            raise TranscriptionSubmitError(
                f"Failed to start job '{request.job_name}': {error_code}",
                provider=PROVIDER,
            ) from exc
        except BotoCoreError as exc:
            raise TranscriptionSubmitError(
                f"Failed to reach transcription service: {exc}",
                provider=PROVIDER,
            ) from exc

        job = TranscriptionJob.from_response(response, provider=PROVIDER)
        logger.info(
            "Started transcription job %s (%s)",
            job.name,
            job.status,
            extra={"job_name": job.name},
        )
        return job
