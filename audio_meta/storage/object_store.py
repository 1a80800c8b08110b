"""Blob storage contract and S3-compatible implementation.

Lookups return an explicit Found/NotFound result so that a cache miss is
never confused with a failure. Every other failure is raised as
StorageTransientError carrying a StorageErrorKind classified here, at
the boundary with botocore.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from audio_meta.utils.errors import StorageErrorKind, StorageTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_ACCESS_DENIED_CODES = {"403", "AccessDenied", "Forbidden"}
_THROTTLED_CODES = {
    "429",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequests",
}
_UNAVAILABLE_CODES = {"500", "503", "InternalError", "ServiceUnavailable"}


@dataclass(frozen=True)
class Found(Generic[T]):
    """Successful lookup carrying the stored value."""

    value: T


@dataclass(frozen=True)
class NotFound:
    """Lookup of an object that does not exist."""


Lookup = Union[Found[T], NotFound]


def classify_client_error(exc: ClientError) -> StorageErrorKind:
    """Map a botocore ClientError onto a StorageErrorKind."""
    code = str(exc.response.get("Error", {}).get("Code", ""))
    if code in _NOT_FOUND_CODES:
        return StorageErrorKind.NOT_FOUND
    if code in _ACCESS_DENIED_CODES:
        return StorageErrorKind.ACCESS_DENIED
    if code in _THROTTLED_CODES:
        return StorageErrorKind.THROTTLED
    if code in _UNAVAILABLE_CODES:
        return StorageErrorKind.UNAVAILABLE
    return StorageErrorKind.UNKNOWN


class ObjectStore(ABC):
    """Abstract blob store used by every pipeline stage."""

    @abstractmethod
    def get(self, bucket: str, key: str) -> Lookup[bytes]:
        """Read an object's bytes."""

    @abstractmethod
    def put(
        self, bucket: str, key: str, data: bytes, content_type: str = ""
    ) -> None:
        """Write an object, replacing any existing one."""

    @abstractmethod
    def head(self, bucket: str, key: str) -> Lookup[None]:
        """Check whether an object exists without reading it."""

    @abstractmethod
    def list_keys(self, bucket: str, prefix: str) -> list[str]:
        """Return every key under ``prefix``."""


class S3ObjectStore(ObjectStore):
    """ObjectStore backed by S3 or an S3-compatible endpoint (e.g. R2).

    Args:
        region: Region name for the boto3 client.
        endpoint_url: Optional custom endpoint for S3-compatible stores.
        client: Pre-built boto3 S3 client, mainly for tests.
    """

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: object | None = None,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        if client is None:
            kwargs: dict = {}
            if region:
                kwargs["region_name"] = region
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **kwargs)
        self._client = client

    def _error(
        self, exc: Exception, operation: str, bucket: str, key: str
    ) -> StorageTransientError:
        if isinstance(exc, ClientError):
            kind = classify_client_error(exc)
        else:
            kind = StorageErrorKind.UNAVAILABLE
        return StorageTransientError(
            f"Failed to {operation} 's3://{bucket}/{key}': {kind.value}",
            kind=kind,
            operation=operation,
            key=key,
        )

    def get(self, bucket: str, key: str) -> Lookup[bytes]:
        """Read an object's bytes.

        Returns:
            Found with the body, or NotFound if the key does not exist.

        Raises:
            StorageTransientError: For any failure other than a missing key.
        """
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            return Found(response["Body"].read())
        except ClientError as exc:
            if classify_client_error(exc) is StorageErrorKind.NOT_FOUND:
                return NotFound()
            raise self._error(exc, "get_object", bucket, key) from exc
        except BotoCoreError as exc:
            raise self._error(exc, "get_object", bucket, key) from exc

    def put(
        self, bucket: str, key: str, data: bytes, content_type: str = ""
    ) -> None:
        """Store an object.

        Raises:
            StorageTransientError: If the object cannot be stored.
        """
        try:
            kwargs: dict = {"Bucket": bucket, "Key": key, "Body": data}
            if content_type:
                kwargs["ContentType"] = content_type
            self._client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise self._error(exc, "put_object", bucket, key) from exc

    def head(self, bucket: str, key: str) -> Lookup[None]:
        """Check existence of an object.

        Raises:
            StorageTransientError: For any failure other than a missing key.
        """
        try:
            self._client.head_object(Bucket=bucket, Key=key)
            return Found(None)
        except ClientError as exc:
            if classify_client_error(exc) is StorageErrorKind.NOT_FOUND:
                return NotFound()
            raise self._error(exc, "head_object", bucket, key) from exc
        except BotoCoreError as exc:
            raise self._error(exc, "head_object", bucket, key) from exc

    def list_keys(self, bucket: str, prefix: str) -> list[str]:
        """List all keys under a prefix, following pagination.

        Raises:
            StorageTransientError: If the listing fails.
        """
        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
        except (ClientError, BotoCoreError) as exc:
            raise self._error(exc, "list_objects_v2", bucket, prefix) from exc
        logger.debug("Listed %d objects under s3://%s/%s", len(keys), bucket, prefix)
        return keys
