"""Content-addressed cover art storage.

Covers are stored once per distinct content under
``<folder>/<generated>/img/<sha256[:16]>.<ext>``; re-uploads of identical
bytes resolve to the existing object without writing.
"""

from __future__ import annotations

import hashlib
import logging
import mimetypes
from dataclasses import dataclass

from audio_meta.meta.paths import SourceObject
from audio_meta.storage.object_store import Found, ObjectStore
from audio_meta.tags.reader import EmbeddedImage

logger = logging.getLogger(__name__)

HASH_LENGTH = 16
FALLBACK_EXTENSION = "jpg"


@dataclass(frozen=True)
class CoverResult:
    """Where a cover lives and whether this call uploaded it."""

    key: str
    uploaded: bool


def content_hash(data: bytes, length: int = HASH_LENGTH) -> str:
    """Truncated SHA-256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()[:length]


def extension_for_mime(mime: str) -> str:
    """Pick a file extension for an image MIME type.

    ``image/png`` style types go through the mimetypes table; bare format
    tokens such as ``JPG`` (ID3v2.2 picture frames) are used directly.
    Anything unrecognised falls back to ``jpg``.
    """
    mime = (mime or "").strip()
    if "/" in mime:
        guessed = mimetypes.guess_extension(mime.lower())
        return guessed.lstrip(".") if guessed else FALLBACK_EXTENSION
    if mime.isalnum():
        return mime.lower()
    return FALLBACK_EXTENSION


class CoverArtCache:
    """Deduplicates cover images by content hash."""

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    def make_available(self, image: EmbeddedImage, source: SourceObject) -> CoverResult:
        """Ensure the cover exists at its content-addressed key.

        Raises:
            StorageTransientError: If the existence check or upload fails.
        """
        key = source.cover_key(
            content_hash(image.data), extension_for_mime(image.mime)
        )
        if isinstance(self._store.head(source.bucket, key), Found):
            logger.debug("Cover already stored at %s", key)
            return CoverResult(key=key, uploaded=False)

        content_type = image.mime if "/" in image.mime else ""
        self._store.put(source.bucket, key, image.data, content_type)
        logger.info(
            "Uploaded new cover %s",
            key,
            extra={"file_key": source.key, "bucket": source.bucket},
        )
        return CoverResult(key=key, uploaded=True)
