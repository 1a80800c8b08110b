"""Source object identity and the deterministic paths derived from it.

All generated artifacts live under ``<folder>/<generated>/``:
    meta/<basename>.json          metadata record
    meta/index.json               folder index
    img/<hash16>.<ext>            content-addressed cover art
    transcript/<sanitized>.json   transcription output (written externally)
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from urllib.parse import unquote_plus

INDEX_FILENAME = "index.json"

_TRANSCRIPT_NAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_.!*'()/]")
_JOB_NAME_DISALLOWED = re.compile(r"[^0-9a-zA-Z._-]")
_DASH_RUNS = re.compile(r"-+")
JOB_NAME_MAX_BASE_LENGTH = 100


def decode_key(raw_key: str) -> str:
    """Decode a percent/plus encoded key from a storage notification."""
    return unquote_plus(raw_key)


def _join(*parts: str) -> str:
    # Top-level keys have folder "" so the joined path must not start with "./"
    return posixpath.normpath(posixpath.join(*parts))


def sanitize_transcript_name(basename: str) -> str:
    """Restrict a basename to the characters allowed in transcript keys."""
    return _DASH_RUNS.sub("-", _TRANSCRIPT_NAME_DISALLOWED.sub("-", basename))


def sanitize_job_name(basename: str) -> str:
    """Restrict a basename to the transcription job-name alphabet and length."""
    cleaned = _DASH_RUNS.sub("-", _JOB_NAME_DISALLOWED.sub("-", basename))
    return cleaned[:JOB_NAME_MAX_BASE_LENGTH]


@dataclass(frozen=True)
class SourceObject:
    """An uploaded audio object, identified by bucket and decoded key."""

    bucket: str
    key: str
    generated_folder: str = "generated"

    @property
    def folder(self) -> str:
        return posixpath.dirname(self.key)

    @property
    def basename(self) -> str:
        """File name without its final extension."""
        name = posixpath.basename(self.key)
        stem, _ext = posixpath.splitext(name)
        return stem

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.key)[1].lstrip(".").lower()

    @property
    def source_uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    @property
    def generated_root(self) -> str:
        return _join(self.folder, self.generated_folder)

    @property
    def meta_folder(self) -> str:
        return _join(self.generated_root, "meta")

    @property
    def meta_key(self) -> str:
        return _join(self.meta_folder, f"{self.basename}.json")

    @property
    def index_key(self) -> str:
        return _join(self.meta_folder, INDEX_FILENAME)

    @property
    def transcript_key(self) -> str:
        name = sanitize_transcript_name(self.basename)
        return _join(self.generated_root, "transcript", f"{name}.json")

    def cover_key(self, content_hash: str, extension: str) -> str:
        return _join(self.generated_root, "img", f"{content_hash}.{extension}")

    def is_generated(self) -> bool:
        """True if the key points inside a generated artifacts folder."""
        return self.generated_folder in self.key.split("/")[:-1]
