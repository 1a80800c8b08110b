"""Shared fixtures: in-memory collaborators and ID3 test files."""

from __future__ import annotations

import itertools
from collections.abc import Callable

import pytest
from mutagen.id3 import APIC, COMM, ID3, TIT2, TLEN

from audio_meta.config import PipelineConfig
from audio_meta.storage.object_store import Found, Lookup, NotFound, ObjectStore
from audio_meta.transcription.interface import (
    TranscriptionJob,
    TranscriptionRequest,
    TranscriptionService,
)
from audio_meta.utils.errors import (
    StorageErrorKind,
    StorageTransientError,
    TranscriptionSubmitError,
)


class InMemoryObjectStore(ObjectStore):
    """ObjectStore fake keyed by (bucket, key) with call recording."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.puts: list[str] = []
        self.heads: list[str] = []
        self.fail_head_with: StorageErrorKind | None = None
        self.fail_get_for: dict[str, StorageErrorKind] = {}

    def get(self, bucket: str, key: str) -> Lookup[bytes]:
        if key in self.fail_get_for:
            raise StorageTransientError(
                "injected get failure", kind=self.fail_get_for[key], key=key
            )
        if (bucket, key) in self.objects:
            return Found(self.objects[(bucket, key)])
        return NotFound()

    def put(self, bucket: str, key: str, data: bytes, content_type: str = "") -> None:
        self.puts.append(key)
        self.objects[(bucket, key)] = data

    def head(self, bucket: str, key: str) -> Lookup[None]:
        self.heads.append(key)
        if self.fail_head_with is not None:
            raise StorageTransientError(
                "injected head failure", kind=self.fail_head_with, key=key
            )
        if (bucket, key) in self.objects:
            return Found(None)
        return NotFound()

    def list_keys(self, bucket: str, prefix: str) -> list[str]:
        return sorted(
            key for (b, key) in self.objects if b == bucket and key.startswith(prefix)
        )

    def keys_under(self, prefix: str) -> list[str]:
        return sorted(key for (_b, key) in self.objects if key.startswith(prefix))


class RecordingTranscriber(TranscriptionService):
    """TranscriptionService fake that records requests."""

    def __init__(self, fail: bool = False) -> None:
        self.requests: list[TranscriptionRequest] = []
        self.fail = fail

    def submit(self, request: TranscriptionRequest) -> TranscriptionJob:
        if self.fail:
            raise TranscriptionSubmitError("service unavailable", provider="fake")
        self.requests.append(request)
        return TranscriptionJob(name=request.job_name, status="IN_PROGRESS")


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def transcriber() -> RecordingTranscriber:
    return RecordingTranscriber()


@pytest.fixture
def failing_transcriber() -> RecordingTranscriber:
    return RecordingTranscriber(fail=True)


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def fixed_clock() -> Callable[[], float]:
    """Clock advancing one second per call, starting 2022-01-25T00:00:00Z."""
    ticks = itertools.count()
    return lambda: 1_643_068_800.0 + next(ticks)


@pytest.fixture
def make_mp3(tmp_path) -> Callable[..., bytes]:
    """Build the bytes of an ID3-tagged file (tag block only, no audio frames)."""
    counter = itertools.count()

    def _make(
        title: str | None = None,
        length: int | str | None = None,
        comment: str | None = None,
        image: bytes | None = None,
        mime: str = "image/png",
    ) -> bytes:
        tags = ID3()
        if title is not None:
            tags.add(TIT2(encoding=3, text=[title]))
        if length is not None:
            tags.add(TLEN(encoding=3, text=[str(length)]))
        if comment is not None:
            tags.add(COMM(encoding=3, lang="eng", desc="", text=[comment]))
        if image is not None:
            tags.add(APIC(encoding=3, mime=mime, type=3, desc="Cover", data=image))
        path = tmp_path / f"fixture-{next(counter)}.mp3"
        tags.save(str(path))
        return path.read_bytes()

    return _make
