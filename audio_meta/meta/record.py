"""The persisted metadata record and its composition."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from audio_meta.meta.paths import SourceObject
from audio_meta.tags.comment import ParsedComment
from audio_meta.tags.derived import format_duration
from audio_meta.tags.reader import TagBlock


@dataclass
class MetadataRecord:
    """Sidecar metadata for one audio file.

    ``length`` is the staleness key: a later upload with a different
    length invalidates ``transcription``.
    """

    title: str | None
    length: int | None
    file: str
    duration: str | None
    text: str
    transcription: str
    season: int | None = None
    episode: int | None = None
    tags: list[Any] | None = None
    date: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialisable form with a stable key order; unset optionals are omitted."""
        data: dict[str, Any] = {
            "title": self.title,
            "length": self.length,
            "file": self.file,
            "duration": self.duration,
        }
        if self.season is not None:
            data["season"] = self.season
        if self.episode is not None:
            data["episode"] = self.episode
        data["text"] = self.text
        if self.tags is not None:
            data["tags"] = self.tags
        if self.date is not None:
            data["date"] = self.date
        data["extra"] = self.extra
        if self.image is not None:
            data["image"] = self.image
        data["transcription"] = self.transcription
        return data

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")


def build_record(
    source: SourceObject,
    tags: TagBlock,
    comment: ParsedComment,
    derived: dict[str, Any],
    transcription: str,
    cover_key: str | None = None,
) -> MetadataRecord:
    """Compose every derived field into one MetadataRecord."""
    return MetadataRecord(
        title=tags.title,
        length=tags.length,
        file=source.key,
        duration=format_duration(tags.length),
        season=derived.get("season"),
        episode=derived.get("episode"),
        text=comment.text,
        tags=comment.tags,
        date=comment.date,
        extra=comment.extra,
        image=cover_key,
        transcription=transcription,
    )
