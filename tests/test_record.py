"""Tests for audio_meta.meta.record module."""

import json

from audio_meta.meta.paths import SourceObject
from audio_meta.meta.record import MetadataRecord, build_record
from audio_meta.tags.comment import ParsedComment
from audio_meta.tags.reader import TagBlock

SOURCE = SourceObject("bucket", "s2/Tagesform 12.mp3")


class TestBuildRecord:
    """Tests for build_record() composition."""

    def test_all_fields(self):
        record = build_record(
            SOURCE,
            TagBlock(title="Tagesform 12", length=18_484_832),
            ParsedComment(
                text="Shownotes",
                tags=["a", "b"],
                date="2022-01-24T23:00:00.000Z",
                extra={"guest": "Anna"},
            ),
            {"season": 2, "episode": 12},
            transcription="s2/generated/transcript/Tagesform-12.json",
            cover_key="s2/generated/img/abc.png",
        )

        assert record.to_dict() == {
            "title": "Tagesform 12",
            "length": 18_484_832,
            "file": "s2/Tagesform 12.mp3",
            "duration": "05:08:04",
            "season": 2,
            "episode": 12,
            "text": "Shownotes",
            "tags": ["a", "b"],
            "date": "2022-01-24T23:00:00.000Z",
            "extra": {"guest": "Anna"},
            "image": "s2/generated/img/abc.png",
            "transcription": "s2/generated/transcript/Tagesform-12.json",
        }

    def test_key_order_is_stable(self):
        record = build_record(
            SOURCE,
            TagBlock(title="Tagesform 12", length=1000),
            ParsedComment(text="x", tags=["a"], date="d"),
            {"season": 2, "episode": 12},
            transcription="t.json",
            cover_key="img.png",
        )
        assert list(record.to_dict()) == [
            "title",
            "length",
            "file",
            "duration",
            "season",
            "episode",
            "text",
            "tags",
            "date",
            "extra",
            "image",
            "transcription",
        ]

    def test_unset_optionals_are_omitted(self):
        record = build_record(
            SOURCE, TagBlock(), ParsedComment(), {}, transcription="t.json"
        )
        data = record.to_dict()

        for absent in ("season", "episode", "tags", "date", "image"):
            assert absent not in data
        assert data["title"] is None
        assert data["length"] is None
        assert data["duration"] is None
        assert data["text"] == ""
        assert data["extra"] == {}


class TestMetadataRecordJson:
    def test_non_ascii_is_kept_verbatim(self):
        record = MetadataRecord(
            title="Überraschung",
            length=None,
            file="a.mp3",
            duration=None,
            text="",
            transcription="t.json",
        )
        raw = record.to_json()
        assert "Überraschung".encode("utf-8") in raw
        assert json.loads(raw)["title"] == "Überraschung"

    def test_same_input_gives_identical_bytes(self):
        def make() -> bytes:
            return build_record(
                SOURCE,
                TagBlock(title="t", length=5),
                ParsedComment(text="x", extra={"b": 1, "a": 2}),
                {},
                transcription="t.json",
            ).to_json()

        assert make() == make()
