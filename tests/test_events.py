"""Tests for audio_meta.queue.events module."""

import pytest

from audio_meta.queue.events import parse_notification


def _s3_record(key: str, bucket: str = "bucket", event: str = "ObjectCreated:Put") -> dict:
    return {
        "eventName": event,
        "s3": {"bucket": {"name": bucket}, "object": {"key": key}},
    }


class TestS3Notifications:
    """Tests for S3 event notification payloads."""

    def test_keys_are_url_decoded(self):
        [source] = parse_notification({"Records": [_s3_record("s2/Tagesform+12.mp3")]})
        assert source.bucket == "bucket"
        assert source.key == "s2/Tagesform 12.mp3"

    def test_multiple_records_keep_order(self):
        body = {"Records": [_s3_record("a/1.mp3"), _s3_record("a/2.mp3")]}
        assert [s.key for s in parse_notification(body)] == ["a/1.mp3", "a/2.mp3"]

    def test_non_create_events_are_skipped(self):
        body = {"Records": [_s3_record("a/1.mp3", event="ObjectRemoved:Delete")]}
        assert parse_notification(body) == []

    def test_generated_artifacts_are_skipped(self):
        body = {
            "Records": [
                _s3_record("a/generated/meta/1.json"),
                _s3_record("a/1.mp3"),
            ]
        }
        assert [s.key for s in parse_notification(body)] == ["a/1.mp3"]

    def test_custom_generated_folder(self):
        body = {"Records": [_s3_record("a/_meta/img/x.png"), _s3_record("a/generated/x.mp3")]}
        sources = parse_notification(body, generated_folder="_meta")
        assert [s.key for s in sources] == ["a/generated/x.mp3"]
        assert sources[0].meta_key == "a/generated/_meta/meta/x.json"

    def test_missing_key_raises(self):
        body = {"Records": [{"s3": {"bucket": {"name": "b"}, "object": {}}}]}
        with pytest.raises(ValueError, match=r"Records\[0\]\.s3\.object\.key"):
            parse_notification(body)

    def test_records_not_a_list_raises(self):
        with pytest.raises(ValueError, match="Records"):
            parse_notification({"Records": "nope"})


class TestR2Notifications:
    """Tests for R2 event notifications delivered through a queue."""

    def test_put_object(self):
        body = {"action": "PutObject", "bucket": "media", "object": {"key": "s2/a+b.mp3"}}
        [source] = parse_notification(body)
        assert source.bucket == "media"
        assert source.key == "s2/a+b.mp3"

    def test_delete_is_skipped(self):
        body = {"action": "DeleteObject", "bucket": "media", "object": {"key": "a.mp3"}}
        assert parse_notification(body) == []

    def test_missing_bucket_raises(self):
        with pytest.raises(ValueError, match="'bucket'"):
            parse_notification({"action": "PutObject", "object": {"key": "a.mp3"}})


class TestUnrecognizedPayloads:
    @pytest.mark.parametrize("body", [{}, {"hello": "world"}])
    def test_unknown_shape(self, body):
        with pytest.raises(ValueError, match="Unrecognized notification shape"):
            parse_notification(body)

    def test_non_object_body(self):
        with pytest.raises(ValueError, match="<root>"):
            parse_notification(["not", "a", "dict"])
