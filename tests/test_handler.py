"""Tests for audio_meta.handler function entry point."""

import pytest

import audio_meta.handler as handler_mod
from audio_meta.pipeline import MetadataPipeline
from audio_meta.utils.errors import EventProcessingError


@pytest.fixture
def installed_pipeline(monkeypatch, config, store, transcriber, fixed_clock):
    pipeline = MetadataPipeline(config, store, transcriber, clock=fixed_clock)
    monkeypatch.setattr(handler_mod, "_pipeline", pipeline)
    return pipeline


def _event(*keys: str) -> dict:
    return {
        "Records": [
            {
                "eventName": "ObjectCreated:Put",
                "s3": {"bucket": {"name": "bucket"}, "object": {"key": key}},
            }
            for key in keys
        ]
    }


class TestHandler:
    """Tests for handler() success and failure reporting."""

    def test_returns_summary(self, installed_pipeline, store, make_mp3):
        store.objects[("bucket", "s2/Tagesform 1.mp3")] = make_mp3(
            title="Tagesform 1", length=1000
        )

        summary = handler_mod.handler(_event("s2/Tagesform+1.mp3"))

        assert summary == {"processed": 1, "failed": []}
        assert ("bucket", "s2/generated/meta/Tagesform 1.json") in store.objects

    def test_any_failed_file_fails_the_invocation(self, installed_pipeline, store, make_mp3):
        store.objects[("bucket", "a/ok.mp3")] = make_mp3(title="ok")

        with pytest.raises(EventProcessingError) as exc_info:
            handler_mod.handler(_event("a/ok.mp3", "a/missing.mp3"))

        assert exc_info.value.failed_keys == ["a/missing.mp3"]
        assert ("bucket", "a/generated/meta/ok.json") in store.objects

    def test_malformed_event_raises(self, installed_pipeline):
        with pytest.raises(ValueError):
            handler_mod.handler({"unexpected": True})

    def test_pipeline_is_built_once(self, monkeypatch, installed_pipeline):
        monkeypatch.setattr(handler_mod, "_pipeline", None)
        built = []

        def fake_from_config(config):
            built.append(config)
            return installed_pipeline

        monkeypatch.setattr(handler_mod, "setup_logging", lambda: None)
        monkeypatch.setattr(MetadataPipeline, "from_config", staticmethod(fake_from_config))

        assert handler_mod._get_pipeline() is installed_pipeline
        assert handler_mod._get_pipeline() is installed_pipeline
        assert len(built) == 1
