"""Deployment configuration for the metadata pipeline.

Values are fixed per deployment and read from environment variables:
    AWS_REGION, GENERATED_FOLDER, PIPELINE_TIMEZONE,
    TRANSCRIBE_LANGUAGE_CODE, TRANSCRIBE_MEDIA_FORMAT,
    TRANSCRIPTION_PROVIDER, SEASON_PREFIXES, EPISODE_PATTERN,
    S3_ENDPOINT_URL
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_REGION = "eu-central-1"
DEFAULT_GENERATED_FOLDER = "generated"
DEFAULT_TIMEZONE = "Europe/Berlin"
DEFAULT_LANGUAGE_CODE = "de-DE"
DEFAULT_MEDIA_FORMAT = "mp3"
DEFAULT_TRANSCRIPTION_PROVIDER = "aws-transcribe"
DEFAULT_SEASON_PREFIXES: dict[str, int] = {"s2": 2}
DEFAULT_EPISODE_PATTERN = r"Tagesform\s*([0-9,.]+)"


def parse_season_prefixes(raw: str) -> dict[str, int]:
    """Parse a ``prefix=season`` list such as ``"s2=2,s3=3"``.

    Raises:
        ValueError: If an entry is not ``prefix=<int>``.
    """
    table: dict[str, int] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        prefix, sep, season = entry.partition("=")
        if not sep or not prefix.strip():
            raise ValueError(f"Invalid season prefix entry: '{entry}'")
        try:
            table[prefix.strip()] = int(season.strip())
        except ValueError as exc:
            raise ValueError(
                f"Season for prefix '{prefix.strip()}' must be an integer"
            ) from exc
    return table


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable pipeline settings shared by every processed file."""

    region: str = DEFAULT_REGION
    generated_folder_name: str = DEFAULT_GENERATED_FOLDER
    timezone: str = DEFAULT_TIMEZONE
    language_code: str = DEFAULT_LANGUAGE_CODE
    media_format: str = DEFAULT_MEDIA_FORMAT
    transcription_provider: str = DEFAULT_TRANSCRIPTION_PROVIDER
    season_prefixes: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_SEASON_PREFIXES)
    )
    episode_pattern: str = DEFAULT_EPISODE_PATTERN
    endpoint_url: str | None = None

    def __post_init__(self) -> None:
        if not self.generated_folder_name or "/" in self.generated_folder_name:
            raise ValueError(
                f"Invalid generated folder name: '{self.generated_folder_name}'"
            )
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: '{self.timezone}'") from exc
        try:
            compiled = re.compile(self.episode_pattern)
        except re.error as exc:
            raise ValueError(
                f"Invalid episode pattern: '{self.episode_pattern}'"
            ) from exc
        if compiled.groups < 1:
            raise ValueError("Episode pattern must contain a capture group")

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Build the configuration from environment variables.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        season_raw = os.environ.get("SEASON_PREFIXES")
        return cls(
            region=os.environ.get("AWS_REGION", DEFAULT_REGION),
            generated_folder_name=os.environ.get(
                "GENERATED_FOLDER", DEFAULT_GENERATED_FOLDER
            ),
            timezone=os.environ.get("PIPELINE_TIMEZONE", DEFAULT_TIMEZONE),
            language_code=os.environ.get(
                "TRANSCRIBE_LANGUAGE_CODE", DEFAULT_LANGUAGE_CODE
            ),
            media_format=os.environ.get(
                "TRANSCRIBE_MEDIA_FORMAT", DEFAULT_MEDIA_FORMAT
            ),
            transcription_provider=os.environ.get(
                "TRANSCRIPTION_PROVIDER", DEFAULT_TRANSCRIPTION_PROVIDER
            ),
            season_prefixes=(
                parse_season_prefixes(season_raw)
                if season_raw is not None
                else dict(DEFAULT_SEASON_PREFIXES)
            ),
            episode_pattern=os.environ.get(
                "EPISODE_PATTERN", DEFAULT_EPISODE_PATTERN
            ),
            endpoint_url=os.environ.get("S3_ENDPOINT_URL") or None,
        )
