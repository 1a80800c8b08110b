"""Embedded ID3 tag extraction using mutagen.

Decodes the tag block of an uploaded audio file held in memory. A file
without an ID3 header decodes to an empty TagBlock; a header that is
present but corrupt raises TagReadError.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from mutagen import MutagenError
from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen.mp3 import MP3

from audio_meta.utils.errors import TagReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddedImage:
    """Cover image embedded in the tag block."""

    data: bytes
    mime: str


@dataclass(frozen=True)
class TagBlock:
    """Raw fields read from an audio file's tags."""

    title: str | None = None
    length: int | None = None
    comment: str = ""
    image: EmbeddedImage | None = None


def read_tags(data: bytes) -> TagBlock:
    """Decode the ID3 tag block of an in-memory audio file.

    Args:
        data: Raw bytes of the audio file.

    Returns:
        TagBlock with title, length (ms), comment and cover image.

    Raises:
        TagReadError: If an ID3 header is present but cannot be decoded.
    """
    try:
        tags = ID3(io.BytesIO(data))
    except ID3NoHeaderError:
        logger.info("No ID3 header found, using empty tag block")
        return TagBlock(length=_stream_length_ms(data))
    except MutagenError as exc:
        raise TagReadError(f"Unreadable ID3 tag block: {exc}") from exc

    length = _parse_length(_text_frame(tags, "TLEN"))
    if length is None:
        length = _stream_length_ms(data)

    return TagBlock(
        title=_text_frame(tags, "TIT2"),
        length=length,
        comment=_comment_text(tags),
        image=_cover_image(tags),
    )


def _text_frame(tags: ID3, frame_id: str) -> str | None:
    frames = tags.getall(frame_id)
    if not frames or not frames[0].text:
        return None
    return str(frames[0].text[0])


def _parse_length(value: str | None) -> int | None:
    """Parse the TLEN frame (milliseconds as a decimal string)."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.warning("Ignoring invalid TLEN value: %r", value)
        return None


def _stream_length_ms(data: bytes) -> int | None:
    """Measure the MPEG stream when the tags carry no usable length."""
    try:
        info = MP3(io.BytesIO(data)).info
    except MutagenError:
        return None
    if not info.length:
        return None
    return int(info.length * 1000)


def _comment_text(tags: ID3) -> str:
    frames = tags.getall("COMM")
    if not frames:
        return ""
    return "\n".join(str(part) for part in frames[0].text)


def _cover_image(tags: ID3) -> EmbeddedImage | None:
    frames = tags.getall("APIC")
    if not frames or not frames[0].data:
        return None
    return EmbeddedImage(data=bytes(frames[0].data), mime=frames[0].mime or "")
