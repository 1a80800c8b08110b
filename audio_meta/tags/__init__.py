"""Embedded tag decoding and comment grammar.

Public API:
    read_tags         Decode an in-memory file's ID3 block into a TagBlock.
    parse_comment     Split a comment into text, tags, date and extras.
    derive_fields     Season/episode heuristics from key and title.
    format_duration   Render a millisecond length as HH:MM:SS.
"""

from audio_meta.tags.comment import ParsedComment, parse_comment
from audio_meta.tags.derived import derive_fields, format_duration
from audio_meta.tags.reader import EmbeddedImage, TagBlock, read_tags

__all__ = [
    "EmbeddedImage",
    "ParsedComment",
    "TagBlock",
    "derive_fields",
    "format_duration",
    "parse_comment",
    "read_tags",
]
