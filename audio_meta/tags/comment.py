"""Comment field grammar: free text plus an optional YAML data block.

A comment looks like::

    Notes for the listener, any number of lines.
    --
    tags: interview, live
    date: 2022-01-25 19:30
    guest: Jane Doe

The first line consisting solely of ``--`` separates the text from the
structured block. ``tags`` and ``date`` are normalised, every other key
is passed through verbatim in ``extra``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

import yaml
from dateutil import parser as dtparse

from audio_meta.utils.errors import CommentGrammarError

DELIMITER = "--"


class _CommentLoader(yaml.SafeLoader):
    """SafeLoader resolving plain scalars by the YAML 1.2 core schema.

    Timestamps, sexagesimal numbers and yes/no/on/off booleans stay
    strings, so values like ``12:30`` or ``NO`` pass through verbatim.
    """


_YAML11_TAGS = {
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
}

# Copy before mutating so the global SafeLoader resolvers stay untouched
_CommentLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _YAML11_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_CommentLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
_CommentLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*)|0x[0-9a-fA-F]+)$"),
    list("-+0123456789"),
)
_CommentLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(
        r"""^(?:[-+]?(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?
        |[-+]?[0-9]+[eE][-+]?[0-9]+
        |[-+]?\.(?:inf|Inf|INF)
        |\.(?:nan|NaN|NAN))$""",
        re.X,
    ),
    list("-+.0123456789"),
)


@dataclass
class ParsedComment:
    """Result of splitting and parsing a comment field."""

    text: str = ""
    tags: list[Any] | None = None
    date: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def split_comment(comment: str) -> tuple[str, str | None]:
    """Split a comment on its first ``--`` line.

    Returns:
        Tuple of (trimmed text, structured segment or None).
    """
    lines = comment.splitlines()
    for index, line in enumerate(lines):
        if line.strip() == DELIMITER:
            text = "\n".join(lines[:index]).strip()
            segment = "\n".join(lines[index + 1 :])
            return text, segment
    return comment.strip(), None


def parse_comment(comment: str, timezone: str) -> ParsedComment:
    """Parse a comment field into text, tags, date and passthrough extras.

    Args:
        comment: Raw comment text from the tag block.
        timezone: IANA zone used to interpret dates without an offset.

    Returns:
        ParsedComment with ``tags``/``date`` left as None when absent.

    Raises:
        CommentGrammarError: If the structured block is not a YAML mapping
            or its date cannot be interpreted.
    """
    text, segment = split_comment(comment)
    data = _load_block(segment) if segment and segment.strip() else {}

    extra = dict(data)
    raw_tags = extra.pop("tags", None)
    raw_date = extra.pop("date", None)

    return ParsedComment(
        text=text,
        tags=normalize_tags(raw_tags),
        date=(
            resolve_date(raw_date, timezone)
            if isinstance(raw_date, str)
            else None
        ),
        extra=extra,
    )


def _load_block(segment: str) -> dict[str, Any]:
    try:
        data = yaml.load(segment, Loader=_CommentLoader)  # noqa: S506
    except yaml.YAMLError as exc:
        raise CommentGrammarError(
            f"Structured comment block is not valid YAML: {exc}",
            segment=segment,
        ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CommentGrammarError(
            f"Structured comment block must be a mapping, got {type(data).__name__}",
            segment=segment,
        )
    try:
        json.dumps(data, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise CommentGrammarError(
            f"Structured comment block holds a value that cannot be stored: {exc}",
            segment=segment,
        ) from exc
    return data


def normalize_tags(value: Any) -> list[Any] | None:
    """Accept a YAML sequence as-is or split a comma separated string."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [piece.strip() for piece in value.split(",") if piece.strip()]
    return None


def resolve_date(value: str, timezone: str) -> str:
    """Interpret a date string in ``timezone`` and render it as UTC.

    Values carrying an explicit offset keep it; naive values are taken as
    wall-clock time in ``timezone``.

    Returns:
        ISO 8601 UTC timestamp with millisecond precision and ``Z`` suffix.
    """
    try:
        parsed = dtparse.parse(value)
    except (ValueError, OverflowError) as exc:
        raise CommentGrammarError(f"Unparseable date '{value}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(timezone))
    return format_instant(parsed.astimezone(UTC))


def format_instant(instant: datetime) -> str:
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")
