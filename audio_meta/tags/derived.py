"""Best-effort fields inferred from the object key and title.

These are pattern-matching heuristics: a mismatch simply omits the
field, it never fails the file.
"""

from __future__ import annotations

import re
from typing import Any

_LEADING_INT = re.compile(r"\d+")

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE


def infer_season(key: str, season_prefixes: dict[str, int]) -> int | None:
    """Return the season whose prefix starts ``key`` (longest prefix wins)."""
    matches = [prefix for prefix in season_prefixes if key.startswith(prefix)]
    if not matches:
        return None
    return season_prefixes[max(matches, key=len)]


def infer_episode(title: str | None, episode_pattern: str | re.Pattern) -> int | None:
    """Extract the episode number following the show token in ``title``.

    Only the leading integer digits of the match are kept, so ``8.5``
    yields episode 8.
    """
    if not title:
        return None
    match = re.search(episode_pattern, title)
    if not match or not match.group(1):
        return None
    digits = _LEADING_INT.match(match.group(1))
    if not digits:
        return None
    return int(digits.group(0))


def derive_fields(
    key: str,
    title: str | None,
    season_prefixes: dict[str, int],
    episode_pattern: str | re.Pattern,
) -> dict[str, Any]:
    """Collect the season/episode fields that could be inferred."""
    derived: dict[str, Any] = {}
    season = infer_season(key, season_prefixes)
    if season is not None:
        derived["season"] = season
    episode = infer_episode(title, episode_pattern)
    if episode is not None:
        derived["episode"] = episode
    return derived


def format_duration(length_ms: int | None) -> str | None:
    """Render a millisecond length as ``HH:MM:SS``, truncating each unit.

    >>> format_duration(18_484_832)
    '05:08:04'
    """
    if length_ms is None:
        return None
    hours, remainder = divmod(length_ms, MS_PER_HOUR)
    minutes, remainder = divmod(remainder, MS_PER_MINUTE)
    seconds = remainder // MS_PER_SECOND
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
