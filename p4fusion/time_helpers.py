"""Helpers for reading times reported by the Perforce server."""

from __future__ import annotations

_OFFSET_START = 20
_OFFSET_LENGTH = 5


def get_timezone_minutes(timezone_str: str) -> int:
    """Return the UTC offset, in minutes, of a server date string.

    The string looks like ``2021/09/06 04:49:28 -0700 PDT``; the signed
    offset starts at index 20.
    """
    offset = timezone_str[_OFFSET_START : _OFFSET_START + _OFFSET_LENGTH]
    if len(offset) != _OFFSET_LENGTH or not offset[1:].isdigit():
        raise ValueError(f"Bad server date format: {timezone_str!r}")
    hours = int(offset[1:3])
    minutes = int(offset[3:5])
    sign = -1 if offset[0] == "-" else 1
    return sign * (hours * 60 + minutes)