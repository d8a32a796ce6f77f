"""Small string helpers used across the package."""

from __future__ import annotations


def ends_with(s: str, check: str) -> bool:
    """Return True when ``s`` ends with ``check``."""
    return s.endswith(check)


def starts_with(s: str, check: str) -> bool:
    """Return True when ``s`` starts with ``check``."""
    return s.startswith(check)


def contains(s: str, sub: str) -> bool:
    """Return True when ``sub`` occurs anywhere in ``s``."""
    return sub in s


def erase(source: str, sub: str) -> str:
    """Return ``source`` with the first occurrence of ``sub`` removed."""
    return source.replace(sub, "", 1)


def strip_surrounding(source: str, c: str) -> str:
    """Return ``source`` without any leading or trailing runs of ``c``."""
    return source.strip(c)


def split_at(source: str, c: str, start_at: int = 0) -> tuple[str, str]:
    """Split ``source`` at the first ``c`` found at or after ``start_at``.

    The separator is dropped, and text before ``start_at`` is not part of the
    first half.  When no separator is found, ``(source, "")`` is returned.
    """
    pos = source.find(c, start_at)
    if pos == -1:
        return source, ""
    return source[start_at:pos], source[pos + 1 :]


def split_on_delim(source: str, delim: str) -> list[str]:
    """Split ``source`` on every ``delim``, keeping empty fields."""
    return source.split(delim)