"""Perforce-style view mappings between a left (depot) and right side."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from p4fusion import log

_WILDCARD = re.compile(r"\.\.\.|\*|%%[0-9]")

_PATH_PREFIXES = ("share ", "isolate ", "import+ ", "import ", "exclude ")
_EXCLUDE_PREFIXES = frozenset({"exclude "})


class MapType(Enum):
    """Kind of a view line."""

    INCLUDE = "include"
    EXCLUDE = "exclude"
    OVERLAY = "overlay"
    ONE_TO_MANY = "one-to-many"


_HIDING_TYPES = frozenset({MapType.INCLUDE, MapType.EXCLUDE})


def _is_wild(token: str) -> bool:
    return token == "*" or len(token) > 1


def _tokenize(text: str) -> tuple[str, ...]:
    tokens: list[str] = []
    pos = 0
    for match in _WILDCARD.finditer(text):
        tokens.extend(text[pos : match.start()])
        tokens.append(match.group())
        pos = match.end()
    tokens.extend(text[pos:])
    return tuple(tokens)


def _wildcard_keys(tokens: Iterable[str]) -> list[str]:
    counts: dict[str, int] = {}
    keys = []
    for token in tokens:
        if not _is_wild(token):
            continue
        if token.startswith("%%"):
            keys.append(token)
        else:
            count = counts.get(token, 0)
            counts[token] = count + 1
            keys.append(f"{token}{count}")
    return keys


@dataclass(frozen=True)
class _Side:
    text: str
    tokens: tuple[str, ...]
    regex: re.Pattern[str]
    keys: tuple[str, ...]

    @classmethod
    def build(cls, text: str, case_sensitive: bool) -> _Side:
        tokens = _tokenize(text)
        parts = []
        for token in tokens:
            if token == "...":
                parts.append("(.*)")
            elif _is_wild(token):
                parts.append("([^/]*)")
            else:
                parts.append(re.escape(token))
        flags = 0 if case_sensitive else re.IGNORECASE
        return cls(text, tokens, re.compile("".join(parts), flags | re.DOTALL), tuple(_wildcard_keys(tokens)))

    def matches(self, path: str) -> bool:
        return self.regex.fullmatch(path) is not None

    def capture(self, path: str) -> dict[str, str] | None:
        match = self.regex.fullmatch(path)
        if match is None:
            return None
        return dict(zip(self.keys, match.groups()))

    def fill(self, values: dict[str, str]) -> str:
        keys = iter(self.keys)
        return "".join(values[next(keys)] if _is_wild(token) else token for token in self.tokens)


@dataclass(frozen=True)
class _Line:
    left: _Side
    right: _Side
    map_type: MapType


def _fold(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def _intersects(a: Sequence[str], b: Sequence[str], case_sensitive: bool) -> bool:
    """Return True when some path is matched by both token patterns."""
    stack = [(0, 0)]
    seen: set[tuple[int, int]] = set()
    while stack:
        state = stack.pop()
        if state in seen:
            continue
        seen.add(state)
        i, j = state
        if i == len(a) and j == len(b):
            return True
        ai = a[i] if i < len(a) else None
        bj = b[j] if j < len(b) else None
        a_wild = ai is not None and _is_wild(ai)
        b_wild = bj is not None and _is_wild(bj)
        if a_wild:
            stack.append((i + 1, j))
            if bj is not None and not b_wild and (ai == "..." or bj != "/"):
                stack.append((i, j + 1))
        if b_wild:
            stack.append((i, j + 1))
            if ai is not None and not a_wild and (bj == "..." or ai != "/"):
                stack.append((i + 1, j))
        if (
            ai is not None
            and bj is not None
            and not a_wild
            and not b_wild
            and _fold(ai, case_sensitive) == _fold(bj, case_sensitive)
        ):
            stack.append((i + 1, j + 1))
    return False


def _covers(general: _Side, specific: str, case_sensitive: bool) -> bool:
    """Return True when every path matched by ``specific`` is matched by ``general``."""
    specific_tokens = _tokenize(specific)
    if not any(_is_wild(token) for token in specific_tokens):
        return general.matches(specific)
    if general.keys == ("...0",) and general.tokens[-1] == "...":
        prefix = general.text[:-3]
        return _fold(specific, case_sensitive).startswith(_fold(prefix, case_sensitive))
    return _fold(general.text, case_sensitive) == _fold(specific, case_sensitive)


class FileMap:
    """An ordered list of view lines; later lines take precedence."""

    def __init__(self, case_sensitive: bool = True) -> None:
        self._case_sensitive = case_sensitive
        self._lines: list[_Line] = []

    @property
    def case_sensitive(self) -> bool:
        """Whether paths are compared case-sensitively."""
        return self._case_sensitive

    def __len__(self) -> int:
        return len(self._lines)

    def _insert(self, left: str, right: str, map_type: MapType) -> None:
        left = left.strip(' "')
        right = right.strip(' "')
        left_side = _Side.build(left, self._case_sensitive)
        right_side = _Side.build(right, self._case_sensitive)
        if set(left_side.keys) != set(right_side.keys):
            raise ValueError(f"Mismatched wildcards in mapping: {left} {right}")
        self._lines.append(_Line(left_side, right_side, map_type))

    def _translate(self, path: str, from_left: bool) -> str | None:
        for index, line in reversed(list(enumerate(self._lines))):
            source, target = (line.left, line.right) if from_left else (line.right, line.left)
            values = source.capture(path)
            if values is None:
                continue
            if line.map_type is MapType.EXCLUDE:
                return None
            result = target.fill(values)
            for later in self._lines[index + 1 :]:
                later_target = later.right if from_left else later.left
                if later.map_type in _HIDING_TYPES and later_target.matches(result):
                    return None
            return result
        return None

    def is_in_left(self, path: str) -> bool:
        """Return True when ``path`` (which may hold wildcards) is mapped on the left side."""
        tokens = _tokenize(path)
        if not any(_is_wild(token) for token in tokens):
            for line in reversed(self._lines):
                if line.left.matches(path):
                    return line.map_type is not MapType.EXCLUDE
            return False
        for line in reversed(self._lines):
            if not _intersects(line.left.tokens, tokens, self._case_sensitive):
                continue
            if line.map_type is not MapType.EXCLUDE:
                return True
            if _covers(line.left, path, self._case_sensitive):
                return False
        return False

    def is_in_right(self, path: str) -> bool:
        """Return True when ``path`` translates from the right side to the left."""
        return self.translate_right_to_left(path) is not None

    def translate_left_to_right(self, path: str) -> str | None:
        """Return the right-side path for a left-side path, or None if unmapped."""
        return self._translate(path, from_left=True)

    def translate_right_to_left(self, path: str) -> str | None:
        """Return the left-side path for a right-side path, or None if unmapped."""
        return self._translate(path, from_left=False)

    def insert_translation_mapping(self, mapping: Iterable[str]) -> None:
        """Add view lines of the form ``[+-&]//left/... //right/...``."""
        for view in mapping:
            if not view:
                continue
            map_type = {"+": MapType.OVERLAY, "-": MapType.EXCLUDE, "&": MapType.ONE_TO_MANY}.get(
                view[0], MapType.INCLUDE
            )
            right = view.find("//", 3)
            if right == -1:
                log.warn("Found a one-sided mapping, ignoring...")
                continue
            left = view.find("/")
            self._insert(view[left:right], view[right:], map_type)

    def insert_paths(self, paths: Iterable[str]) -> None:
        """Add each path as an include line mapping to itself."""
        for path in paths:
            self._insert(path, path, MapType.INCLUDE)

    def insert_prefixed_paths(self, prefix: str, paths: Iterable[str]) -> None:
        """Add stream-spec style paths, each prepended with ``prefix``.

        A leading ``share``, ``isolate``, ``import+``, ``import`` or
        ``exclude`` keyword is removed; ``exclude`` makes the line an exclusion.
        """
        for path in paths:
            map_type = MapType.INCLUDE
            for keyword in _PATH_PREFIXES:
                if path.startswith(keyword):
                    if keyword in _EXCLUDE_PREFIXES:
                        map_type = MapType.EXCLUDE
                    path = path[len(keyword) :]
                    break
            view = prefix + path
            self._insert(view, view, map_type)

    def insert_file_map(self, src: FileMap) -> None:
        """Replace this map's lines and case sensitivity with those of ``src``."""
        self._case_sensitive = src._case_sensitive
        self._lines = []
        for line in src._lines:
            self._insert(line.left.text, line.right.text, line.map_type)

    def copy(self) -> FileMap:
        """Return an independent copy of this map."""
        result = FileMap(self._case_sensitive)
        result.insert_file_map(self)
        return result