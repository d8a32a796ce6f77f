"""Parsing of ``p4 stream -o`` path rules."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from p4fusion.std_helpers import split_on_delim


class StreamRule(Enum):
    """The kind of a stream spec path line."""

    SHARE = "share"
    EXCLUDE = "exclude"
    IMPORT = "import"
    ISOLATE = "isolate"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value.capitalize()


@dataclass
class MappingData:
    """One stream path rule: the rule and up to two path fields."""

    rule: StreamRule
    stream1: str
    stream2: str = ""

    def __str__(self) -> str:
        return f"{self.rule}: Stream1: {self.stream1} Stream2: {self.stream2}"


def _rule_from_name(name: str) -> StreamRule:
    try:
        return StreamRule(name)
    except ValueError:
        return StreamRule.UNKNOWN


@dataclass
class StreamResult:
    """The path mappings of a stream spec."""

    mapping: list[MappingData] = field(default_factory=list)

    def output_stat(self, record: Mapping[str, str]) -> None:
        """Read the ``Paths0``, ``Paths1``, ... fields of a tagged record."""
        index = 0
        while (view := record.get(f"Paths{index}")) is not None:
            index += 1
            parts = split_on_delim(view, " ")
            if len(parts) <= 1:
                continue
            stream2 = parts[2] if len(parts) >= 3 else ""
            self.mapping.append(MappingData(_rule_from_name(parts[0]), parts[1], stream2))