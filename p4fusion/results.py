"""Collectors for the tagged output of Perforce commands."""

from __future__ import annotations

from collections.abc import Mapping
from typing import NamedTuple

from p4fusion import log
from p4fusion.file_data import FileData
from p4fusion.time_helpers import get_timezone_minutes

Record = Mapping[str, str]


class _SyncData(NamedTuple):
    depot_file: str
    revision: str


class _UserData(NamedTuple):
    full_name: str
    email: str


def _indexed(record: Record, prefix: str):
    """Yield ``record[prefix + "0"]``, ``record[prefix + "1"]``, ... until one is missing."""
    index = 0
    while (value := record.get(f"{prefix}{index}")) is not None:
        yield value
        index += 1


class Result:
    """Base collector: ignores output and remembers the last error reported."""

    def __init__(self) -> None:
        self.error: object | None = None

    @property
    def has_error(self) -> bool:
        """Whether the command reported an error."""
        return self.error is not None

    def output_stat(self, record: Record) -> None:
        """Receive one tagged record."""

    def output_text(self, data: bytes) -> None:
        """Receive a chunk of text output."""

    def output_binary(self, data: bytes) -> None:
        """Receive a chunk of binary output; handled like text."""
        self.output_text(data)

    def handle_error(self, error: object) -> None:
        """Log and remember an error reported by the server."""
        log.error(f"Received error: {error}")
        self.error = error


class ClientResult(Result):
    """The name and view lines of a client spec."""

    def __init__(self) -> None:
        super().__init__()
        self.client = ""
        self.mapping: list[str] = []

    def output_stat(self, record: Record) -> None:
        self.client = record["Client"]
        self.mapping.extend(_indexed(record, "View"))


class DescribeResult(Result):
    """The files touched by a changelist, as listed by describe."""

    def __init__(self) -> None:
        super().__init__()
        self.file_data: list[FileData] = []

    def output_stat_partial(self, record: Record) -> bool:
        """Read the next indexed file from a partial record.

        Returns False when the record holds no further file.
        """
        index = len(self.file_data)
        depot_file = record.get(f"depotFile{index}")
        if depot_file is None:
            return False
        self.file_data.append(
            FileData(
                depot_file,
                record[f"rev{index}"],
                record[f"action{index}"],
                record[f"type{index}"],
            )
        )
        return True


class FileLogResult(Result):
    """The latest revision of each file in a changelist, with its integration source."""

    def __init__(self) -> None:
        super().__init__()
        self.file_data: list[FileData] = []

    def output_stat(self, record: Record) -> None:
        depot_file = record.get("depotFile")
        if depot_file is None:
            return
        file_data = FileData(depot_file, record["rev0"], record["action0"], record["type0"])
        self.file_data.append(file_data)

        for index, how in enumerate(_indexed(record, "how0,")):
            if how == "delete from":
                file_data.set_fake_integration_delete_action()
            if how.endswith(" from"):
                file_data.set_from_depot_file(record[f"file0,{index}"], record[f"erev0,{index}"])
                # At most one integration source matters.
                break


class InfoResult(Result):
    """Server information; only the time zone offset is kept."""

    def __init__(self) -> None:
        super().__init__()
        self.timezone_minutes = 0

    def output_stat(self, record: Record) -> None:
        self.timezone_minutes = get_timezone_minutes(record["serverDate"])


class PrintResult(Result):
    """The contents of printed files, one entry per file in output order."""

    def __init__(self) -> None:
        super().__init__()
        self.contents: list[bytearray] = []

    def output_stat(self, record: Record) -> None:
        self.contents.append(bytearray())

    def output_text(self, data: bytes) -> None:
        if not self.contents:
            self.contents.append(bytearray())
        self.contents[-1].extend(data)


class SizesResult(Result):
    """The size reported for a file."""

    def __init__(self) -> None:
        super().__init__()
        self.size = ""

    def output_stat(self, record: Record) -> None:
        self.size = record["fileSize"]


class SyncResult(Result):
    """The ``(depot_file, revision)`` pairs a sync would touch."""

    def __init__(self) -> None:
        super().__init__()
        self.sync_data: list[_SyncData] = []

    def output_stat(self, record: Record) -> None:
        self.sync_data.append(_SyncData(record["depotFile"], record["rev"]))


class UsersResult(Result):
    """User ids mapped to ``(full_name, email)``."""

    def __init__(self) -> None:
        super().__init__()
        self.users: dict[str, _UserData] = {}

    def output_stat(self, record: Record) -> None:
        user_id = record.get("User")
        email = record.get("Email")
        if user_id is None or email is None:
            log.error("UserID or email not found for a Perforce user")
            return
        full_name = record.get("FullName", user_id)
        self.users.setdefault(user_id, _UserData(full_name, email))