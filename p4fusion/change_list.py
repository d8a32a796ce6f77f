"""Changelists and their staged download of file contents."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from enum import Enum
from typing import Protocol

from p4fusion.branch_set import BranchSet, ChangedFileGroups
from p4fusion.file_data import FileData
from p4fusion.results import DescribeResult, FileLogResult, PrintResult, Result
from p4fusion.thread_pool import ThreadPool


class P4Context(Protocol):
    """The server calls a changelist download needs from a worker's context."""

    def describe(self, cl: str) -> DescribeResult: ...

    def file_log(self, changelist: str) -> FileLogResult: ...

    def print_files(self, file_revisions: list[str]) -> PrintResult: ...


class ChangeListState(Enum):
    """Progress of a changelist through describing and downloading."""

    INITIALIZED = "initialized"
    DESCRIBED = "described"
    DOWNLOADED = "downloaded"
    FREED = "freed"


class ChangeList:
    """A submitted changelist; ordered by timestamp."""

    def __init__(self, number: str, description: str, user: str, timestamp: int) -> None:
        self.number = number
        self.description = description
        self.user = user
        self.timestamp = timestamp
        self.changed_file_groups = ChangedFileGroups.empty()
        self.files_downloaded = -1
        self.state = ChangeListState.INITIALIZED
        self._condition = threading.Condition()

    def __repr__(self) -> str:
        return f"ChangeList(number={self.number!r}, user={self.user!r}, timestamp={self.timestamp})"

    def __lt__(self, other: ChangeList) -> bool:
        return self.timestamp < other.timestamp

    def __le__(self, other: ChangeList) -> bool:
        return self.timestamp <= other.timestamp

    def __gt__(self, other: ChangeList) -> bool:
        return self.timestamp > other.timestamp

    def __ge__(self, other: ChangeList) -> bool:
        return self.timestamp >= other.timestamp

    def _set_state(self, state: ChangeListState) -> None:
        with self._condition:
            self.state = state
            self._condition.notify_all()

    def prepare_download(self, branch_set: BranchSet, pool: ThreadPool) -> None:
        """Queue a job that lists the changed files and groups them by branch."""

        def job(p4: P4Context) -> None:
            if branch_set.has_mergeable_branch():
                # Only filelog tells where an integrated file came from.
                files = p4.file_log(self.number).file_data
            else:
                files = p4.describe(self.number).file_data
            self.changed_file_groups = branch_set.parse_affected_files(files)
            self._set_state(ChangeListState.DESCRIBED)

        pool.add_job(job)

    def start_download(self, print_batch: int, pool: ThreadPool) -> None:
        """Queue a job that prints the changed files in batches of ``print_batch``."""

        def job(p4: P4Context) -> None:
            with self._condition:
                self._condition.wait_for(lambda: self.state is ChangeListState.DESCRIBED)
                self.files_downloaded = 0

            batch_files: list[str] = []
            batch_file_data: list[FileData] = []
            for group in self.changed_file_groups.branched_file_groups:
                for file_data in group.files:
                    if not file_data.is_download_needed():
                        continue
                    file_data.set_pending_download()
                    batch_files.append(f"{file_data.depot_file}#{file_data.revision}")
                    batch_file_data.append(file_data)
                    if len(batch_files) == print_batch:
                        self.flush(batch_files, batch_file_data, pool)
                        batch_files = []
                        batch_file_data = []
            # The last, possibly empty, batch also marks the end of queuing.
            self.flush(batch_files, batch_file_data, pool)

        pool.add_job(job)

    def flush(self, batch_files: list[str], batch_file_data: list[FileData], pool: ThreadPool) -> None:
        """Queue a job that prints one batch and stores the contents."""

        def job(p4: P4Context) -> None:
            if batch_file_data:
                printed = p4.print_files(batch_files).contents
                if len(printed) < len(batch_file_data):
                    raise IndexError(
                        f"print returned {len(printed)} files for a batch of {len(batch_file_data)}"
                    )
                for file_data, contents in zip(batch_file_data, printed):
                    file_data.move_contents_once_from(bytes(contents))
            with self._condition:
                self.files_downloaded += len(batch_files)
                if self.files_downloaded == self.changed_file_groups.total_file_count:
                    self.state = ChangeListState.DOWNLOADED
                    self._condition.notify_all()

        pool.add_job(job)

    def wait_for_download(self) -> None:
        """Block until every file of the changelist has been downloaded."""
        with self._condition:
            self._condition.wait_for(lambda: self.state is ChangeListState.DOWNLOADED)

    def clear(self) -> None:
        """Release the changelist's text and file data."""
        self.number = ""
        self.user = ""
        self.description = ""
        self.changed_file_groups.clear()
        with self._condition:
            self.files_downloaded = -1
            self.state = ChangeListState.FREED


class ChangesResult(Result):
    """The changelists listed by ``p4 changes``."""

    def __init__(self) -> None:
        super().__init__()
        self.changes: list[ChangeList] = []

    def output_stat(self, record: Mapping[str, str]) -> None:
        self.changes.append(
            ChangeList(record["change"], record["desc"], record["user"], int(record["time"]))
        )

    def reverse(self) -> None:
        """Reverse the order of the changelists in place."""
        self.changes.reverse()