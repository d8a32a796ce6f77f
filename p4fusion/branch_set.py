"""Sorting of changed files into branch groups for Git commits."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from p4fusion.file_data import FileData
from p4fusion.file_map import FileMap
from p4fusion.stream_result import MappingData


@dataclass
class BranchedFileGroup:
    """Files of one changelist that go to one Git branch.

    When ``has_source`` is True every file is a merge from
    ``source_branch`` into ``target_branch``.
    """

    source_branch: str = ""
    target_branch: str = ""
    has_source: bool = False
    files: list[FileData] = field(default_factory=list)

    def relative_file_names(self) -> list[str]:
        """Return the relative path of every file in the group."""
        return [file_data.relative_path for file_data in self.files]


@dataclass
class ChangedFileGroups:
    """All branch groups of a changelist, with the total number of files."""

    branched_file_groups: list[BranchedFileGroup] = field(default_factory=list)
    total_file_count: int = 0

    def clear(self) -> None:
        """Release the file data held by every group."""
        for group in self.branched_file_groups:
            for file_data in group.files:
                file_data.clear()
            group.files.clear()
            group.source_branch = ""
            group.target_branch = ""
        self.total_file_count = 0

    @classmethod
    def empty(cls) -> ChangedFileGroups:
        """Return a collection with no groups and no files."""
        return cls()


@dataclass(frozen=True)
class Branch:
    """A depot sub-path and the Git branch name it becomes."""

    depot_branch_path: str
    git_alias: str

    def __post_init__(self) -> None:
        if not self.depot_branch_path:
            raise ValueError("branch name is empty")
        if not self.git_alias:
            raise ValueError("branch alias is empty")

    def split_branch_path(self, relative_depot_path: str) -> tuple[str, str] | None:
        """Return ``(git alias, path inside the branch)``, or None if not in this branch."""
        size = len(self.depot_branch_path)
        if (
            len(relative_depot_path) > size
            and relative_depot_path[size] == "/"
            and relative_depot_path.startswith(self.depot_branch_path)
        ):
            return self.git_alias, relative_depot_path[size + 1 :]
        return None


def create_branch_from_path(depot_branch_path: str) -> Branch:
    """Parse ``depot/path`` or ``depot/path:git-alias`` into a Branch.

    The alias follows the last ``:``; surrounding ``/`` are stripped from
    both parts.
    """
    branch_path = alias = depot_branch_path
    pos = depot_branch_path.rfind(":")
    if pos > 0:
        branch_path = depot_branch_path[:pos]
        alias = depot_branch_path[pos + 1 :]
    return Branch(branch_path.strip("/"), alias.strip("/"))


def create_branches_from_paths(branches: Iterable[str]) -> list[Branch]:
    """Parse every branch specification."""
    return [create_branch_from_path(branch) for branch in branches]


class _GroupCollector:
    """Collects files into groups keyed by ``(source, target)`` branch."""

    def __init__(self) -> None:
        self._groups: dict[tuple[str, str], BranchedFileGroup] = {}
        self._count = 0

    def add(self, target_branch: str, file_data: FileData, source_branch: str = "") -> None:
        key = (source_branch, target_branch)
        group = self._groups.get(key)
        if group is None:
            group = BranchedFileGroup(source_branch, target_branch, bool(source_branch))
            self._groups[key] = group
        group.files.append(file_data)
        self._count += 1

    def result(self) -> ChangedFileGroups:
        return ChangedFileGroups(list(self._groups.values()), self._count)


class BranchSet:
    """A client view, a base depot path and branches that filter and group changed files."""

    def __init__(
        self,
        client_view_mapping: Iterable[str],
        base_depot_path: str,
        branches: Iterable[str],
        mappings: Sequence[MappingData] = (),
        exclusions: Sequence[MappingData] = (),
        include_binaries: bool = False,
    ) -> None:
        self._branches = create_branches_from_paths(branches)
        self._mappings = list(mappings)
        self._exclusions = list(exclusions)
        self._include_binaries = include_binaries
        self._view = FileMap()
        self._view.insert_translation_mapping(client_view_mapping)
        if base_depot_path.endswith("/..."):
            # Keep the final '/'.
            self._base_path = base_depot_path[:-3]
        elif not base_depot_path.endswith("/"):
            raise ValueError(f"Bad base depot path format: {base_depot_path}")
        else:
            self._base_path = base_depot_path

    def has_mergeable_branch(self) -> bool:
        """Return True when branches were given, so integration history matters."""
        return bool(self._branches)

    def count(self) -> int:
        """Return the number of branches."""
        return len(self._branches)

    def _strip_base_path(self, depot_path: str) -> str:
        if depot_path.startswith(self._base_path):
            return depot_path[len(self._base_path) :]
        return ""

    def _split_branch_path(self, relative_depot_path: str) -> tuple[str, str] | None:
        # Branches are checked in the order given, so nested branches must come first.
        for branch in self._branches:
            split = branch.split_branch_path(relative_depot_path)
            if split is not None and split[1]:
                return split
        return None

    def _import_path(self, depot_file: str) -> str | None:
        for mapping in self._mappings:
            if not mapping.stream2.endswith("..."):
                continue
            source_prefix = mapping.stream2[:-3]
            if depot_file.startswith(source_prefix):
                return mapping.stream1[:-3] + depot_file[len(source_prefix) :]
        return None

    def _is_excluded(self, relative_depot_path: str) -> bool:
        for exclusion in self._exclusions:
            if exclusion.stream1.endswith("..."):
                if relative_depot_path.startswith(exclusion.stream1[:-3]):
                    return True
            elif exclusion.stream1 == relative_depot_path:
                return True
        return False

    def _is_filtered_out(self, file_data: FileData) -> bool:
        depot_file = file_data.depot_file
        return (
            not self._view.is_in_left(depot_file)
            or (not self._include_binaries and file_data.is_binary())
            or "/.git/" in depot_file
            or depot_file.endswith("/.git")
        )

    def parse_affected_files(self, changed_files: Iterable[FileData]) -> ChangedFileGroups:
        """Filter the files of a changelist and group them by target branch.

        Every file kept gets its relative path set; the FileData objects are
        shared, not copied.
        """
        collector = _GroupCollector()
        for file_data in changed_files:
            if self._is_filtered_out(file_data):
                continue

            relative = self._strip_base_path(file_data.depot_file)
            if not relative:
                imported = self._import_path(file_data.depot_file)
                if imported is None:
                    continue
                relative = imported

            if self._is_excluded(relative):
                continue

            if not self._branches:
                file_data.relative_path = relative
                collector.add("", file_data)
                continue

            split = self._split_branch_path(relative)
            if split is None:
                continue
            target, path = split
            file_data.relative_path = path

            source = ""
            if file_data.is_integrated:
                from_split = self._split_branch_path(self._strip_base_path(file_data.from_depot_file))
                # A merge within the same branch is not a Git merge.
                if from_split is not None and from_split[0] != target:
                    source = from_split[0]
            collector.add(target, file_data, source)
        return collector.result()