"""Per-file revision data gathered from describe, filelog and print."""

from __future__ import annotations

import threading
from enum import Enum

from p4fusion import log

FAKE_INTEGRATION_DELETE_ACTION_NAME = "FAKE merge delete"


class FileAction(Enum):
    """Perforce file actions, plus an artificial integration-delete."""

    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    BRANCH = "branch"
    MOVE_ADD = "move/add"
    MOVE_DELETE = "move/delete"
    INTEGRATE = "integrate"
    IMPORT = "import"
    PURGE = "purge"
    ARCHIVE = "archive"
    INTEGRATE_DELETE = FAKE_INTEGRATION_DELETE_ACTION_NAME


_INTEGRATED_ACTIONS = frozenset(
    {FileAction.BRANCH, FileAction.MOVE_ADD, FileAction.INTEGRATE, FileAction.IMPORT}
)
# Archive is deliberately not treated as a delete.
_DELETED_ACTIONS = frozenset(
    {FileAction.DELETE, FileAction.MOVE_DELETE, FileAction.PURGE, FileAction.INTEGRATE_DELETE}
)


def file_action_from_name(action: str) -> FileAction:
    """Return the action category for a Perforce action name.

    Unknown names are guessed from their text: anything mentioning
    ``delete`` is a delete, anything with ``move/`` a move/add, and the rest
    an edit.
    """
    try:
        return FileAction(action)
    except ValueError:
        pass
    if "delete" in action:
        log.warn(f"Found an unsupported action {action}; assuming delete")
        return FileAction.DELETE
    if "move/" in action:
        log.warn(f"Found an unsupported action {action}; assuming move/add")
        return FileAction.MOVE_ADD
    log.warn(f"Found an unsupported action {action}; assuming edit")
    return FileAction.EDIT


class FileData:
    """One file revision touched by a changelist.

    Instances are shared by reference between the groups that hold them, so
    setting the relative path or the contents is seen everywhere.
    """

    def __init__(self, depot_file: str, revision: str, action: str, file_type: str) -> None:
        self.depot_file = depot_file
        self.revision = revision
        self.file_type = file_type
        self.from_depot_file = ""
        self.from_revision = ""
        self.contents = b""
        self.relative_path = ""
        self.action = ""
        self.action_category = FileAction.ADD
        self.is_deleted = False
        self.is_integrated = False
        self._contents_set = False
        self._pending_download = False
        self._lock = threading.Lock()
        self.set_action(action)

    def __repr__(self) -> str:
        return (
            f"FileData(depot_file={self.depot_file!r}, revision={self.revision!r}, "
            f"action={self.action!r}, file_type={self.file_type!r})"
        )

    def set_action(self, action: str) -> None:
        """Set the action name and derive the delete/integrate flags."""
        self.action = action
        self.action_category = file_action_from_name(action)
        self.is_integrated = self.action_category in _INTEGRATED_ACTIONS
        self.is_deleted = self.action_category in _DELETED_ACTIONS

    def set_from_depot_file(self, from_depot_file: str, from_revision: str) -> None:
        """Record the integration source; a leading ``#`` on the revision is dropped."""
        self.from_depot_file = from_depot_file
        self.from_revision = from_revision[1:] if from_revision.startswith("#") else from_revision

    def set_fake_integration_delete_action(self) -> None:
        """Mark this revision as a delete caused by an integration."""
        self.set_action(FAKE_INTEGRATION_DELETE_ACTION_NAME)

    def move_contents_once_from(self, contents: bytes) -> None:
        """Store the downloaded contents, unless contents were already stored."""
        with self._lock:
            if self._contents_set:
                return
            self._contents_set = True
            self.contents = bytes(contents)
            self._pending_download = False

    def set_pending_download(self) -> None:
        """Flag that a download has been queued for this file."""
        with self._lock:
            if not self._contents_set:
                self._pending_download = True

    def is_download_needed(self) -> bool:
        """Return True when neither contents nor a pending download exist."""
        with self._lock:
            return not self._contents_set and not self._pending_download

    def is_ready(self) -> bool:
        """Return True once the contents have been stored."""
        with self._lock:
            return self._contents_set

    def is_binary(self) -> bool:
        """Return True for binary file types."""
        return "binary" in self.file_type

    def is_executable(self) -> bool:
        """Return True for file types carrying the executable modifier."""
        return "+x" in self.file_type

    def clear(self) -> None:
        """Release the text and contents held for this file."""
        self.depot_file = ""
        self.revision = ""
        self.action = ""
        self.file_type = ""
        self.from_depot_file = ""
        self.from_revision = ""
        self.contents = b""
        self.relative_path = ""