"""A small Git object store: blobs, trees, commits, refs and the index."""

from __future__ import annotations

import hashlib
import os
import re
import struct
import zlib
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from p4fusion import log

_MODE_BLOB = 0o100644
_MODE_EXECUTABLE = 0o100755
_MODE_TREE = 0o40000

_MAX_SYMBOLIC_DEPTH = 5
_BAD_REF_NAME = re.compile(r"^[./]|\.\.|@\{|[\x00-\x20\x7f~^:?*\[\\]|/\.|\.lock$|/$|\.$|//")
_DEPOT_PATHS_MARKER = 'depot-paths = "'
_CHANGE_END_MARKER = '": change'
_CHANGE_MARKER = ": change = "


class GitError(Exception):
    """Raised when a repository operation cannot be carried out."""


@dataclass
class _IndexEntry:
    mode: int
    oid: str
    size: int = 0


def _signature(name: str, email: str, timestamp: int, offset_minutes: int) -> str:
    name = name.strip()
    email = email.strip()
    if any(c in text for text in (name, email) for c in "<>"):
        raise GitError("Neither the name nor the email of a signature may contain '<' or '>'")
    if not name or not email:
        raise GitError("Signature cannot have an empty name or email")
    sign = "-" if offset_minutes < 0 else "+"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{name} <{email}> {int(timestamp)} {sign}{hours:02d}{minutes:02d}"


def _check_index_path(path: str) -> None:
    parts = path.split("/")
    if not path or any(part in ("", ".", "..") or part.lower() == ".git" for part in parts):
        raise GitError(f"Invalid path for the index: {path!r}")


def _check_ref_name(name: str) -> None:
    if not name or _BAD_REF_NAME.search(name):
        raise GitError(f"Invalid branch name: {name!r}")


class GitRepository:
    """A Git repository that changelists are committed into."""

    def __init__(self, fsync_enable: bool = False) -> None:
        self._fsync = fsync_enable
        self._git_dir: Path | None = None
        self._index: dict[str, _IndexEntry] | None = None
        self._first_commit: str | None = None
        self._current_branch = ""

    # -- storage helpers -------------------------------------------------

    @property
    def _dir(self) -> Path:
        if self._git_dir is None:
            raise GitError("No repository has been opened")
        return self._git_dir

    def _require_index(self) -> dict[str, _IndexEntry]:
        if self._index is None:
            raise GitError("The index has not been created")
        return self._index

    def _write_file(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp = path.with_name(path.name + ".lock")
        with open(temp, "wb") as handle:
            handle.write(data)
            if self._fsync:
                handle.flush()
                os.fsync(handle.fileno())
        os.replace(temp, path)

    def _write_object(self, kind: str, data: bytes) -> str:
        raw = f"{kind} {len(data)}\0".encode() + data
        oid = hashlib.sha1(raw).hexdigest()
        path = self._dir / "objects" / oid[:2] / oid[2:]
        if not path.exists():
            self._write_file(path, zlib.compress(raw))
        return oid

    def _read_object(self, oid: str) -> tuple[str, bytes]:
        path = self._dir / "objects" / oid[:2] / oid[2:]
        if not path.is_file():
            raise GitError(f"Object not found: {oid}")
        try:
            raw = zlib.decompress(path.read_bytes())
        except zlib.error as exc:
            raise GitError(f"Corrupt object {oid}: {exc}") from exc
        header, _, body = raw.partition(b"\0")
        kind, _, size = header.decode().partition(" ")
        if not size.isdigit() or int(size) != len(body):
            raise GitError(f"Corrupt object {oid}")
        return kind, body

    # -- references -----------------------------------------------------

    def _packed_refs(self) -> dict[str, str]:
        path = self._dir / "packed-refs"
        if not path.is_file():
            return {}
        refs = {}
        for line in path.read_text().splitlines():
            if not line or line.startswith(("#", "^")):
                continue
            oid, _, name = line.partition(" ")
            refs[name.strip()] = oid
        return refs

    def _resolve_symbolic(self, name: str) -> str:
        """Follow symbolic references and return the name of the final one."""
        for _ in range(_MAX_SYMBOLIC_DEPTH):
            path = self._dir / name
            if path.is_file():
                content = path.read_text().strip()
                if content.startswith("ref: "):
                    name = content[5:].strip()
                    continue
            return name
        raise GitError(f"Too many levels of symbolic references at {name}")

    def _read_ref(self, name: str) -> str | None:
        target = self._resolve_symbolic(name)
        path = self._dir / target
        if path.is_file():
            return path.read_text().strip() or None
        return self._packed_refs().get(target)

    def _write_ref(self, name: str, oid: str) -> None:
        self._write_file(self._dir / name, f"{oid}\n".encode())

    # -- trees and commits ------------------------------------------------

    def _read_commit(self, oid: str) -> tuple[str, str]:
        """Return the tree id and message of a commit."""
        kind, data = self._read_object(oid)
        if kind != "commit":
            raise GitError(f"Object {oid} is a {kind}, not a commit")
        head, _, message = data.partition(b"\n\n")
        for line in head.split(b"\n"):
            if line.startswith(b"tree "):
                return line[5:].decode(), message.decode("utf-8", errors="replace")
        raise GitError(f"Commit {oid} has no tree")

    def _tree_entries(self, oid: str, prefix: str = "") -> Iterator[tuple[str, _IndexEntry]]:
        kind, data = self._read_object(oid)
        if kind != "tree":
            raise GitError(f"Object {oid} is a {kind}, not a tree")
        pos = 0
        while pos < len(data):
            space = data.index(b" ", pos)
            nul = data.index(b"\0", space)
            mode = int(data[pos:space], 8)
            name = data[space + 1 : nul].decode()
            child = data[nul + 1 : nul + 21].hex()
            pos = nul + 21
            if mode == _MODE_TREE:
                yield from self._tree_entries(child, f"{prefix}{name}/")
            else:
                yield f"{prefix}{name}", _IndexEntry(mode, child)

    def _read_tree_into_index(self, commit_oid: str) -> None:
        tree, _ = self._read_commit(commit_oid)
        self._index = dict(self._tree_entries(tree))

    def _write_tree_node(self, node: dict) -> str:
        items = []
        for name, child in node.items():
            if isinstance(child, dict):
                items.append((name.encode() + b"/", _MODE_TREE, self._write_tree_node(child), name))
            else:
                items.append((name.encode(), child.mode, child.oid, name))
        items.sort(key=lambda item: item[0])
        data = b"".join(
            f"{mode:o} ".encode() + name.encode() + b"\0" + bytes.fromhex(oid) for _, mode, oid, name in items
        )
        return self._write_object("tree", data)

    def _write_tree(self) -> str:
        root: dict = {}
        for path, entry in self._require_index().items():
            *dirs, name = path.split("/")
            node = root
            for directory in dirs:
                node = node.setdefault(directory, {})
            node[name] = entry
        return self._write_tree_node(root)

    def _create_commit(self, tree: str, parents: list[str], signature: str, message: str) -> str:
        lines = [f"tree {tree}"]
        lines += [f"parent {parent}" for parent in parents]
        lines += [f"author {signature}", f"committer {signature}", "encoding UTF-8", "", message]
        oid = self._write_object("commit", "\n".join(lines).encode())
        self._write_ref(self._resolve_symbolic("HEAD"), oid)
        return oid

    def _head_message(self) -> str:
        head = self._read_ref("HEAD")
        if head is None:
            raise GitError("HEAD does not point to a commit")
        return self._read_commit(head)[1]

    # -- index file ------------------------------------------------------

    def _load_index(self) -> dict[str, _IndexEntry]:
        path = self._dir / "index"
        if not path.is_file():
            return {}
        data = path.read_bytes()
        if len(data) < 32 or data[:4] != b"DIRC":
            raise GitError("Corrupt index file")
        version, count = struct.unpack_from(">II", data, 4)
        if version not in (2, 3):
            raise GitError(f"Unsupported index version {version}")
        entries = {}
        pos = 12
        for _ in range(count):
            fields = struct.unpack_from(">10I", data, pos)
            oid = data[pos + 40 : pos + 60].hex()
            (flags,) = struct.unpack_from(">H", data, pos + 60)
            header = 64 if version == 3 and flags & 0x4000 else 62
            end = data.index(b"\0", pos + header)
            name = data[pos + header : end]
            length = header + len(name)
            pos += length + (8 - length % 8)
            entries[name.decode()] = _IndexEntry(fields[6], oid, fields[9])
        return entries

    # -- public operations -----------------------------------------------

    def initialize_repository(self, src_path: str) -> bool:
        """Create a bare repository at ``src_path``, keeping one that is already there."""
        git_dir = Path(src_path)
        for sub in ("objects/info", "objects/pack", "refs/heads", "refs/tags"):
            (git_dir / sub).mkdir(parents=True, exist_ok=True)
        self._git_dir = git_dir
        if not (git_dir / "HEAD").exists():
            self._write_file(git_dir / "HEAD", b"ref: refs/heads/master\n")
        if not (git_dir / "config").exists():
            config = "[core]\n\trepositoryformatversion = 0\n\tfilemode = true\n\tbare = true\n"
            self._write_file(git_dir / "config", config.encode())
        log.success(f"Initialized Git repository at {src_path}")
        return True

    def open_repository(self, repo_path: str) -> None:
        """Open an existing repository, bare or with a ``.git`` directory."""
        git_dir = Path(repo_path)
        if (git_dir / ".git").is_dir():
            git_dir = git_dir / ".git"
        if not (git_dir / "HEAD").is_file() or not (git_dir / "objects").is_dir():
            raise GitError(f"Could not find repository at '{repo_path}'")
        self._git_dir = git_dir

    def head_exists(self) -> bool:
        """Return True when HEAD resolves to a commit."""
        return self._read_ref("HEAD") is not None

    def is_repository_cloned_from(self, depot_path: str) -> bool:
        """Return True when the HEAD commit records ``depot_path`` as its origin."""
        message = self._head_message()
        start = message.find(_DEPOT_PATHS_MARKER)
        end = message.find(_CHANGE_END_MARKER)
        if start == -1 or end == -1:
            return False
        return message[start + len(_DEPOT_PATHS_MARKER) : end] + "..." == depot_path

    def detect_latest_cl(self) -> str:
        """Return the changelist number recorded in the HEAD commit message."""
        message = self._head_message()
        pos = message.rfind(_CHANGE_MARKER)
        if pos == -1:
            raise GitError("The HEAD commit does not record a changelist")
        start = pos + len(_CHANGE_MARKER)
        end = message.find("]", start)
        return message[start:] if end == -1 else message[start:end]

    def create_blob(self, data: bytes) -> str:
        """Store ``data`` as a blob and return its object id."""
        return self._write_object("blob", bytes(data))

    def create_index(self) -> None:
        """Load the index; on a repository with no HEAD, create an empty first commit."""
        self._index = self._load_index()
        if self.head_exists():
            head = self._read_ref("HEAD")
            assert head is not None
            self._read_tree_into_index(head)
            # A topological walk from HEAD yields HEAD first.
            self._first_commit = head
            log.warn("Loaded index was refreshed to match the tree of the current HEAD commit")
        else:
            # Every branch starts from this empty commit so that branches stay mergeable.
            signature = _signature("No User", "no@user", 0, 0)
            self._first_commit = self._create_commit(self._write_tree(), [], signature, "Initial repository.")
            log.warn(f"No HEAD commit was found. Created fresh index {self._first_commit}.")

    def set_active_branch(self, branch_name: str) -> None:
        """Point HEAD at ``branch_name``, creating it from the first commit, and load its tree."""
        if branch_name == self._current_branch:
            return
        _check_ref_name(branch_name)
        self._require_index()
        ref = f"refs/heads/{branch_name}"
        if self._read_ref(ref) is None:
            if self._first_commit is None:
                raise GitError("No first commit to create a branch from")
            self._read_commit(self._first_commit)
            self._write_ref(ref, self._first_commit)
        self._write_file(self._dir / "HEAD", f"ref: {ref}\n".encode())
        head = self._read_ref("HEAD")
        if head is None:
            raise GitError(f"Branch {branch_name} does not point to a commit")
        self._read_tree_into_index(head)
        self._current_branch = branch_name

    def add_file_to_index(self, relative_path: str, contents: bytes, executable: bool) -> None:
        """Stage ``contents`` at ``relative_path``."""
        _check_index_path(relative_path)
        index = self._require_index()
        oid = self.create_blob(contents)
        for other in list(index):
            if other.startswith(relative_path + "/") or relative_path.startswith(other + "/"):
                del index[other]
        mode = _MODE_EXECUTABLE if executable else _MODE_BLOB
        index[relative_path] = _IndexEntry(mode, oid, len(contents))

    def remove_file_from_index(self, relative_path: str) -> None:
        """Unstage ``relative_path``; a path not staged is ignored."""
        _check_index_path(relative_path)
        self._require_index().pop(relative_path, None)

    def commit(
        self,
        depot_path: str,
        cl: str,
        user: str,
        email: str,
        timezone: int,
        desc: str,
        timestamp: int,
        merge_from_stream: str,
    ) -> str:
        """Commit the index onto HEAD and return the new commit id.

        A non-empty ``merge_from_stream`` adds that branch as a second parent.
        """
        tree = self._write_tree()
        signature = _signature(user, email, timestamp, timezone)
        message = f'{cl} - {desc}\n[p4-fusion: depot-paths = "{depot_path[:-3]}": change = {cl}]'

        parent_refs = ["HEAD"]
        if merge_from_stream:
            _check_ref_name(merge_from_stream)
            parent_refs.append(f"refs/heads/{merge_from_stream}")

        parents: list[str] = []
        for ref in parent_refs:
            oid = self._read_ref(ref)
            if oid is None:
                # No commit on this ref yet.
                continue
            self._read_commit(oid)
            if parents:
                message += f"; merged from {ref}"
            parents.append(oid)

        return self._create_commit(tree, parents, signature, message)

    def close_index(self) -> None:
        """Write the index to disk and release it."""
        index = self._require_index()
        body = bytearray(struct.pack(">4sII", b"DIRC", 2, len(index)))
        for path in sorted(index, key=lambda p: p.encode()):
            entry = index[path]
            name = path.encode()
            body += struct.pack(">10I", 0, 0, 0, 0, 0, 0, entry.mode, 0, 0, entry.size & 0xFFFFFFFF)
            body += bytes.fromhex(entry.oid)
            body += struct.pack(">H", min(len(name), 0xFFF))
            body += name
            body += b"\0" * (8 - (62 + len(name)) % 8)
        body += hashlib.sha1(body).digest()
        self._write_file(self._dir / "index", bytes(body))
        self._index = None