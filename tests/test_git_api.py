import zlib
from pathlib import Path

import pytest

from p4fusion.git_api import GitError, GitRepository

EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


def _read_object(repo_dir: Path, oid: str) -> tuple[str, bytes]:
    raw = zlib.decompress((repo_dir / "objects" / oid[:2] / oid[2:]).read_bytes())
    header, _, body = raw.partition(b"\0")
    return header.decode().split(" ")[0], body


def _tree_of(repo_dir: Path, commit_oid: str) -> str:
    _, body = _read_object(repo_dir, commit_oid)
    first_line = body.split(b"\n")[0].decode()
    return first_line.split(" ")[1]


def _new_repo(tmp_path: Path) -> tuple[GitRepository, Path]:
    repo_dir = tmp_path / "test-repo"
    git = GitRepository(False)
    git.initialize_repository(str(repo_dir))
    git.create_index()
    return git, repo_dir


def test_source_scenario(tmp_path):
    git = GitRepository(False)
    assert git.initialize_repository(str(tmp_path / "test-repo")) is True
    git.create_index()
    git.add_file_to_index("foo.txt", b"xyz", False)
    git.commit("//a/b/c/...", "12345678", "test.user", "test@example.com", 0, "Test description", 10000000, "")
    assert git.head_exists() is True
    assert git.is_repository_cloned_from("//a/b/c/...") is True
    assert git.is_repository_cloned_from("//a/b/c/d/...") is False
    assert git.is_repository_cloned_from("//x/y/z/...") is False
    assert git.detect_latest_cl() == "12345678"

    git.remove_file_from_index("foo.txt")
    git.commit("//a/b/c/...", "12345679", "test.user.2", "test2@example.com", 0, "Test description", 20000000, "")
    assert git.head_exists() is True
    assert git.is_repository_cloned_from("//a/b/c/...") is True
    assert git.is_repository_cloned_from("//a/b/c/d/...") is False
    assert git.is_repository_cloned_from("//x/y/z/...") is False
    assert git.detect_latest_cl() == "12345679"

    git.close_index()
    assert (tmp_path / "test-repo" / "index").read_bytes()[:4] == b"DIRC"


def test_blob_ids_match_git():
    git = GitRepository()
    with pytest.raises(GitError):
        git.create_blob(b"")


def test_blob_ids_are_git_object_ids(tmp_path):
    git, _ = _new_repo(tmp_path)
    assert git.create_blob(b"") == "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"
    assert git.create_blob(b"hello\n") == "ce013625030ba8dba906f756967f9e9ca394464a"


def test_fresh_index_creates_initial_commit(tmp_path):
    git, repo_dir = _new_repo(tmp_path)
    assert git.head_exists() is True
    assert git.is_repository_cloned_from("//a/...") is False
    initial = (repo_dir / "refs" / "heads" / "master").read_text().strip()
    kind, body = _read_object(repo_dir, initial)
    assert kind == "commit"
    assert b"author No User <no@user> 0 +0000" in body
    assert body.endswith(b"\n\nInitial repository.")
    assert _tree_of(repo_dir, initial) == EMPTY_TREE


def test_commit_object_format(tmp_path):
    git, repo_dir = _new_repo(tmp_path)
    initial = (repo_dir / "refs" / "heads" / "master").read_text().strip()
    git.add_file_to_index("dir/foo.txt", b"xyz", False)
    sha = git.commit("//depot/main/...", "42", "test.user", "test@example.com", -240, "Fix it", 10000000, "")
    kind, body = _read_object(repo_dir, sha)
    assert kind == "commit"
    assert f"parent {initial}".encode() in body
    assert b"author test.user <test@example.com> 10000000 -0400" in body
    assert b"encoding UTF-8" in body
    assert body.endswith(b'\n\n42 - Fix it\n[p4-fusion: depot-paths = "//depot/main/": change = 42]')
    assert (repo_dir / "refs" / "heads" / "master").read_text().strip() == sha


def test_executable_mode_in_tree(tmp_path):
    git, repo_dir = _new_repo(tmp_path)
    git.add_file_to_index("run.sh", b"#!/bin/sh\n", True)
    git.add_file_to_index("plain.txt", b"text", False)
    sha = git.commit("//d/...", "1", "u", "u@example.com", 0, "d", 1, "")
    kind, tree = _read_object(repo_dir, _tree_of(repo_dir, sha))
    assert kind == "tree"
    assert b"100755 run.sh\0" in tree
    assert b"100644 plain.txt\0" in tree


def test_removing_all_files_gives_empty_tree(tmp_path):
    git, repo_dir = _new_repo(tmp_path)
    git.add_file_to_index("foo.txt", b"xyz", False)
    git.commit("//d/...", "1", "u", "u@example.com", 0, "d", 1, "")
    git.remove_file_from_index("foo.txt")
    sha = git.commit("//d/...", "2", "u", "u@example.com", 0, "d", 2, "")
    assert _tree_of(repo_dir, sha) == EMPTY_TREE


def test_branch_and_merge(tmp_path):
    git, repo_dir = _new_repo(tmp_path)
    master_sha = git.commit("//d/...", "1", "u", "u@example.com", 0, "m", 1, "")
    git.add_file_to_index("master.txt", b"m", False)
    master_sha = git.commit("//d/...", "2", "u", "u@example.com", 0, "m", 2, "")

    git.set_active_branch("dev")
    assert (repo_dir / "HEAD").read_text() == "ref: refs/heads/dev\n"
    git.add_file_to_index("dev.txt", b"d", False)
    dev_sha = git.commit("//d/...", "3", "u", "u@example.com", 0, "dev", 3, "master")

    assert (repo_dir / "refs" / "heads" / "dev").read_text().strip() == dev_sha
    _, body = _read_object(repo_dir, dev_sha)
    assert f"parent {master_sha}".encode() in body
    assert body.count(b"\nparent ") == 2
    assert body.endswith(b"change = 3]; merged from refs/heads/master")
    _, tree = _read_object(repo_dir, _tree_of(repo_dir, dev_sha))
    assert b"dev.txt" in tree
    assert b"master.txt" not in tree


def test_reopen_loads_head_tree(tmp_path):
    git, repo_dir = _new_repo(tmp_path)
    git.add_file_to_index("a.txt", b"a", False)
    git.commit("//d/...", "7", "u", "u@example.com", 0, "d", 1, "")
    git.close_index()

    reopened = GitRepository(True)
    reopened.open_repository(str(repo_dir))
    reopened.create_index()
    assert reopened.detect_latest_cl() == "7"
    reopened.add_file_to_index("b.txt", b"b", False)
    sha = reopened.commit("//d/...", "8", "u", "u@example.com", 0, "d", 2, "")
    _, tree = _read_object(repo_dir, _tree_of(repo_dir, sha))
    assert b"a.txt" in tree
    assert b"b.txt" in tree


@pytest.mark.parametrize("path", ["", "/abs.txt", "a/../b", "a//b", ".git/config"])
def test_invalid_index_paths_are_rejected(tmp_path, path):
    git, _ = _new_repo(tmp_path)
    with pytest.raises(GitError):
        git.add_file_to_index(path, b"x", False)


def test_open_missing_repository_raises(tmp_path):
    with pytest.raises(GitError):
        GitRepository().open_repository(str(tmp_path / "missing"))


def test_commit_without_index_raises(tmp_path):
    git = GitRepository()
    git.initialize_repository(str(tmp_path / "repo"))
    with pytest.raises(GitError):
        git.commit("//d/...", "1", "u", "u@example.com", 0, "d", 1, "")


def test_signature_with_angle_bracket_raises(tmp_path):
    git, _ = _new_repo(tmp_path)
    with pytest.raises(GitError):
        git.commit("//d/...", "1", "bad <name>", "u@example.com", 0, "d", 1, "")


def test_invalid_branch_name_raises(tmp_path):
    git, _ = _new_repo(tmp_path)
    with pytest.raises(GitError):
        git.set_active_branch("bad..name")