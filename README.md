# p4fusion

Building blocks for moving Perforce changelist history into a Git
repository. Changed files are filtered through a client view, sorted into
per-branch groups, and written as Git commits; an integration between two
known branches becomes a Git merge. The Git side is written directly as Git
objects, refs and an index file, with no dependency outside the standard
library.

## Modules

- `p4fusion.std_helpers`: `starts_with`, `ends_with`, `contains`, `erase`,
  `strip_surrounding`, `split_at`, `split_on_delim`.
- `p4fusion.time_helpers`: `get_timezone_minutes` reads the UTC offset from a
  Perforce `serverDate` value; a malformed value raises `ValueError`.
- `p4fusion.timer`: `Timer`, a stopwatch with `elapsed_seconds()`.
- `p4fusion.log`: `info` (standard output), `warn`, `error` and `success`
  (standard error), each prefixed with the calling function and line;
  `disable_colored_output()` turns off the ANSI colours.
- `p4fusion.arguments`: `Arguments`, a registry of `--name value` options
  (`required_parameter`, `optional_parameter`, `optional_parameter_list`,
  `parse`, `is_valid`, `help`, `get`, `get_list`), and `default_arguments()`
  with the conversion options (`--path`, `--src`, `--port`, `--user`,
  `--client`, `--lookAhead`, `--branch`, `--noMerge`, `--networkThreads`,
  `--printBatch`, `--maxChanges`, `--retries`, `--refresh`, `--fsyncEnable`,
  `--includeBinaries`, `--flushRate`, `--noColor`, `--streamMappings`)
  already declared.
- `p4fusion.file_data`: `FileData`, one file revision of a changelist, and
  `FileAction` with `file_action_from_name`. Unknown action names are guessed
  as a delete, a move/add or an edit.
- `p4fusion.file_map`: `FileMap` and `MapType`, a client view supporting
  `...`, `*` and `%%n` wildcards, include, exclude (`-`), overlay (`+`) and
  one-to-many (`&`) lines; `is_in_left`, `is_in_right`,
  `translate_left_to_right`, `translate_right_to_left` (these return `None`
  when a path is not mapped).
- `p4fusion.stream_result`: `StreamResult`, `MappingData` and `StreamRule`
  for the `Paths` lines of a stream spec.
- `p4fusion.results`: collectors for tagged command output: `Result`,
  `ClientResult`, `DescribeResult`, `FileLogResult`, `InfoResult`,
  `PrintResult`, `SizesResult`, `SyncResult`, `UsersResult`. Each takes
  records as plain mappings of field name to value.
- `p4fusion.thread_pool`: `ThreadPool`, worker threads that each own a
  context from a `context_factory`; exceptions raised by jobs are kept until
  `raise_caught_exceptions()`. Usable as a context manager.
- `p4fusion.branch_set`: `BranchSet`, `Branch`, `ChangedFileGroups`,
  `BranchedFileGroup`, `create_branch_from_path`, `create_branches_from_paths`.
- `p4fusion.change_list`: `ChangeList`, `ChangeListState` and
  `ChangesResult`; a changelist queues describe/filelog and print jobs on a
  `ThreadPool` and `wait_for_download()` blocks until its files are in.
- `p4fusion.git_api`: `GitRepository`, which creates or opens a repository,
  stages files, switches branches and writes commits, and `GitError`, raised
  when an operation cannot be carried out.

## Examples

Reading a server's timezone:

```python
from p4fusion.time_helpers import get_timezone_minutes

get_timezone_minutes("2022/03/15 09:56:15 -0400 EDT")  # -240
get_timezone_minutes("2022/03/09 22:59:04 +0530 IST")  # 330
```

Naming branches. A branch is given as `depot/sub/path:git-alias`; the text
after the last `:` is the Git branch name, and without a `:` the path itself
is used:

```python
from p4fusion.branch_set import create_branch_from_path

branch = create_branch_from_path("release/1.0:release-1.0")
branch.split_branch_path("release/1.0/src/main.c")  # ("release-1.0", "src/main.c")
branch.split_branch_path("other/src/main.c")        # None
```

Checking paths against a client view:

```python
from p4fusion.file_map import FileMap

view = FileMap()
view.insert_translation_mapping(["//depot/project/... //client/project/..."])
view.is_in_left("//depot/project/src/a.c")               # True
view.translate_left_to_right("//depot/project/src/a.c")  # "//client/project/src/a.c"
```

Grouping the files of a changelist:

```python
from p4fusion.branch_set import BranchSet
from p4fusion.file_data import FileData

branch_set = BranchSet(["//depot/... //client/..."], "//depot/...", ["main", "dev:develop"])
changed = FileData("//depot/dev/a.c", "2", "integrate", "text")
changed.set_from_depot_file("//depot/main/a.c", "#1")

group = branch_set.parse_affected_files([changed]).branched_file_groups[0]
group.source_branch, group.target_branch, group.has_source  # ("main", "develop", True)
changed.relative_path                                      # "a.c"
```

Writing commits:

```python
from p4fusion.git_api import GitRepository

repo = GitRepository()
repo.initialize_repository("/tmp/converted.git")
repo.create_index()
repo.add_file_to_index("foo.txt", b"xyz", False)
repo.commit("//a/b/c/...", "12345678", "test.user", "test@example.com",
            0, "Test description", 10000000, "")
repo.detect_latest_cl()                         # "12345678"
repo.is_repository_cloned_from("//a/b/c/...")   # True
repo.close_index()
```

## How changed files are handled

1. `BranchSet` takes a base depot path ending in `/...` or `/`; anything else
   raises `ValueError`.
2. Files outside the client view, files under a `.git` directory or named
   `.git`, and binary files (unless `include_binaries` is set) are dropped.
   Files outside the base path are kept only when a stream import mapping
   covers them, and stream exclusions are applied afterwards.
3. With branches given, each file is placed under the first branch, in the
   order given, whose path it starts with; list deeper branches first when
   one branch path contains another. Files under no branch are dropped. An
   integration from a different known branch forms a merge group.
4. `GitRepository.create_index()` on an empty repository writes an empty
   first commit, and every new branch starts from it. Each `commit()` message
   ends with `[p4-fusion: depot-paths = "<path>": change = <number>]`, which
   `is_repository_cloned_from()` and `detect_latest_cl()` read back.

## What the package does not do

It does not talk to a Perforce server and has no command to run a
conversion. The changelist jobs call `describe`, `file_log` and `print_files`
on whatever context object the `ThreadPool` hands them, and the result
collectors take records that the caller has already fetched; supplying those
and driving the loop over changelists is left to the code that uses the
package.

## Tests

The tests use pytest and live in `tests/`:

```
pip install -e .[test]
pytest
```