import pytest

from p4fusion.file_data import FileAction
from p4fusion.results import (
    ClientResult,
    DescribeResult,
    FileLogResult,
    InfoResult,
    PrintResult,
    Result,
    SizesResult,
    SyncResult,
    UsersResult,
)


def test_handle_error_is_remembered():
    result = Result()
    assert not result.has_error
    result.handle_error("boom")
    assert result.error == "boom"
    assert result.has_error


def test_client_result_reads_views_until_gap():
    result = ClientResult()
    result.output_stat(
        {
            "Client": "ws",
            "View0": "//depot/a/... //ws/a/...",
            "View1": "-//depot/a/x/... //ws/a/x/...",
            "View3": "//depot/ignored/... //ws/ignored/...",
        }
    )
    assert result.client == "ws"
    assert result.mapping == ["//depot/a/... //ws/a/...", "-//depot/a/x/... //ws/a/x/..."]


def test_describe_partial_reads_indexed_files():
    result = DescribeResult()
    first = {"depotFile0": "//d/a.txt", "rev0": "3", "action0": "edit", "type0": "text"}
    assert result.output_stat_partial(first) is True
    second = dict(first, depotFile1="//d/b.bin", rev1="1", action1="delete", type1="binary")
    assert result.output_stat_partial(second) is True
    assert result.output_stat_partial(second) is False
    assert [f.depot_file for f in result.file_data] == ["//d/a.txt", "//d/b.bin"]
    assert result.file_data[1].is_deleted
    assert result.file_data[1].is_binary()


def test_filelog_skips_non_file_records():
    result = FileLogResult()
    result.output_stat({"other": "x"})
    assert result.file_data == []


def test_filelog_records_integration_source():
    result = FileLogResult()
    result.output_stat(
        {
            "depotFile": "//d/main/f.c",
            "rev0": "2",
            "action0": "integrate",
            "type0": "text",
            "how0,0": "copy into",
            "file0,0": "//d/other/f.c",
            "erev0,0": "#1",
            "how0,1": "merge from",
            "file0,1": "//d/dev/f.c",
            "erev0,1": "#7",
        }
    )
    (data,) = result.file_data
    assert data.is_integrated
    assert data.from_depot_file == "//d/dev/f.c"
    assert data.from_revision == "7"


def test_filelog_delete_from_becomes_fake_delete():
    result = FileLogResult()
    result.output_stat(
        {
            "depotFile": "//d/main/f.c",
            "rev0": "4",
            "action0": "integrate",
            "type0": "text",
            "how0,0": "delete from",
            "file0,0": "//d/dev/f.c",
            "erev0,0": "#2",
        }
    )
    (data,) = result.file_data
    assert data.action_category is FileAction.INTEGRATE_DELETE
    assert data.is_deleted
    assert not data.is_integrated
    assert data.from_depot_file == "//d/dev/f.c"


def test_filelog_without_integration_has_no_source():
    result = FileLogResult()
    result.output_stat({"depotFile": "//d/f", "rev0": "1", "action0": "add", "type0": "text"})
    assert result.file_data[0].from_depot_file == ""


def test_info_result_timezone():
    result = InfoResult()
    result.output_stat({"serverDate": "2022/03/15 09:56:15 -0400 EDT"})
    assert result.timezone_minutes == -240


def test_print_result_concatenates_chunks_per_file():
    result = PrintResult()
    result.output_stat({"depotFile": "//d/a"})
    result.output_text(b"ab")
    result.output_binary(b"cd")
    result.output_stat({"depotFile": "//d/b"})
    result.output_stat({"depotFile": "//d/c"})
    result.output_text(b"z")
    assert [bytes(c) for c in result.contents] == [b"abcd", b"", b"z"]


def test_sizes_result():
    result = SizesResult()
    result.output_stat({"fileSize": "1024"})
    assert result.size == "1024"


def test_sync_result_pairs():
    result = SyncResult()
    result.output_stat({"depotFile": "//d/a", "rev": "5"})
    result.output_stat({"depotFile": "//d/b", "rev": "1"})
    assert [(s.depot_file, s.revision) for s in result.sync_data] == [("//d/a", "5"), ("//d/b", "1")]


def test_users_result_full_name_fallback_and_missing_fields():
    result = UsersResult()
    result.output_stat({"User": "alice", "Email": "alice@example.com", "FullName": "Alice A"})
    result.output_stat({"User": "bob", "Email": "bob@example.com"})
    result.output_stat({"User": "carol"})
    assert set(result.users) == {"alice", "bob"}
    assert result.users["alice"].full_name == "Alice A"
    assert result.users["bob"].full_name == "bob"
    assert result.users["bob"].email == "bob@example.com"


def test_required_field_missing_raises():
    with pytest.raises(KeyError):
        SizesResult().output_stat({})