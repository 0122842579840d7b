import os
import shutil

import pytest

from bincheck.file_types import (
    FileCommandClassifier, FileTypeError, StaticClassifier, chunked, file_size, human_size, parse_file_output,
)


requires_file = pytest.mark.skipif(shutil.which("file") is None, reason="file(1) is not installed")


def test_parse_file_output():
    output = b"a.txt\0: ASCII text\nsub dir/b:c.py\0: Python script, ASCII text executable\n"
    assert parse_file_output(output) == {
        "a.txt": "ASCII text",
        "sub dir/b:c.py": "Python script, ASCII text executable",
    }


def test_parse_file_output_names_with_newlines():
    output = b"first\nhalf.dat\0: ELF 64-bit LSB executable\nnext\0: ASCII text\n"
    assert parse_file_output(output) == {
        "first\nhalf.dat": "ELF 64-bit LSB executable",
        "next": "ASCII text",
    }


def test_parse_file_output_undecodable_names():
    output = b"evil\xff.dat\0: ELF 64-bit LSB executable\n"
    assert parse_file_output(output) == {os.fsdecode(b"evil\xff.dat"): "ELF 64-bit LSB executable"}


def test_parse_file_output_skips_noise():
    assert parse_file_output(b"") == {}
    assert parse_file_output(b"no separator here\n") == {}


def test_chunked():
    assert list(chunked(["a", "b", "c", "d", "e"], 2)) == [["a", "b"], ["c", "d"], ["e"]]
    assert list(chunked([], 100)) == []
    with pytest.raises(ValueError):
        list(chunked(["a"], 0))


def test_static_classifier_records_batches():
    classifier = StaticClassifier({"a": "ASCII text", "c": "data"}, default="empty")
    result = classifier.classify_all(["a", "b", "c"], chunk_size=2)
    assert result == {"a": "ASCII text", "b": "empty", "c": "data"}
    assert classifier.batches == [["a", "b"], ["c"]]


def test_classify_all_rejects_missing_types():
    classifier = StaticClassifier({"a": "ASCII text", "c": "data"})
    with pytest.raises(FileTypeError):
        classifier.classify_all(["a", "b", "c"], chunk_size=2)


@pytest.mark.parametrize("size, expected", [
    (0, "0B"),
    (100, "100B"),
    (1023, "1023B"),
    (1024, "1.0K"),
    (1536, "1.5K"),
    (4096, "4.0K"),
    (4097, "4.1K"),
    (10 * 1024, "10K"),
    (10 * 1024 + 1, "11K"),
    (5 * 1024 * 1024, "5.0M"),
    (300 * 1024 * 1024, "300M"),
    (2 * 1024 ** 3, "2.0G"),
])
def test_human_size(size, expected):
    assert human_size(size) == expected


def test_human_size_rejects_negative():
    with pytest.raises(ValueError):
        human_size(-1)


def test_file_size(tmp_path):
    path = tmp_path / "blob"
    path.write_bytes(b"x" * 123)
    assert file_size(path) == 123
    assert file_size(tmp_path / "missing") is None
    assert file_size(tmp_path) is None


def test_missing_tool_fails_closed(tmp_path):
    classifier = FileCommandClassifier(tmp_path, command="bincheck-no-such-file-tool")
    with pytest.raises(FileTypeError):
        classifier.classify(["a.txt"])


@pytest.mark.skipif(shutil.which("false") is None, reason="false(1) is not installed")
def test_failing_tool_fails_closed(tmp_path):
    classifier = FileCommandClassifier(tmp_path, command="false")
    with pytest.raises(FileTypeError):
        classifier.classify(["a.txt"])


def test_empty_batch_runs_nothing(tmp_path):
    classifier = FileCommandClassifier(tmp_path, command="bincheck-no-such-file-tool")
    assert classifier.classify([]) == {}


@requires_file
def test_file_command_classifier(tmp_path):
    (tmp_path / "notes.txt").write_text("hello world\n")
    (tmp_path / "odd name: here.txt").write_text("hello again\n")
    (tmp_path / "Data.dat").write_bytes(b"\xca\xfe\xba\xbe\x00\x00\x00\x34" + b"\0" * 64)

    result = FileCommandClassifier(tmp_path).classify(["notes.txt", "odd name: here.txt", "Data.dat"])

    assert set(result) == {"notes.txt", "odd name: here.txt", "Data.dat"}
    assert "text" in result["notes.txt"]
    assert "text" in result["odd name: here.txt"]
    assert "compiled Java class" in result["Data.dat"]
