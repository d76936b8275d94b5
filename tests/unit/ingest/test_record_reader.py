"""Unit tests for record file listing and parsing."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.errors import RecordParseError
from ingest.record_reader import files_to_import, read_stock_record
from tests.fixture_records import feed_payload, fixture_path, stock_payload, write_stock


def test_files_to_import_lists_json_files_only() -> None:
    """Only .json files directly under the directory are imported."""
    files = files_to_import(fixture_path("stocks"))

    assert [path.name for path in files] == ["facebook.json"]


def test_files_to_import_is_not_recursive(tmp_path: Path) -> None:
    """Files in subdirectories are ignored."""
    write_stock(tmp_path, "f1.json", stock_payload())
    write_stock(tmp_path / "nested", "f2.json", stock_payload())

    assert [path.name for path in files_to_import(tmp_path)] == ["f1.json"]


def test_files_to_import_handles_missing_path(tmp_path: Path) -> None:
    """A missing directory yields no files."""
    assert files_to_import(tmp_path / "abd" / "dfbfg") == []


def test_files_to_import_handles_file_path(tmp_path: Path) -> None:
    """A file path instead of a directory yields no files."""
    file_path = write_stock(tmp_path, "abc.json", stock_payload())

    assert files_to_import(file_path) == []


def test_read_stock_record_parses_fixture() -> None:
    """The fixture record should expose its basic data and all feeds."""
    record = read_stock_record(fixture_path("stocks/facebook.json"))

    assert (record.basic["isin"], len(record.feeds)) == ("US30303M1027", 4)


def test_read_stock_record_defaults_missing_feeds(tmp_path: Path) -> None:
    """Records without feeds still carry their basic data."""
    file_path = write_stock(tmp_path, "a.json", {"basic": {"isin": "DE0007164600"}})

    assert read_stock_record(file_path).feeds == ()


def test_read_stock_record_rejects_invalid_json(tmp_path: Path) -> None:
    """Broken JSON should raise a parse error naming the file."""
    file_path = tmp_path / "broken.json"
    file_path.write_text("{", encoding="utf-8")

    with pytest.raises(RecordParseError, match="broken.json"):
        read_stock_record(file_path)

    assert file_path.exists()


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"feeds": []},
        {"basic": {"name": "no isin"}},
        {"basic": {"isin": "A"}, "feeds": {}},
        {"basic": {"isin": "A"}, "feeds": ""},
        {"basic": {"isin": "A"}, "feeds": 0},
        {"basic": {"isin": "A"}, "feeds": False},
        {"basic": {"isin": "A"}, "feeds": [{"price": 1}]},
        {"basic": {"isin": "A"}, "feeds": [feed_payload("consorsbank", "", 1)]},
        {"basic": {"isin": "A"}, "feeds": [{"meta": {"source": "s", "feed": "f", "age": "1"}}]},
        {"basic": {"isin": "A"}, "feeds": [{"meta": {"source": "s", "feed": "f", "age": True}}]},
    ],
)
def test_read_stock_record_rejects_malformed_shapes(tmp_path: Path, payload) -> None:
    """Records missing required keys should raise parse errors."""
    file_path = tmp_path / "bad.json"
    file_path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(RecordParseError):
        read_stock_record(file_path)

    assert file_path.exists()


def test_read_stock_record_accepts_null_feeds(tmp_path: Path) -> None:
    """An explicit null feeds section reads as no feeds."""
    file_path = write_stock(tmp_path, "null.json", {"basic": {"isin": "A"}, "feeds": None})

    assert read_stock_record(file_path).feeds == ()
