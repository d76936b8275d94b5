"""Input record readers for import.

This module lists record files in an import directory and parses
each one into a typed stock record.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from core.constants import ENTITY_ID_FIELD, IMPORT_FILE_SUFFIX
from core.errors import RecordParseError
from core.types import StockRecord


def files_to_import(path: Path) -> list[Path]:
    """List record files directly under a directory.

    Args:
        path: Import directory.

    Returns:
        Sorted record file paths; empty for a missing path or a file.
    """
    if not path.is_dir():
        return []
    return sorted(
        file_path
        for file_path in path.glob(f"*{IMPORT_FILE_SUFFIX}")
        if file_path.is_file()
    )


def read_stock_record(file_path: Path) -> StockRecord:
    """Parse one record file.

    Args:
        file_path: JSON file with ``basic`` and ``feeds`` sections.

    Returns:
        Parsed stock record.

    Raises:
        RecordParseError: If the file is unreadable or malformed.
    """
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as error:
        raise RecordParseError(
            f"Failed to read record file {file_path}: {error}. "
            "Check the unpacked archive and retry import."
        ) from error
    except json.JSONDecodeError as error:
        raise RecordParseError(
            f"Failed to parse record file {file_path}:{error.lineno}: {error.msg}. "
            "Fix the JSON syntax and retry import."
        ) from error
    if not isinstance(payload, dict):
        raise RecordParseError(
            f"Invalid record file {file_path}: expected JSON object at top level."
        )
    basic = _parse_basic(file_path, payload.get("basic"))
    feeds = payload.get("feeds", [])
    if feeds is None:
        feeds = []
    if not isinstance(feeds, list):
        raise RecordParseError(
            f"Invalid record file {file_path}: expected list field 'feeds'."
        )
    return StockRecord(
        basic=basic,
        feeds=tuple(_parse_feed(file_path, index, feed) for index, feed in enumerate(feeds)),
        source_path=file_path,
    )


def _parse_basic(file_path: Path, basic: Any) -> dict[str, Any]:
    if not isinstance(basic, dict):
        raise RecordParseError(
            f"Invalid record file {file_path}: expected object field 'basic'."
        )
    entity_id = basic.get(ENTITY_ID_FIELD)
    if not isinstance(entity_id, str) or not entity_id:
        raise RecordParseError(
            f"Invalid record file {file_path}: "
            f"expected string field 'basic.{ENTITY_ID_FIELD}'."
        )
    return basic


def _parse_feed(file_path: Path, index: int, feed: Any) -> dict[str, Any]:
    location = f"{file_path} feeds[{index}]"
    if not isinstance(feed, dict) or not isinstance(feed.get("meta"), dict):
        raise RecordParseError(f"Invalid feed at {location}: expected object with 'meta'.")
    meta: Mapping[str, Any] = feed["meta"]
    for key in ("source", "feed"):
        if not isinstance(meta.get(key), str) or not meta[key]:
            raise RecordParseError(f"Invalid feed at {location}: expected string 'meta.{key}'.")
    age = meta.get("age")
    if isinstance(age, bool) or not isinstance(age, int):
        raise RecordParseError(f"Invalid feed at {location}: expected integer 'meta.age'.")
    return feed
