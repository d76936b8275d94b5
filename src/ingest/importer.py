"""Bulk importer for unpacked stock records.

Basic stock information (name, ISIN, WKN, ...) is written to the
basics collection regardless of its source. Every feed goes to its
own ``{source}-{feed}`` collection, created on first write. A stored
feed is only replaced by one of equal or lower age.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from core.batching import chunked
from core.constants import (
    BASICS_COLLECTION,
    DOCUMENT_ID_FIELD,
    ENTITY_ID_FIELD,
    UPDATED_AT_FIELD,
)
from core.logging_config import get_logger
from core.types import ImporterOptions, ImportSummary, StockRecord
from ingest.record_reader import files_to_import, read_stock_record
from store.collection_names import collection_name_for_feed
from store.record_store import UNACKNOWLEDGED_BULK, RecordStore, ReplaceOne

_LOGGER = get_logger(__name__)


class Importer:
    """Import record files from a directory into the record store."""

    def __init__(self, store: RecordStore, options: ImporterOptions | None = None) -> None:
        """Create importer.

        Args:
            store: Record store shared with the other components.
            options: Import directory and batch size.
        """
        self._store = store
        self._options = options or ImporterOptions()

    @property
    def options(self) -> ImporterOptions:
        return self._options

    def files_to_import(self) -> list[Path]:
        """Record files found under the configured path."""
        return files_to_import(self._options.path)

    def run(self) -> ImportSummary:
        """Import every record file, one batch at a time.

        Returns:
            Totals over all batches.

        Raises:
            RecordParseError: If a file in the current batch is malformed;
                earlier batches stay written.
        """
        summary = ImportSummary()
        for files in chunked(self.files_to_import(), self._options.batch_size):
            summary = _merge_summaries(summary, self.import_files(files))
        _LOGGER.info(
            "import_completed",
            path=str(self._options.path),
            files=summary.files,
            basics=summary.basics,
            feeds=summary.feeds,
        )
        return summary

    def import_files(self, files: Sequence[Path]) -> ImportSummary:
        """Bulk import the content of one batch of files."""
        records = [read_stock_record(file_path) for file_path in files]
        summary = self.import_stocks(records)
        return ImportSummary(
            files=len(files),
            basics=summary.basics,
            feeds=summary.feeds,
            collections=summary.collections,
        )

    def import_stocks(self, records: Sequence[StockRecord]) -> ImportSummary:
        """Split records into basics and feeds and write both."""
        basics = basics_of_stocks(records)
        feeds_by_name = feeds_of_stocks(records)
        if basics:
            self.import_basics(basics)
        collections: list[str] = []
        feed_count = 0
        for feeds in feeds_by_name.values():
            if feeds:
                collections.append(self.import_feeds(feeds))
                feed_count += len(feeds)
        return ImportSummary(
            basics=len(basics),
            feeds=feed_count,
            collections=tuple(collections),
        )

    def import_basics(self, basics: Sequence[dict[str, Any]]) -> None:
        """Write basic stock documents, replacing earlier versions wholesale.

        Args:
            basics: Basic documents keyed by ``_id``.
        """
        timestamp = datetime.now(timezone.utc)
        operations = [
            ReplaceOne(
                filter={DOCUMENT_ID_FIELD: basic[DOCUMENT_ID_FIELD]},
                replacement={**basic, UPDATED_AT_FIELD: timestamp},
                upsert=True,
            )
            for basic in basics
        ]
        self._store.bulk_write(BASICS_COLLECTION, operations, UNACKNOWLEDGED_BULK)
        _LOGGER.info("basics_written", count=len(operations))

    def import_feeds(self, feeds: Sequence[dict[str, Any]]) -> str:
        """Write documents of one feed type unless the stored one is fresher.

        The filter only matches a stored document whose age is not lower
        than the incoming one. When it does not match, the upsert's insert
        collides on ``_id`` and is dropped by the unacknowledged write.

        Args:
            feeds: Feed documents of one feed type, keyed by ``_id``.

        Returns:
            Name of the collection written to.
        """
        collection = collection_name_for_feed(feeds[0])
        operations = [
            ReplaceOne(
                filter={
                    DOCUMENT_ID_FIELD: feed[DOCUMENT_ID_FIELD],
                    "meta.age": {"$gte": feed["meta"]["age"]},
                },
                replacement=feed,
                upsert=True,
            )
            for feed in feeds
        ]
        self._store.bulk_write(collection, operations, UNACKNOWLEDGED_BULK)
        _LOGGER.info("feeds_written", collection=collection, count=len(operations))
        return collection


def basics_of_stocks(records: Sequence[StockRecord]) -> list[dict[str, Any]]:
    """Return one basic document per record, keyed by its ISIN."""
    return [
        {**record.basic, DOCUMENT_ID_FIELD: record.basic[ENTITY_ID_FIELD]}
        for record in records
    ]


def feeds_of_stocks(records: Sequence[StockRecord]) -> dict[str, list[dict[str, Any]]]:
    """Group feed documents of all records by feed type name.

    Returns:
        Feed type name mapped to feed documents keyed by the owning ISIN.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}
    for record in records:
        entity_id = record.basic[ENTITY_ID_FIELD]
        for feed in record.feeds:
            grouped.setdefault(feed["meta"]["feed"], []).append(
                {**feed, DOCUMENT_ID_FIELD: entity_id}
            )
    return grouped


def _merge_summaries(left: ImportSummary, right: ImportSummary) -> ImportSummary:
    collections = left.collections + tuple(
        name for name in right.collections if name not in left.collections
    )
    return ImportSummary(
        files=left.files + right.files,
        basics=left.basics + right.basics,
        feeds=left.feeds + right.feeds,
        collections=collections,
    )
