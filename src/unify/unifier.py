"""Join basics and feed collections into consolidated stock documents.

Documents in the stocks collection are never reset: basic fields and
feed payloads are set key by key, so re-running is idempotent and a
feed type missing from the current sources keeps its last value.
"""

from __future__ import annotations

from typing import Any, Iterator, Sequence

from core.batching import chunked
from core.constants import (
    BASICS_COLLECTION,
    DOCUMENT_ID_FIELD,
    MULTI_ITEMS_FIELD,
    STOCKS_COLLECTION,
)
from core.logging_config import get_logger
from core.types import UnifierOptions, UnifySummary
from store.collection_names import is_feed_collection_name
from store.record_store import UNACKNOWLEDGED_BULK, RecordStore, UpdateOne

_LOGGER = get_logger(__name__)


class Unifier:
    """Unify all feeds of a stock into one stock document.

    Run it after a successful import. With ``drop_feeds`` the feed
    collections and the basics collection are dropped once every page
    has been unified.
    """

    def __init__(self, store: RecordStore, options: UnifierOptions | None = None) -> None:
        self._store = store
        self._options = options or UnifierOptions()

    @property
    def options(self) -> UnifierOptions:
        return self._options

    def run(self) -> UnifySummary:
        """Unify every stock listed in the basics collection.

        Returns:
            Summary of unified stocks; empty when there are no basics.
        """
        if not self._store.has_collection(BASICS_COLLECTION):
            _LOGGER.info("unify_skipped", reason="no basics collection")
            return UnifySummary()
        feed_collections = self.feed_collections()
        stock_count = 0
        for ids in chunked(self.stock_ids(), self._options.batch_size):
            self.copy_basics(ids)
            self.unify_stocks(ids, feed_collections)
            stock_count += len(ids)
        if self._options.drop_feeds:
            self.drop_feed_collections()
        _LOGGER.info(
            "unify_completed",
            stocks=stock_count,
            feed_collections=len(feed_collections),
            dropped=self._options.drop_feeds,
        )
        return UnifySummary(
            stocks=stock_count,
            feed_collections=tuple(feed_collections),
            dropped=self._options.drop_feeds,
        )

    def stock_ids(self) -> Iterator[Any]:
        """Lazy sequence of all stock ids in the basics collection."""
        cursor = self._store.find(
            BASICS_COLLECTION,
            projection={DOCUMENT_ID_FIELD: 1},
            batch_size=self._options.batch_size,
        )
        return (document[DOCUMENT_ID_FIELD] for document in cursor)

    def copy_basics(self, ids: Sequence[Any]) -> None:
        """Copy basic documents of the given stocks into the stocks collection."""
        basics = self._store.find(
            BASICS_COLLECTION,
            filter={DOCUMENT_ID_FIELD: {"$in": list(ids)}},
            batch_size=len(ids),
        )
        operations = [
            UpdateOne(
                filter={DOCUMENT_ID_FIELD: basic[DOCUMENT_ID_FIELD]},
                update={"$set": _without_id(basic)},
                upsert=True,
            )
            for basic in basics
        ]
        if operations:
            self._store.bulk_write(STOCKS_COLLECTION, operations, UNACKNOWLEDGED_BULK)

    def unify_stocks(
        self,
        ids: Sequence[Any],
        feed_collections: Sequence[str] | None = None,
    ) -> int:
        """Set the feed payloads of the given stocks.

        Args:
            ids: Stock ids of one page.
            feed_collections: Collections to join; all feed collections
                when omitted.

        Returns:
            Number of stock documents updated.
        """
        if feed_collections is None:
            feed_collections = self.feed_collections()
        content = self.feeds_content_for_stocks(ids, feed_collections)
        operations = [
            UpdateOne(
                filter={DOCUMENT_ID_FIELD: stock_id},
                update={"$set": feeds},
                upsert=True,
            )
            for stock_id, feeds in content.items()
        ]
        if operations:
            self._store.bulk_write(STOCKS_COLLECTION, operations, UNACKNOWLEDGED_BULK)
        _LOGGER.debug("stocks_unified", stocks=len(operations))
        return len(operations)

    def feeds_content_for_stocks(
        self,
        ids: Sequence[Any],
        feed_collections: Sequence[str],
    ) -> dict[Any, dict[str, Any]]:
        """Collect feed payloads of the given stocks.

        Example:
            ``{"US0378331005": {"intraday": {...}, "performance": {...}}}``
        """
        content: dict[Any, dict[str, Any]] = {}
        for collection in feed_collections:
            feeds = self._store.find(
                collection,
                filter={DOCUMENT_ID_FIELD: {"$in": list(ids)}},
                batch_size=len(ids),
            )
            for feed in feeds:
                stock_id = feed[DOCUMENT_ID_FIELD]
                content.setdefault(stock_id, {})[feed["meta"]["feed"]] = feed_payload(feed)
        return content

    def feed_collections(self) -> list[str]:
        """Names of all feed collections, e.g. ``consorsbank-intraday``."""
        return sorted(
            name for name in self._store.list_collection_names() if is_feed_collection_name(name)
        )

    def drop_feed_collections(self) -> None:
        """Drop all feed collections and the basics collection."""
        for name in self.feed_collections():
            self._store.drop_collection(name)
        self._store.drop_collection(BASICS_COLLECTION)
        _LOGGER.info("feed_collections_dropped")


def feed_payload(feed: dict[str, Any]) -> Any:
    """Return what a stock document stores for one feed record.

    Multi feeds contribute their item sequence; other feeds the whole
    record without its ``_id``.
    """
    if feed.get("meta", {}).get("multi"):
        return feed.get(MULTI_ITEMS_FIELD, [])
    return _without_id(feed)


def _without_id(document: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in document.items() if key != DOCUMENT_ID_FIELD}
