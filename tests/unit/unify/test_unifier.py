"""Unit tests for stock unification."""

from __future__ import annotations

from pathlib import Path

from core.types import ImporterOptions, UnifierOptions
from ingest.importer import Importer
from store.memory_store import MemoryRecordStore
from store.record_store import InsertOne
from tests.fixture_records import feed_payload, fixture_path, stock_payload, write_stock
from unify.unifier import Unifier, feed_payload as stored_feed_payload

ISIN = "US30303M1027"


def _import(store: MemoryRecordStore, directory: Path) -> None:
    Importer(store, ImporterOptions(path=directory)).run()


def _stock(store: MemoryRecordStore, isin: str = ISIN) -> dict:
    return next(iter(store.find("stocks", {"_id": isin})))


def test_run_without_basics_is_noop(memory_store: MemoryRecordStore) -> None:
    """Unify should not create collections when nothing was imported."""
    summary = Unifier(memory_store).run()

    assert (summary.stocks, memory_store.list_collection_names()) == (0, [])


def test_run_joins_basics_and_feeds(memory_store: MemoryRecordStore) -> None:
    """A stock document should hold basic fields and one key per feed type."""
    _import(memory_store, fixture_path("stocks"))

    Unifier(memory_store).run()

    stock = _stock(memory_store)
    assert (stock["name"], stock["factset"]["upgrades"], stock["intraday"]["price"]) == (
        "Facebook Inc.",
        5,
        120.5,
    )


def test_run_stores_items_of_multi_feeds(memory_store: MemoryRecordStore) -> None:
    """Multi feeds should contribute their item list."""
    _import(memory_store, fixture_path("stocks"))

    Unifier(memory_store).run()

    assert [item["indicator"] for item in _stock(memory_store)["technicalanalysis"]] == [
        "macd",
        "rsi",
    ]


def test_run_twice_is_idempotent(memory_store: MemoryRecordStore) -> None:
    """Running unify again should leave stock documents unchanged."""
    _import(memory_store, fixture_path("stocks"))
    unifier = Unifier(memory_store)
    unifier.run()
    first = list(memory_store.find("stocks"))

    unifier.run()

    assert list(memory_store.find("stocks")) == first


def test_newer_feed_updates_only_its_key(memory_store: MemoryRecordStore, tmp_path: Path) -> None:
    """A fresher feed should update its key and keep the other feed keys."""
    write_stock(tmp_path, "fb.json", stock_payload())
    _import(memory_store, tmp_path)
    Unifier(memory_store).run()
    newer = stock_payload(feeds=[feed_payload("consorsbank", "intraday", 0, price=99.0)])
    write_stock(tmp_path, "fb.json", newer)
    _import(memory_store, tmp_path)

    Unifier(memory_store).run()

    stock = _stock(memory_store)
    assert (stock["intraday"]["price"], stock["factset"]["upgrades"]) == (99.0, 5)


def test_feed_key_survives_dropped_feed_collection(memory_store: MemoryRecordStore) -> None:
    """A feed type missing from the sources should keep its stored value."""
    memory_store.bulk_write("stocks", [InsertOne({"_id": ISIN, "rating": {"score": 3}})])
    memory_store.bulk_write("basics", [InsertOne({"_id": ISIN, "isin": ISIN, "name": "x"})])

    Unifier(memory_store).run()

    assert _stock(memory_store)["rating"] == {"score": 3}


def test_drop_feeds_keeps_only_stocks(memory_store: MemoryRecordStore) -> None:
    """Dropping should remove basics and feed collections after unifying."""
    _import(memory_store, fixture_path("stocks"))

    summary = Unifier(memory_store, UnifierOptions(drop_feeds=True)).run()

    assert (summary.dropped, memory_store.list_collection_names()) == (True, ["stocks"])


def test_run_pages_through_all_stocks(memory_store: MemoryRecordStore, tmp_path: Path) -> None:
    """Every stock should be unified when ids span several pages."""
    isins = [f"DE000000000{index}" for index in range(5)]
    for isin in isins:
        write_stock(tmp_path, f"{isin}.json", stock_payload(isin=isin))
    _import(memory_store, tmp_path)

    summary = Unifier(memory_store, UnifierOptions(batch_size=2)).run()

    unified = [doc["_id"] for doc in memory_store.find("stocks") if "intraday" in doc]
    assert (summary.stocks, sorted(unified)) == (5, isins)


def test_feed_collections_lists_only_feed_names(memory_store: MemoryRecordStore) -> None:
    """Only collections following the feed naming rule are feed collections."""
    _import(memory_store, fixture_path("stocks"))

    assert Unifier(memory_store).feed_collections() == [
        "consorsbank-factset",
        "consorsbank-intraday",
        "consorsbank-performance",
        "consorsbank-technicalanalysis",
    ]


def test_feed_payload_strips_document_id() -> None:
    """Single feeds should be stored without their _id."""
    feed = {"_id": ISIN, **feed_payload("consorsbank", "intraday", 2, price=1.0)}

    assert "_id" not in stored_feed_payload(feed)
