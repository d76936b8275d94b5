"""Collection naming rules.

Feed collections are named ``{source}-{feed}``; any collection whose
name contains the separator is treated as a feed collection.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.constants import FEED_COLLECTION_SEPARATOR


def feed_collection_name(source: str, feed: str) -> str:
    """Return the collection name for a source and feed type."""
    return f"{source}{FEED_COLLECTION_SEPARATOR}{feed}"


def collection_name_for_feed(feed: Mapping[str, Any]) -> str:
    """Return the collection name declared by a feed record's ``meta``."""
    meta = feed["meta"]
    return feed_collection_name(str(meta["source"]), str(meta["feed"]))


def is_feed_collection_name(name: str) -> bool:
    """Return whether a collection name follows the feed convention."""
    return FEED_COLLECTION_SEPARATOR in name
