"""Record store interface.

This module defines the document-store capability consumed by the
importer and unifier: named collections, lazy projection reads,
unordered bulk writes, and collection listing and dropping.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence, Union

Document = dict[str, Any]
Filter = Mapping[str, Any]


@dataclass(frozen=True)
class InsertOne:
    """Insert a document; a duplicate ``_id`` fails this operation only."""

    document: Mapping[str, Any]


@dataclass(frozen=True)
class ReplaceOne:
    """Replace the first document matching ``filter``.

    With ``upsert`` a non-matching filter inserts ``replacement`` instead,
    carrying the filter's ``_id`` when the replacement has none.
    """

    filter: Filter
    replacement: Mapping[str, Any]
    upsert: bool = False


@dataclass(frozen=True)
class UpdateOne:
    """Apply an update document such as ``{"$set": {...}}`` to one match."""

    filter: Filter
    update: Mapping[str, Any]
    upsert: bool = False


WriteOperation = Union[InsertOne, ReplaceOne, UpdateOne]


@dataclass(frozen=True)
class BulkWriteOptions:
    """Submission semantics of one bulk write.

    Attributes:
        ordered: Stop at the first failed operation when true.
        acknowledged: Report per-operation failures when true.
        bypass_document_validation: Skip server-side schema validation.
    """

    ordered: bool = False
    acknowledged: bool = False
    bypass_document_validation: bool = True


UNACKNOWLEDGED_BULK = BulkWriteOptions()


class RecordStore(Protocol):
    """Document store capability used by stocksync.

    Implementations raise ``StoreUnavailableError`` for connectivity
    failures. Individual failed operations inside an unacknowledged
    bulk write are never reported.
    """

    def list_collection_names(self) -> list[str]:
        """Return names of all existing collections."""

    def has_collection(self, name: str) -> bool:
        """Return whether a collection exists."""

    def find(
        self,
        collection: str,
        filter: Filter | None = None,
        projection: Mapping[str, int] | None = None,
        batch_size: int | None = None,
    ) -> Iterable[Document]:
        """Return a lazy cursor over matching documents."""

    def bulk_write(
        self,
        collection: str,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions = UNACKNOWLEDGED_BULK,
    ) -> None:
        """Submit write operations as one unit."""

    def drop_collection(self, name: str) -> None:
        """Drop a collection; dropping a missing collection is a no-op."""

    def close(self) -> None:
        """Release the underlying connection."""
