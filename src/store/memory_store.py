"""In-memory record store.

This module implements the record store interface over plain
dictionaries. It covers the filter, projection, and update subset
used by the importer and unifier, including upsert and duplicate-key
behavior of unordered bulk writes.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Callable, Iterator, Mapping, Sequence
from uuid import uuid4

from core.constants import DOCUMENT_ID_FIELD
from core.errors import StoreWriteError
from core.logging_config import get_logger
from store.record_store import (
    UNACKNOWLEDGED_BULK,
    BulkWriteOptions,
    Document,
    Filter,
    InsertOne,
    ReplaceOne,
    UpdateOne,
    WriteOperation,
)

_LOGGER = get_logger(__name__)
_MISSING = object()


class _OperationFailed(Exception):
    """One bulk operation could not be applied."""


class MemoryRecordStore:
    """Dictionary-backed record store.

    Collections map ``_id`` values to documents in insertion order.
    Documents are copied on the way in and out.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[Any, Document]] = {}

    def list_collection_names(self) -> list[str]:
        """Return names of all existing collections."""
        return list(self._collections)

    def has_collection(self, name: str) -> bool:
        """Return whether a collection exists."""
        return name in self._collections

    def find(
        self,
        collection: str,
        filter: Filter | None = None,
        projection: Mapping[str, int] | None = None,
        batch_size: int | None = None,
    ) -> Iterator[Document]:
        """Return a lazy cursor over matching documents.

        Args:
            collection: Collection name; a missing collection yields nothing.
            filter: Query document.
            projection: Inclusion or exclusion projection.
            batch_size: Accepted for interface parity; ignored.

        Returns:
            Generator over copies of matching documents.
        """
        return self._iterate(collection, filter or {}, projection)

    def bulk_write(
        self,
        collection: str,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions = UNACKNOWLEDGED_BULK,
    ) -> None:
        """Apply write operations in submission order.

        Args:
            collection: Target collection, created on first write.
            operations: Insert, replace, and update operations.
            options: Ordering and acknowledgement semantics.

        Raises:
            StoreWriteError: If acknowledged writes had failed operations.
        """
        if not operations:
            return
        documents = self._collections.setdefault(collection, {})
        failures: list[str] = []
        for index, operation in enumerate(operations):
            try:
                _apply(documents, operation)
            except _OperationFailed as error:
                failures.append(f"#{index}: {error}")
                if options.ordered:
                    break
        if failures and options.acknowledged:
            raise StoreWriteError(
                f"Bulk write to '{collection}' failed for {len(failures)} operation(s): "
                f"{'; '.join(failures)}. Inspect the conflicting documents and retry."
            )
        if failures:
            _LOGGER.debug(
                "bulk_write_failures_ignored",
                collection=collection,
                failures=len(failures),
            )

    def drop_collection(self, name: str) -> None:
        """Drop a collection; dropping a missing collection is a no-op."""
        self._collections.pop(name, None)

    def close(self) -> None:
        """Nothing to release."""

    def _iterate(
        self,
        collection: str,
        filter: Filter,
        projection: Mapping[str, int] | None,
    ) -> Iterator[Document]:
        for document in list(self._collections.get(collection, {}).values()):
            if matches(document, filter):
                yield _project(deepcopy(document), projection)


def matches(document: Mapping[str, Any], filter: Filter) -> bool:
    """Return whether a document satisfies a query document.

    Supports dotted paths, plain equality, and the ``$eq``, ``$gt``,
    ``$gte``, ``$lt``, ``$lte``, ``$in``, and ``$exists`` operators.
    """
    for path, condition in filter.items():
        value = _get_path(document, path)
        if _is_operator_document(condition):
            if not all(
                _evaluate(operator, value, operand) for operator, operand in condition.items()
            ):
                return False
        elif not _equals(value, condition):
            return False
    return True


def _apply(documents: dict[Any, Document], operation: WriteOperation) -> None:
    """Apply one write operation to a collection."""
    if isinstance(operation, InsertOne):
        _insert(documents, deepcopy(dict(operation.document)))
    elif isinstance(operation, ReplaceOne):
        _replace(documents, operation)
    elif isinstance(operation, UpdateOne):
        _update(documents, operation)
    else:
        raise _OperationFailed(f"unsupported operation {type(operation).__name__}")


def _insert(documents: dict[Any, Document], document: Document) -> None:
    document_id = document.setdefault(DOCUMENT_ID_FIELD, uuid4().hex)
    if document_id in documents:
        raise _OperationFailed(f"duplicate key {DOCUMENT_ID_FIELD}={document_id!r}")
    documents[document_id] = document


def _replace(documents: dict[Any, Document], operation: ReplaceOne) -> None:
    replacement = deepcopy(dict(operation.replacement))
    current = _first_match(documents, operation.filter)
    if current is not None:
        current_id = current[DOCUMENT_ID_FIELD]
        if replacement.setdefault(DOCUMENT_ID_FIELD, current_id) != current_id:
            raise _OperationFailed(f"replacement would change immutable {DOCUMENT_ID_FIELD}")
        documents[current_id] = replacement
        return
    if not operation.upsert:
        return
    filter_id = operation.filter.get(DOCUMENT_ID_FIELD, _MISSING)
    if filter_id is not _MISSING and not _is_operator_document(filter_id):
        replacement.setdefault(DOCUMENT_ID_FIELD, filter_id)
    _insert(documents, replacement)


def _update(documents: dict[Any, Document], operation: UpdateOne) -> None:
    current = _first_match(documents, operation.filter)
    if current is not None:
        _apply_update(current, operation.update)
        return
    if not operation.upsert:
        return
    seeded: Document = {}
    for path, condition in operation.filter.items():
        if not _is_operator_document(condition):
            _set_path(seeded, path, deepcopy(condition))
    _apply_update(seeded, operation.update)
    _insert(documents, seeded)


def _apply_update(document: Document, update: Mapping[str, Any]) -> None:
    """Apply ``$set`` and ``$unset`` update operators in place."""
    handlers: dict[str, Callable[[Document, str, Any], None]] = {
        "$set": lambda target, path, value: _set_path(target, path, deepcopy(value)),
        "$unset": lambda target, path, _: _unset_path(target, path),
    }
    for operator, fields in update.items():
        handler = handlers.get(operator)
        if handler is None:
            raise _OperationFailed(f"unsupported update operator {operator}")
        for path, value in fields.items():
            if path == DOCUMENT_ID_FIELD and document.get(DOCUMENT_ID_FIELD, value) != value:
                raise _OperationFailed(f"update would change immutable {DOCUMENT_ID_FIELD}")
            handler(document, path, value)


def _first_match(documents: dict[Any, Document], filter: Filter) -> Document | None:
    filter_id = filter.get(DOCUMENT_ID_FIELD, _MISSING)
    if filter_id is not _MISSING and not _is_operator_document(filter_id):
        candidate = documents.get(filter_id)
        return candidate if candidate is not None and matches(candidate, filter) else None
    for document in documents.values():
        if matches(document, filter):
            return document
    return None


def _evaluate(operator: str, value: Any, operand: Any) -> bool:
    if operator == "$exists":
        return (value is not _MISSING) == bool(operand)
    if operator == "$eq":
        return _equals(value, operand)
    if operator == "$in":
        return any(_equals(value, candidate) for candidate in operand)
    if value is _MISSING or value is None:
        return False
    comparisons: dict[str, Callable[[Any, Any], bool]] = {
        "$gt": lambda left, right: left > right,
        "$gte": lambda left, right: left >= right,
        "$lt": lambda left, right: left < right,
        "$lte": lambda left, right: left <= right,
    }
    compare = comparisons.get(operator)
    if compare is None:
        raise _OperationFailed(f"unsupported query operator {operator}")
    try:
        return compare(value, operand)
    except TypeError:
        return False


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    return bool(value == expected)


def _is_operator_document(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(str(key).startswith("$") for key in value)
    )


def _get_path(document: Mapping[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _set_path(document: Document, path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _unset_path(document: Document, path: str) -> None:
    parts = path.split(".")
    current: Any = document
    for part in parts[:-1]:
        if not isinstance(current, dict) or part not in current:
            return
        current = current[part]
    if isinstance(current, dict):
        current.pop(parts[-1], None)


def _project(document: Document, projection: Mapping[str, int] | None) -> Document:
    if not projection:
        return document
    included = [key for key, flag in projection.items() if flag]
    if not included:
        return {key: value for key, value in document.items() if key not in projection}
    keep = set(included)
    if projection.get(DOCUMENT_ID_FIELD, 1):
        keep.add(DOCUMENT_ID_FIELD)
    return {key: value for key, value in document.items() if key in keep}
