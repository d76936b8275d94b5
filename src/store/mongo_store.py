"""MongoDB record store.

This module adapts pymongo to the record store interface. One client
is created lazily per store instance and shared by every component
the store is handed to.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Mapping, Sequence

import pymongo
from pymongo.errors import BulkWriteError, PyMongoError
from pymongo.write_concern import WriteConcern

from core.config import SyncConfig
from core.constants import DEFAULT_DATABASE_NAME
from core.errors import StoreUnavailableError, StoreWriteError
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

ClientFactory = Callable[[str], Any]


class MongoRecordStore:
    """pymongo-backed record store."""

    def __init__(
        self,
        config: SyncConfig,
        client_factory: ClientFactory = pymongo.MongoClient,
    ) -> None:
        """Initialize the store without connecting.

        Args:
            config: Runtime configuration with the connection string.
            client_factory: Callable building a client from a URI.
        """
        self._config = config
        self._client_factory = client_factory
        self._client: Any = None

    @property
    def database(self) -> Any:
        """Database handle, connecting on first access."""
        if self._client is None:
            self._client = self._client_factory(self._config.mongo_uri)
            _LOGGER.info("store_client_created", database=self._config.database_name)
        if self._config.database_name:
            return self._client[self._config.database_name]
        return self._client.get_default_database(default=DEFAULT_DATABASE_NAME)

    def list_collection_names(self) -> list[str]:
        """Return names of all existing collections."""
        try:
            return list(self.database.list_collection_names())
        except PyMongoError as error:
            raise _unavailable("list collections", error) from error

    def has_collection(self, name: str) -> bool:
        """Return whether a collection exists."""
        return name in self.list_collection_names()

    def find(
        self,
        collection: str,
        filter: Filter | None = None,
        projection: Mapping[str, int] | None = None,
        batch_size: int | None = None,
    ) -> Iterator[Document]:
        """Return a lazy cursor over matching documents.

        Args:
            collection: Collection name.
            filter: Query document.
            projection: Optional projection.
            batch_size: Documents per server round trip.

        Returns:
            Generator translating driver errors into store errors.
        """
        return self._iterate(collection, dict(filter or {}), projection, batch_size or 0)

    def bulk_write(
        self,
        collection: str,
        operations: Sequence[WriteOperation],
        options: BulkWriteOptions = UNACKNOWLEDGED_BULK,
    ) -> None:
        """Submit write operations as one bulk write.

        The driver rejects document validation bypass on unacknowledged
        writes, so the flag is only forwarded for acknowledged ones.

        Raises:
            StoreWriteError: If acknowledged writes had failed operations.
            StoreUnavailableError: If the server cannot be reached.
        """
        if not operations:
            return
        write_concern = WriteConcern(w=1 if options.acknowledged else 0)
        target = self.database.get_collection(collection, write_concern=write_concern)
        requests = [_to_driver_operation(operation) for operation in operations]
        try:
            target.bulk_write(
                requests,
                ordered=options.ordered,
                bypass_document_validation=(
                    options.bypass_document_validation and options.acknowledged
                ),
            )
        except BulkWriteError as error:
            raise StoreWriteError(
                f"Bulk write to '{collection}' failed: {error.details.get('writeErrors', [])}. "
                "Inspect the conflicting documents and retry."
            ) from error
        except PyMongoError as error:
            raise _unavailable(f"write to '{collection}'", error) from error

    def drop_collection(self, name: str) -> None:
        """Drop a collection; dropping a missing collection is a no-op."""
        try:
            self.database.drop_collection(name)
        except PyMongoError as error:
            raise _unavailable(f"drop '{name}'", error) from error

    def close(self) -> None:
        """Close the client if one was created."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _iterate(
        self,
        collection: str,
        filter: Document,
        projection: Mapping[str, int] | None,
        batch_size: int,
    ) -> Iterator[Document]:
        try:
            cursor = self.database[collection].find(filter, projection, batch_size=batch_size)
            yield from cursor
        except PyMongoError as error:
            raise _unavailable(f"read '{collection}'", error) from error


def _to_driver_operation(operation: WriteOperation) -> Any:
    """Translate a store write operation into a pymongo request."""
    if isinstance(operation, InsertOne):
        return pymongo.InsertOne(dict(operation.document))
    if isinstance(operation, ReplaceOne):
        return pymongo.ReplaceOne(
            dict(operation.filter),
            dict(operation.replacement),
            upsert=operation.upsert,
        )
    if isinstance(operation, UpdateOne):
        return pymongo.UpdateOne(
            dict(operation.filter),
            dict(operation.update),
            upsert=operation.upsert,
        )
    raise TypeError(f"Unsupported write operation: {type(operation).__name__}")


def _unavailable(action: str, error: PyMongoError) -> StoreUnavailableError:
    return StoreUnavailableError(
        f"Record store failed to {action}: {error}. "
        "Check MONGO_URI and that the database server is reachable."
    )
