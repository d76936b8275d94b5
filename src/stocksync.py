"""Public SDK surface for stocksync.

This module provides a stable import path for scheduling wrappers.
It re-exports the client, the components, and typed option models.
"""

from __future__ import annotations

from core.config import SyncConfig
from core.errors import (
    BadRevisionError,
    RecordParseError,
    StockSyncError,
    StoreUnavailableError,
    TransportUnavailableError,
)
from core.types import (
    ABORT,
    CONTINUE,
    ImporterOptions,
    ImportSummary,
    RevisionRunReport,
    UnifierOptions,
    UnifySummary,
)
from drive.revision_tracker import RevisionTracker
from ingest.importer import Importer
from store.memory_store import MemoryRecordStore
from store.sync_sdk import SyncClient
from unify.unifier import Unifier

__all__ = [
    "ABORT",
    "BadRevisionError",
    "CONTINUE",
    "ImportSummary",
    "Importer",
    "ImporterOptions",
    "MemoryRecordStore",
    "RecordParseError",
    "RevisionRunReport",
    "RevisionTracker",
    "StockSyncError",
    "StoreUnavailableError",
    "SyncClient",
    "SyncConfig",
    "TransportUnavailableError",
    "Unifier",
    "UnifierOptions",
    "UnifySummary",
]
