"""stocksync exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class StockSyncError(Exception):
    """Base exception for all stocksync failures."""


class ConfigError(StockSyncError):
    """Raised for invalid runtime configuration."""


class BadRevisionError(StockSyncError):
    """Raised when a revision id is unknown to the archive transport.

    The revision tracker treats this as a stop signal: no further
    revisions are processed and the watermark is left untouched.
    """

    def __init__(self, revision: str | None) -> None:
        self.revision = revision
        super().__init__(
            f"Revision '{revision}' is not among the known archive revisions. "
            "Reset the watermark object or re-upload the archive and retry."
        )


class TransportUnavailableError(StockSyncError):
    """Raised when the archive transport cannot be reached."""


class StoreUnavailableError(StockSyncError):
    """Raised when the record store cannot be reached."""


class StoreWriteError(StockSyncError):
    """Raised when an acknowledged bulk write reports failed operations."""


class RecordParseError(StockSyncError):
    """Raised for unreadable or malformed input record files."""
