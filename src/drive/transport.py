"""Archive transport interface.

This module defines the versioned archive capability the revision
tracker consumes: revision listing, versioned download, and the
watermark object.
"""

from __future__ import annotations

from typing import Protocol

from core.types import RevisionInfo


class ArchiveTransport(Protocol):
    """Versioned archive storage.

    Implementations raise ``TransportUnavailableError`` for any failure
    other than a missing object.
    """

    def list_revisions(self) -> list[RevisionInfo]:
        """Return all revisions of the archive in any order."""

    def fetch_archive(self, revision_id: str) -> bytes | None:
        """Return archive bytes for a revision, or None when not found."""

    def read_watermark(self) -> str | None:
        """Return the stored watermark, or None when absent."""

    def write_watermark(self, value: str) -> None:
        """Overwrite the stored watermark."""
