"""Python SDK for sync operations.

This module wires the record store, archive transport, importer,
and unifier behind one client. The store and transport are built
once per client and shared by every operation it runs.
"""

from __future__ import annotations

from pathlib import Path

from core.config import SyncConfig
from core.errors import RecordParseError
from core.logging_config import get_logger
from core.types import (
    ABORT,
    CONTINUE,
    ImporterOptions,
    ImportSummary,
    RevisionOutcome,
    RevisionRunReport,
    UnifierOptions,
    UnifySummary,
)
from drive.archive_extractor import ArchiveExtractor
from drive.revision_tracker import RevisionTracker
from drive.s3_transport import S3ArchiveTransport
from drive.transport import ArchiveTransport
from ingest.importer import Importer
from store.mongo_store import MongoRecordStore
from store.record_store import RecordStore
from unify.unifier import Unifier

_LOGGER = get_logger(__name__)


class SyncClient:
    """Primary SDK entry point for import and unify workflows."""

    def __init__(
        self,
        config: SyncConfig | None = None,
        store: RecordStore | None = None,
        transport: ArchiveTransport | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            store: Optional record store; MongoDB from config when omitted.
            transport: Optional archive transport; S3 from config when omitted.
        """
        self._config = config or SyncConfig.from_env()
        self._store = store
        self._transport = transport

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def store(self) -> RecordStore:
        """Record store, created on first use."""
        if self._store is None:
            self._store = MongoRecordStore(self._config)
        return self._store

    @property
    def transport(self) -> ArchiveTransport:
        """Archive transport, created on first use."""
        if self._transport is None:
            self._transport = S3ArchiveTransport(self._config)
        return self._transport

    def revision_tracker(self) -> RevisionTracker:
        """Build a revision tracker over the configured scratch directory."""
        return RevisionTracker(self.transport, ArchiveExtractor(self._config.scratch_dir))

    def pending_revisions(self) -> list[str]:
        """List revisions newer than the watermark, newest first.

        Raises:
            BadRevisionError: If the watermark is no longer listed.
        """
        return self.revision_tracker().pending_revisions()

    def import_path(self, path: Path | None = None) -> ImportSummary:
        """Import record files from a directory.

        Args:
            path: Directory to import; the configured import path when omitted.

        Returns:
            Import totals.
        """
        options = ImporterOptions(
            path=path or self._config.import_path,
            batch_size=self._config.batch_size,
        )
        return Importer(self.store, options).run()

    def sync(self) -> RevisionRunReport:
        """Import every pending archive revision.

        A malformed record file aborts the run without advancing the
        watermark, so the next run starts from the same revision.

        Returns:
            Report of the revision run.
        """

        def process(revision: str, records_dir: Path) -> RevisionOutcome:
            try:
                summary = self.import_path(records_dir)
            except RecordParseError as error:
                _LOGGER.error("revision_import_failed", revision=revision, error=str(error))
                return ABORT
            _LOGGER.info("revision_imported", revision=revision, files=summary.files)
            return CONTINUE

        return self.revision_tracker().for_each_pending_revision(process)

    def unify(self, drop_feeds: bool | None = None) -> UnifySummary:
        """Unify basics and feeds into stock documents.

        Args:
            drop_feeds: Override the configured drop-feeds flag.

        Returns:
            Unification summary.
        """
        options = UnifierOptions(
            batch_size=self._config.batch_size,
            drop_feeds=self._config.drop_feeds if drop_feeds is None else drop_feeds,
        )
        return Unifier(self.store, options).run()

    def close(self) -> None:
        """Release the record store connection if one was opened."""
        if self._store is not None:
            self._store.close()
