"""Archive revision tracking.

This module decides which archive revisions are new relative to the
stored watermark and drives a fetch, process, and commit loop over
them. Revisions are visited newest first and only the newest one is
ever recorded as the watermark.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from core.errors import BadRevisionError, TransportUnavailableError
from core.logging_config import get_logger
from core.types import ABORT, RevisionOutcome, RevisionRunReport
from drive.archive_extractor import ArchiveExtractor
from drive.transport import ArchiveTransport

_LOGGER = get_logger(__name__)

ProcessRevision = Callable[[str, Path], RevisionOutcome]


class RevisionTracker:
    """Watermark-based revision selection over an archive transport."""

    def __init__(self, transport: ArchiveTransport, extractor: ArchiveExtractor) -> None:
        self._transport = transport
        self._extractor = extractor

    def revisions(self) -> list[str]:
        """List all archive revisions, newest first.

        Returns:
            Revision ids sorted by descending ordering key, or an empty
            list when the transport cannot list them.
        """
        try:
            infos = self._transport.list_revisions()
        except TransportUnavailableError as error:
            _LOGGER.warning("revisions_unavailable", error=str(error))
            return []
        ordered = sorted(infos, key=lambda info: info.ordering_key, reverse=True)
        return [info.revision_id for info in ordered]

    def last_imported_revision(self) -> str | None:
        """Return the watermark, or None when absent or unreadable."""
        try:
            return self._transport.read_watermark()
        except TransportUnavailableError as error:
            _LOGGER.warning("watermark_unavailable", error=str(error))
            return None

    def set_last_imported_revision(self, revision: str) -> None:
        """Persist the watermark.

        Args:
            revision: Revision id to record.

        Raises:
            BadRevisionError: If the revision is not currently listed.
            TransportUnavailableError: If the watermark cannot be written.
        """
        if revision not in self.revisions():
            raise BadRevisionError(revision)
        self._transport.write_watermark(revision)

    def pending_revisions(self) -> list[str]:
        """List revisions newer than the watermark, newest first.

        Raises:
            BadRevisionError: If the watermark is no longer listed.
        """
        last_revision = self.last_imported_revision()
        revisions = self.revisions()
        if last_revision is None:
            return revisions
        try:
            return revisions[: revisions.index(last_revision)]
        except ValueError as error:
            raise BadRevisionError(last_revision) from error

    def has_pending_revisions(self) -> bool:
        """Return whether any revision is newer than the watermark."""
        return bool(self.pending_revisions())

    def for_each_pending_revision(self, process: ProcessRevision) -> RevisionRunReport:
        """Download, unpack, and process every pending revision.

        The watermark is written after the first pending revision was
        processed successfully. Each scratch directory is removed once
        its revision is done, whatever the outcome.

        Args:
            process: Callback receiving the revision id and the directory
                of unpacked records; returns ``"continue"`` or ``"abort"``.

        Returns:
            Report of processed revisions, the committed watermark, and
            why the loop stopped.
        """
        processed: list[str] = []
        committed: str | None = None
        try:
            for index, revision in enumerate(self.pending_revisions()):
                outcome = self._process_revision(revision, process)
                if outcome is None:
                    continue
                processed.append(revision)
                if outcome == ABORT:
                    _LOGGER.warning("revision_run_aborted", revision=revision)
                    return RevisionRunReport(tuple(processed), committed, "aborted")
                if index == 0:
                    self.set_last_imported_revision(revision)
                    committed = revision
        except BadRevisionError as error:
            _LOGGER.warning("revision_run_bad_revision", revision=error.revision)
            return RevisionRunReport(tuple(processed), committed, "bad_revision")
        _LOGGER.info(
            "revision_run_completed",
            processed=len(processed),
            committed=committed,
        )
        return RevisionRunReport(tuple(processed), committed, "completed")

    def _process_revision(
        self,
        revision: str,
        process: ProcessRevision,
    ) -> RevisionOutcome | None:
        """Run the callback for one revision; None means it was skipped."""
        try:
            payload = self._transport.fetch_archive(revision)
        except TransportUnavailableError as error:
            _LOGGER.warning("revision_skipped", revision=revision, error=str(error))
            return None
        if payload is None:
            _LOGGER.warning("revision_skipped", revision=revision, error="not found")
            return None
        try:
            records_dir = self._extractor.extract(revision, payload)
            if records_dir is None:
                return None
            _LOGGER.info("revision_processing", revision=revision, path=str(records_dir))
            try:
                return process(revision, records_dir)
            except BadRevisionError as error:
                _LOGGER.warning(
                    "revision_callback_rejected",
                    revision=revision,
                    rejected=error.revision,
                )
                return ABORT
        finally:
            self._extractor.cleanup(revision)
