"""Unit tests for revision tracking and the revision loop."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import BadRevisionError, TransportUnavailableError
from core.types import ABORT, CONTINUE
from drive.archive_extractor import ArchiveExtractor
from drive.revision_tracker import RevisionTracker
from tests.fixture_records import FakeArchiveTransport, stock_archive


def _tracker(
    tmp_path: Path,
    watermark: str | None = None,
    revisions: tuple[str, ...] = ("1", "2", "3"),
    archives: dict[str, bytes] | None = None,
) -> tuple[RevisionTracker, FakeArchiveTransport]:
    if archives is None:
        archives = {revision: stock_archive() for revision in revisions}
    transport = FakeArchiveTransport(revisions, archives, watermark=watermark)
    return RevisionTracker(transport, ArchiveExtractor(tmp_path / "scratch")), transport


def test_revisions_are_sorted_newest_first(tmp_path: Path) -> None:
    """Listing order should follow the ordering key, newest first."""
    tracker, _ = _tracker(tmp_path, revisions=("a", "b", "c", "d"))

    assert tracker.revisions() == ["d", "c", "b", "a"]


def test_revisions_degrade_to_empty_when_listing_fails(tmp_path: Path) -> None:
    """A transport failure while listing should read as no revisions."""
    tracker, transport = _tracker(tmp_path)
    transport.listing_fails = True

    assert tracker.revisions() == []


def test_pending_revisions_without_watermark_returns_all(tmp_path: Path) -> None:
    """Without a watermark every revision is pending."""
    tracker, _ = _tracker(tmp_path)

    assert tracker.pending_revisions() == ["3", "2", "1"]


@pytest.mark.parametrize(
    ("watermark", "expected"),
    [("1", ["3", "2"]), ("2", ["3"]), ("3", [])],
)
def test_pending_revisions_stop_before_watermark(
    tmp_path: Path, watermark: str, expected: list[str]
) -> None:
    """Only revisions strictly newer than the watermark are pending."""
    tracker, _ = _tracker(tmp_path, watermark=watermark)

    assert tracker.pending_revisions() == expected


def test_pending_revisions_raise_for_unknown_watermark(tmp_path: Path) -> None:
    """A watermark missing from the listing is a bad revision."""
    tracker, _ = _tracker(tmp_path, watermark="4")

    with pytest.raises(BadRevisionError) as error:
        tracker.pending_revisions()

    assert error.value.revision == "4"


def test_set_last_imported_revision_rejects_unknown_revision(tmp_path: Path) -> None:
    """Writing an unlisted revision should fail without touching the store."""
    tracker, transport = _tracker(tmp_path)

    with pytest.raises(BadRevisionError):
        tracker.set_last_imported_revision("4")

    assert transport.watermark_writes == []


def test_has_pending_revisions(tmp_path: Path) -> None:
    """Pending check should be false once the newest revision is recorded."""
    tracker, _ = _tracker(tmp_path, watermark="3")

    assert tracker.has_pending_revisions() is False


def test_for_each_processes_newest_first_and_commits_newest(tmp_path: Path) -> None:
    """All pending revisions run newest first; only the newest is committed."""
    tracker, transport = _tracker(tmp_path)
    calls: list[tuple[str, bool]] = []

    def process(revision: str, records_dir: Path) -> str:
        calls.append((revision, records_dir.is_dir()))
        return CONTINUE

    report = tracker.for_each_pending_revision(process)

    assert (calls, transport.watermark_writes, report.stop_reason) == (
        [("3", True), ("2", True), ("1", True)],
        ["3"],
        "completed",
    )


def test_for_each_removes_scratch_after_every_revision(tmp_path: Path) -> None:
    """Scratch directories should exist during and vanish after each call."""
    tracker, _ = _tracker(tmp_path)
    seen: list[Path] = []

    def process(revision: str, records_dir: Path) -> str:
        seen.append(records_dir)
        return CONTINUE

    tracker.for_each_pending_revision(process)

    assert len(seen) == 3 and not any(path.exists() for path in seen)
    assert list((tmp_path / "scratch").iterdir()) == []


def test_for_each_abort_stops_without_committing(tmp_path: Path) -> None:
    """Aborting on the first revision leaves older ones untouched."""
    tracker, transport = _tracker(tmp_path)
    calls: list[str] = []

    def process(revision: str, records_dir: Path) -> str:
        calls.append(revision)
        return ABORT

    report = tracker.for_each_pending_revision(process)

    assert (calls, transport.fetched, transport.watermark) == (["3"], ["3"], None)
    assert report.stop_reason == "aborted"


def test_for_each_abort_after_commit_keeps_newest_watermark(tmp_path: Path) -> None:
    """Aborting on an older revision keeps the already committed newest one."""
    tracker, transport = _tracker(tmp_path)

    report = tracker.for_each_pending_revision(
        lambda revision, _: ABORT if revision == "2" else CONTINUE
    )

    assert (report.processed, report.committed, transport.fetched) == (
        ("3", "2"),
        "3",
        ["3", "2"],
    )


def test_for_each_skips_missing_archive_without_commit(tmp_path: Path) -> None:
    """A missing newest archive is skipped and nothing gets committed."""
    tracker, transport = _tracker(tmp_path, archives={"2": stock_archive(), "1": stock_archive()})
    calls: list[str] = []

    def process(revision: str, records_dir: Path) -> str:
        calls.append(revision)
        return CONTINUE

    tracker.for_each_pending_revision(process)

    assert (calls, transport.watermark_writes) == (["2", "1"], [])


def test_for_each_skips_unusable_archive(tmp_path: Path) -> None:
    """Payloads that do not unpack are skipped without calling back."""
    archives = {"3": b"not a tarball", "2": stock_archive(), "1": stock_archive()}
    tracker, _ = _tracker(tmp_path, archives=archives)
    calls: list[str] = []

    def process(revision: str, records_dir: Path) -> str:
        calls.append(revision)
        return CONTINUE

    tracker.for_each_pending_revision(process)

    assert calls == ["2", "1"]


def test_for_each_reports_bad_watermark_without_processing(tmp_path: Path) -> None:
    """An unknown watermark ends the run as a bad revision, not an error."""
    tracker, transport = _tracker(tmp_path, watermark="9")

    report = tracker.for_each_pending_revision(lambda revision, _: CONTINUE)

    assert (report.stop_reason, report.processed, transport.fetched) == ("bad_revision", (), [])


def test_for_each_cleans_scratch_when_callback_raises(tmp_path: Path) -> None:
    """Unexpected callback errors propagate after the scratch is removed."""
    tracker, transport = _tracker(tmp_path)

    def process(revision: str, records_dir: Path) -> str:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        tracker.for_each_pending_revision(process)

    assert list((tmp_path / "scratch").iterdir()) == [] and transport.watermark is None


def test_for_each_propagates_watermark_write_failure(tmp_path: Path) -> None:
    """A failed watermark write is an error, not a stop reason."""
    revisions = ("1", "2")
    transport = FakeArchiveTransport(
        revisions,
        {revision: stock_archive() for revision in revisions},
        watermark_write_fails=True,
    )
    tracker = RevisionTracker(transport, ArchiveExtractor(tmp_path / "scratch"))

    with pytest.raises(TransportUnavailableError):
        tracker.for_each_pending_revision(lambda revision, _: CONTINUE)

    assert (transport.fetched, list((tmp_path / "scratch").iterdir())) == (["2"], [])


def test_for_each_reports_callback_bad_revision_as_abort(tmp_path: Path) -> None:
    """A BadRevisionError from the callback is a voluntary abort."""
    tracker, transport = _tracker(tmp_path)

    def process(revision: str, records_dir: Path) -> str:
        raise BadRevisionError(revision)

    report = tracker.for_each_pending_revision(process)

    assert (report.stop_reason, report.processed, transport.watermark_writes) == (
        "aborted",
        ("3",),
        [],
    )
