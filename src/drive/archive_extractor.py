"""Archive download and unpacking.

This module turns one downloaded archive revision into a scratch
directory of record files, and removes it again afterwards.
"""

from __future__ import annotations

import shutil
import tarfile
from pathlib import Path

from core.constants import ARCHIVE_RECORDS_DIR, IMPORT_FILE_SUFFIX
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)
_ARCHIVE_FILE_NAME = "archive.tar.gz"
_EXTRACT_DIR_NAME = "contents"


class ArchiveExtractor:
    """Unpack gzip tar archives below a scratch root."""

    def __init__(self, scratch_root: Path) -> None:
        self._scratch_root = Path(scratch_root)

    def scratch_dir(self, revision_id: str) -> Path:
        """Return the scratch directory owned by one revision."""
        return self._scratch_root / f"revision-{_safe_name(revision_id)}"

    def extract(self, revision_id: str, payload: bytes) -> Path | None:
        """Unpack an archive into the revision scratch directory.

        Args:
            revision_id: Revision the payload belongs to.
            payload: Raw ``.tar.gz`` bytes.

        Returns:
            Directory holding the unpacked records, or None when the
            archive is empty, unreadable, or holds no record files.
        """
        scratch_dir = self.scratch_dir(revision_id)
        self.cleanup(revision_id)
        if not payload:
            _LOGGER.warning("archive_empty", revision=revision_id)
            return None
        extract_dir = scratch_dir / _EXTRACT_DIR_NAME
        extract_dir.mkdir(parents=True, exist_ok=True)
        archive_path = scratch_dir / _ARCHIVE_FILE_NAME
        archive_path.write_bytes(payload)
        try:
            with tarfile.open(archive_path, mode="r:gz") as archive:
                members = [
                    member
                    for member in archive.getmembers()
                    if _is_safe_member(member, extract_dir)
                ]
                archive.extractall(extract_dir, members=members, filter="data")
        except (tarfile.TarError, OSError, EOFError) as error:
            _LOGGER.warning("archive_unreadable", revision=revision_id, error=str(error))
            self.cleanup(revision_id)
            return None
        finally:
            archive_path.unlink(missing_ok=True)
        records_dir = _records_root(extract_dir)
        if records_dir is None:
            _LOGGER.warning("archive_without_records", revision=revision_id)
            self.cleanup(revision_id)
            return None
        return records_dir

    def cleanup(self, revision_id: str) -> None:
        """Remove the revision scratch directory if present."""
        shutil.rmtree(self.scratch_dir(revision_id), ignore_errors=True)


def _records_root(extract_dir: Path) -> Path | None:
    """Locate the directory holding record files.

    A ``stocks/`` directory wins wherever it appears along a chain of
    single-directory wrappers; otherwise the first level with record
    files directly inside is used.
    """
    current = extract_dir
    while True:
        named = current / ARCHIVE_RECORDS_DIR
        if named.is_dir():
            return named if _has_record_files(named) else None
        if _has_record_files(current):
            return current
        entries = list(current.iterdir())
        if len(entries) != 1 or not entries[0].is_dir():
            return None
        current = entries[0]


def _has_record_files(directory: Path) -> bool:
    return any(path.is_file() for path in directory.glob(f"*{IMPORT_FILE_SUFFIX}"))


def _is_safe_member(member: tarfile.TarInfo, extract_dir: Path) -> bool:
    if not (member.isfile() or member.isdir()):
        return False
    target = (extract_dir / member.name).resolve()
    return target.is_relative_to(extract_dir.resolve())


def _safe_name(revision_id: str) -> str:
    return "".join(char if char.isalnum() or char in "-_." else "_" for char in revision_id)
