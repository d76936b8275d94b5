"""Shared typed models.

This module defines immutable data models used by the drive, ingest,
store, and unify layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Mapping

from core.batching import clamp_batch_size
from core.constants import DEFAULT_BATCH_SIZE, DEFAULT_IMPORT_PATH

RevisionOutcome = Literal["continue", "abort"]
StopReason = Literal["completed", "aborted", "bad_revision"]

CONTINUE: RevisionOutcome = "continue"
ABORT: RevisionOutcome = "abort"


@dataclass(frozen=True)
class RevisionInfo:
    """One archive revision as listed by the transport.

    Attributes:
        revision_id: Opaque transport revision identifier.
        ordering_key: Sort key; larger values are newer.
    """

    revision_id: str
    ordering_key: datetime | int


@dataclass(frozen=True)
class RevisionRunReport:
    """Outcome of one pass over pending revisions.

    Attributes:
        processed: Revision ids handed to the processing callback, newest first.
        committed: Revision id written as the new watermark, if any.
        stop_reason: Why the pass ended.
    """

    processed: tuple[str, ...]
    committed: str | None
    stop_reason: StopReason


@dataclass(frozen=True)
class StockRecord:
    """One parsed input file.

    Attributes:
        basic: Entity attributes including the identifier.
        feeds: Feed objects, each with a ``meta`` section.
        source_path: File the record was read from.
    """

    basic: Mapping[str, Any]
    feeds: tuple[Mapping[str, Any], ...]
    source_path: Path


@dataclass(frozen=True)
class ImporterOptions:
    """Importer options.

    Attributes:
        path: Directory holding the JSON files to import.
        batch_size: Files per bulk import batch, clamped to at least one.
    """

    path: Path = DEFAULT_IMPORT_PATH
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(self, "batch_size", clamp_batch_size(self.batch_size))


@dataclass(frozen=True)
class UnifierOptions:
    """Unifier options.

    Attributes:
        batch_size: Entities per unification page, clamped to at least one.
        drop_feeds: Drop feed collections and basics once unification completes.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    drop_feeds: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "batch_size", clamp_batch_size(self.batch_size))


@dataclass(frozen=True)
class ImportSummary:
    """Counts of documents submitted by one importer run."""

    files: int = 0
    basics: int = 0
    feeds: int = 0
    collections: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UnifySummary:
    """Counts of documents submitted by one unifier run."""

    stocks: int = 0
    feed_collections: tuple[str, ...] = field(default_factory=tuple)
    dropped: bool = False
