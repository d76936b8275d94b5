"""Batching helpers for bulk store operations."""

from __future__ import annotations

from itertools import islice
from typing import Iterable, Iterator, TypeVar

from core.constants import MIN_BATCH_SIZE

T = TypeVar("T")


def clamp_batch_size(value: int | str) -> int:
    """Coerce a batch size to an integer of at least one.

    Args:
        value: Requested batch size.

    Returns:
        Usable batch size.
    """
    return max(int(value), MIN_BATCH_SIZE)


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive groups of at most ``size`` items.

    The input is consumed lazily, so store cursors are paged
    without loading the whole result set.

    Args:
        items: Any iterable.
        size: Group size, clamped to at least one.

    Yields:
        Non-empty lists preserving input order.
    """
    iterator = iter(items)
    batch_size = clamp_batch_size(size)
    while True:
        batch = list(islice(iterator, batch_size))
        if not batch:
            return
        yield batch
