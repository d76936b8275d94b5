"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import SyncConfig
from core.constants import DEFAULT_BATCH_SIZE
from core.errors import ConfigError


def test_from_env_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fall back to documented defaults."""
    for name in ("STOCKSYNC_BATCH_SIZE", "STOCKSYNC_DROP_FEEDS", "STOCKSYNC_IMPORT_PATH"):
        monkeypatch.delenv(name, raising=False)

    config = SyncConfig.from_env()

    assert (config.batch_size, config.drop_feeds, config.import_path.as_posix()) == (
        DEFAULT_BATCH_SIZE,
        False,
        "tmp/stocks",
    )


def test_from_env_clamps_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Zero or negative batch sizes should be coerced to one."""
    monkeypatch.setenv("STOCKSYNC_BATCH_SIZE", "-2")

    config = SyncConfig.from_env()

    assert config.batch_size == 1


def test_from_env_reads_drop_feeds_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    """Truthy flag values should enable dropping feeds."""
    monkeypatch.setenv("STOCKSYNC_DROP_FEEDS", "Yes")

    config = SyncConfig.from_env()

    assert config.drop_feeds is True


def test_from_env_raises_for_invalid_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric batch size."""
    monkeypatch.setenv("STOCKSYNC_BATCH_SIZE", "not-a-number")

    with pytest.raises(ConfigError):
        SyncConfig.from_env()

    assert os.getenv("STOCKSYNC_BATCH_SIZE") == "not-a-number"


def test_from_env_raises_for_unknown_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should reject log level names structlog cannot filter on."""
    monkeypatch.setenv("STOCKSYNC_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigError):
        SyncConfig.from_env()


def test_from_env_normalizes_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Level names should be accepted in any case."""
    monkeypatch.setenv("STOCKSYNC_LOG_LEVEL", " DEBUG ")

    assert SyncConfig.from_env().log_level == "debug"
