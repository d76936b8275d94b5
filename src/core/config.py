"""Runtime configuration model for stocksync.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.batching import clamp_batch_size
from core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_IMPORT_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MONGO_URI,
    DEFAULT_SCRATCH_DIR,
    TRUTHY_ENV_VALUES,
)
from core.errors import ConfigError
from core.logging_config import log_level_value


@dataclass(frozen=True)
class SyncConfig:
    """Validated runtime configuration.

    Attributes:
        mongo_uri: Connection string of the document store.
        database_name: Optional database override; the URI default is used otherwise.
        s3_bucket: Bucket holding the versioned stock archive.
        s3_prefix: Key prefix for the archive and watermark objects.
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
        scratch_dir: Local root for downloaded and unpacked archives.
        import_path: Default directory of JSON records to import.
        batch_size: Documents per bulk write and per cursor page.
        drop_feeds: Whether unification drops its source collections.
        log_level: Minimum structlog level name.
    """

    mongo_uri: str
    database_name: str | None
    s3_bucket: str | None
    s3_prefix: str
    s3_region: str | None
    s3_profile: str | None
    scratch_dir: Path
    import_path: Path
    batch_size: int
    drop_feeds: bool
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConfigError: If environment values are invalid.
        """
        return cls(
            mongo_uri=os.getenv("MONGO_URI", DEFAULT_MONGO_URI),
            database_name=os.getenv("STOCKSYNC_DATABASE") or None,
            s3_bucket=os.getenv("STOCKSYNC_S3_BUCKET") or None,
            s3_prefix=os.getenv("STOCKSYNC_S3_PREFIX", ""),
            s3_region=os.getenv("STOCKSYNC_S3_REGION"),
            s3_profile=os.getenv("STOCKSYNC_S3_PROFILE"),
            scratch_dir=Path(os.getenv("STOCKSYNC_SCRATCH_DIR", str(DEFAULT_SCRATCH_DIR))),
            import_path=Path(os.getenv("STOCKSYNC_IMPORT_PATH", str(DEFAULT_IMPORT_PATH))),
            batch_size=_parse_batch_size(
                os.getenv("STOCKSYNC_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))
            ),
            drop_feeds=_parse_flag(os.getenv("STOCKSYNC_DROP_FEEDS", "false")),
            log_level=_parse_log_level(os.getenv("STOCKSYNC_LOG_LEVEL", DEFAULT_LOG_LEVEL)),
        )


def _parse_batch_size(raw_value: str) -> int:
    """Parse the batch size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed batch size, at least one.

    Raises:
        ConfigError: If value cannot be parsed into int.
    """
    try:
        return clamp_batch_size(raw_value)
    except ValueError as error:
        raise ConfigError(
            "Invalid STOCKSYNC_BATCH_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set STOCKSYNC_BATCH_SIZE to a positive number."
        ) from error


def _parse_flag(raw_value: str) -> bool:
    """Return whether an environment flag is switched on."""
    return raw_value.strip().lower() in TRUTHY_ENV_VALUES


def _parse_log_level(raw_value: str) -> str:
    """Validate the log level environment value.

    Raises:
        ConfigError: If the level name is unknown.
    """
    try:
        log_level_value(raw_value)
    except ValueError as error:
        raise ConfigError(
            f"Invalid STOCKSYNC_LOG_LEVEL value: {error}. "
            "Use one of debug, info, warning, or error."
        ) from error
    return raw_value.strip().lower()
