"""S3 archive transport.

This module serves archive revisions from a versioned S3 bucket.
Each object version of the archive key is one revision; the
watermark lives in a plain object beside it.
"""

from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config import SyncConfig
from core.constants import ARCHIVE_KEY, WATERMARK_KEY
from core.errors import ConfigError, TransportUnavailableError
from core.logging_config import get_logger
from core.types import RevisionInfo

_LOGGER = get_logger(__name__)
_NOT_FOUND_CODES = ("NoSuchKey", "NoSuchVersion", "404")


class S3ArchiveTransport:
    """Versioned archive transport backed by S3 object versions."""

    def __init__(self, config: SyncConfig, s3_client: Any | None = None) -> None:
        """Create transport for the configured bucket.

        Args:
            config: Runtime config with bucket, prefix, and session settings.
            s3_client: Optional preconfigured boto3 S3 client.

        Raises:
            ConfigError: If no bucket is configured.
        """
        if not config.s3_bucket:
            raise ConfigError(
                "No archive bucket configured. "
                "Set STOCKSYNC_S3_BUCKET to the bucket holding the stock archive."
            )
        self._bucket = config.s3_bucket
        self._archive_key = _object_key(config.s3_prefix, ARCHIVE_KEY)
        self._watermark_key = _object_key(config.s3_prefix, WATERMARK_KEY)
        self._client = s3_client or create_s3_client(config)

    def list_revisions(self) -> list[RevisionInfo]:
        """Return every stored version of the archive object.

        Raises:
            TransportUnavailableError: If listing fails.
        """
        revisions: list[RevisionInfo] = []
        try:
            paginator = self._client.get_paginator("list_object_versions")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=self._archive_key):
                for version in page.get("Versions", []):
                    if version["Key"] != self._archive_key:
                        continue
                    revisions.append(
                        RevisionInfo(
                            revision_id=version["VersionId"],
                            ordering_key=version["LastModified"],
                        )
                    )
        except (BotoCoreError, ClientError) as error:
            archive_uri = self._uri(self._archive_key)
            raise _transport_error("list revisions of", archive_uri, error) from error
        return revisions

    def fetch_archive(self, revision_id: str) -> bytes | None:
        """Download one archive version.

        Args:
            revision_id: S3 version id.

        Returns:
            Archive bytes, or None if the version does not exist.

        Raises:
            TransportUnavailableError: For failures other than not found.
        """
        return self._get_object(self._archive_key, revision_id)

    def read_watermark(self) -> str | None:
        """Return the stored watermark, or None when absent or empty."""
        payload = self._get_object(self._watermark_key)
        if payload is None:
            return None
        value = payload.decode("utf-8").strip()
        return value or None

    def write_watermark(self, value: str) -> None:
        """Overwrite the watermark object.

        Raises:
            TransportUnavailableError: If the upload fails.
        """
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=self._watermark_key,
                Body=value.encode("utf-8"),
            )
        except (BotoCoreError, ClientError) as error:
            raise _transport_error("write", self._uri(self._watermark_key), error) from error
        _LOGGER.info("watermark_written", revision=value, key=self._watermark_key)

    def _get_object(self, key: str, version_id: str | None = None) -> bytes | None:
        request: dict[str, str] = {"Bucket": self._bucket, "Key": key}
        if version_id is not None:
            request["VersionId"] = version_id
        try:
            response = self._client.get_object(**request)
            return response["Body"].read()
        except ClientError as error:
            if error.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return None
            raise _transport_error("read", self._uri(key), error) from error
        except BotoCoreError as error:
            raise _transport_error("read", self._uri(key), error) from error

    def _uri(self, key: str) -> str:
        return f"s3://{self._bucket}/{key}"


def create_s3_client(config: SyncConfig) -> Any:
    """Create a boto3 S3 client from optional profile and region.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.
    """
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def _object_key(prefix: str, name: str) -> str:
    if not prefix:
        return name
    return f"{prefix.rstrip('/')}/{name}"


def _transport_error(action: str, uri: str, error: Exception) -> TransportUnavailableError:
    return TransportUnavailableError(
        f"Failed to {action} {uri}: {error}. "
        "Check AWS credentials, bucket versioning, and network access, then retry."
    )
