"""Core constants used across stocksync modules.

This module centralizes collection names, paths, and defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_MONGO_URI = "mongodb://localhost:27017/stocks"
DEFAULT_DATABASE_NAME = "stocks"
DEFAULT_SCRATCH_DIR = Path("tmp")
DEFAULT_IMPORT_PATH = Path("tmp/stocks")
DEFAULT_BATCH_SIZE = 500
MIN_BATCH_SIZE = 1
IMPORT_FILE_SUFFIX = ".json"
ARCHIVE_RECORDS_DIR = "stocks"
ARCHIVE_KEY = "stocks.tar.gz"
WATERMARK_KEY = "revision.txt"
BASICS_COLLECTION = "basics"
STOCKS_COLLECTION = "stocks"
FEED_COLLECTION_SEPARATOR = "-"
ENTITY_ID_FIELD = "isin"
DOCUMENT_ID_FIELD = "_id"
UPDATED_AT_FIELD = "updated_at"
MULTI_ITEMS_FIELD = "items"
TRUTHY_ENV_VALUES = ("1", "true", "yes", "on")
DEFAULT_LOG_LEVEL = "info"
