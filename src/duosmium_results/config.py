"""Environment configuration.

Values are read from the process environment on each call, after an optional
``.env`` file has been loaded by the server.
"""

from __future__ import annotations

import os
from pathlib import Path

from .core.errors import ValidationError

SEARCH_SOURCES = ("corpus", "catalog")

DEFAULT_CACHE_SIZE = 256
DEFAULT_SEARCH_CONCURRENCY = 16
DEFAULT_TRANSPORT = "streamable-http"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


def get_data_root() -> Path:
    """Root of the duosmium checkout that holds data/results/*.yaml."""
    root = os.environ.get("DUOSMIUM_PATH", "")
    if not root:
        raise ValueError("DUOSMIUM_PATH environment variable is required. Set it to the path of a duosmium checkout, or add DUOSMIUM_PATH=/path/to/duosmium to a .env file.")
    return Path(root).expanduser()


def get_search_source() -> str:
    source = os.environ.get("SEARCH_SOURCE", "corpus").strip().lower()
    if source not in SEARCH_SOURCES:
        raise ValidationError(f"SEARCH_SOURCE must be one of {', '.join(SEARCH_SOURCES)}, got {source!r}")
    return source


def get_catalog_urls() -> tuple[str, str]:
    tournaments_url = os.environ.get("CATALOG_TOURNAMENTS_URL", "")
    schools_url = os.environ.get("CATALOG_SCHOOLS_URL", "")
    if not tournaments_url or not schools_url:
        raise ValueError("CATALOG_TOURNAMENTS_URL and CATALOG_SCHOOLS_URL environment variables are required when SEARCH_SOURCE=catalog")
    return tournaments_url, schools_url


def get_cache_size() -> int:
    return max(0, int(os.environ.get("RESULTS_CACHE_SIZE", str(DEFAULT_CACHE_SIZE))))


def get_search_concurrency() -> int:
    return max(1, int(os.environ.get("SEARCH_CONCURRENCY", str(DEFAULT_SEARCH_CONCURRENCY))))


def get_transport() -> str:
    return os.environ.get("MCP_TRANSPORT", DEFAULT_TRANSPORT)


def get_host() -> str:
    return os.environ.get("HOST", DEFAULT_HOST)


def get_port() -> int:
    return int(os.environ.get("PORT", str(DEFAULT_PORT)))


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
