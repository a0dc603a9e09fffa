"""
Configuration helpers for the resource store and search tuning.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


DEFAULT_DB_PATH = "~/.resource_search/resources.duckdb"
ENV_DB_PATH = "RESOURCE_SEARCH_DB_PATH"
ENV_FALLBACK_TO_LEXICAL = "RESOURCE_SEARCH_FALLBACK_TO_LEXICAL"
ENV_TIMEOUT_SECONDS = "RESOURCE_SEARCH_TIMEOUT_SECONDS"
ENV_LOG_LEVEL = "RESOURCE_SEARCH_LOG_LEVEL"

DEFAULT_TIMEOUT_SECONDS = 15.0

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) RESOURCE_SEARCH_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def resolve_fallback_to_lexical(override: bool | None = None) -> bool:
    """Whether semantic requests fall back to lexical search on embedding failure."""
    if override is not None:
        return override
    return os.getenv(ENV_FALLBACK_TO_LEXICAL, "").strip().lower() in _TRUTHY


def resolve_timeout_seconds(override: float | None = None) -> float:
    if override is not None:
        return override
    raw = os.getenv(ENV_TIMEOUT_SECONDS)
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    return float(raw)


def configure_logging(level: str | None = None, *, default: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    The level comes from *level*, then RESOURCE_SEARCH_LOG_LEVEL, then *default*.
    """
    resolved = (level or os.getenv(ENV_LOG_LEVEL) or default).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT, force=True)
