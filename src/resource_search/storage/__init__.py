"""Storage backends for the resource search engine."""

from .base import (
    ResourceRecord,
    ResourceStatus,
    ScoredResource,
    StorageBackend,
    UserRecord,
)
from .duckdb import DuckDBStorage

__all__ = [
    "ResourceRecord",
    "ResourceStatus",
    "ScoredResource",
    "StorageBackend",
    "UserRecord",
    "DuckDBStorage",
]
