"""
resource_search - hybrid search over shared academic resources.

Lexical matching on resource metadata and semantic retrieval over
Google GenAI embeddings stored in DuckDB, behind a FastAPI endpoint.

Example usage:
    >>> from resource_search import DuckDBStorage, ResourceSearchEngine, normalize_query
    >>> storage = DuckDBStorage("resources.duckdb")
    >>> engine = ResourceSearchEngine(storage)
    >>> outcome = engine.search(normalize_query("data structures", sort="date"))
"""

from .embeddings import EmbeddingProvider
from .errors import EmbeddingError, SearchError, StoreError
from .models import SearchResult
from .search import (
    ResourceSearchEngine,
    SearchMode,
    SearchOutcome,
    SearchRequest,
    normalize_query,
)
from .storage import DuckDBStorage, ResourceRecord, ResourceStatus, UserRecord

__all__ = [
    # Embeddings
    "EmbeddingProvider",
    # Errors
    "EmbeddingError",
    "SearchError",
    "StoreError",
    # Search
    "SearchResult",
    "ResourceSearchEngine",
    "SearchMode",
    "SearchOutcome",
    "SearchRequest",
    "normalize_query",
    # Storage
    "DuckDBStorage",
    "ResourceRecord",
    "ResourceStatus",
    "UserRecord",
]
