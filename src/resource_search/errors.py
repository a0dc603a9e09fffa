"""
Error kinds raised by the search core.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for search failures that terminate a request."""


class EmbeddingError(SearchError):
    """Raised when the embedding provider cannot produce a vector."""


class StoreError(SearchError):
    """Raised when the resource store query fails."""
