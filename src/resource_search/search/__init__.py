"""Search helpers for the resource store."""

from .engine import ResourceSearchEngine, SearchOutcome
from .formatter import file_type_from_url, format_hit, format_result
from .lexical import LexicalSearchStrategy
from .query import (
    SORT_KEYS,
    SearchMode,
    SearchRequest,
    normalize_query,
    normalize_sort_key,
)
from .ranker import sort_results
from .semantic import MAX_RESULTS, MIN_SIMILARITY, SemanticSearchEngine

__all__ = [
    "ResourceSearchEngine",
    "SearchOutcome",
    "file_type_from_url",
    "format_hit",
    "format_result",
    "LexicalSearchStrategy",
    "SORT_KEYS",
    "SearchMode",
    "SearchRequest",
    "normalize_query",
    "normalize_sort_key",
    "sort_results",
    "MAX_RESULTS",
    "MIN_SIMILARITY",
    "SemanticSearchEngine",
]
