"""
Query normalization: raw request parameters to a canonical search request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


class SearchMode(str, Enum):
    """Retrieval strategy chosen for a request."""

    LEXICAL = "lexical"
    SEMANTIC = "semantic"


SortKey = Literal["relevance", "date", "title", "year", "school", "course", "similarity"]

SORT_KEYS: tuple[SortKey, ...] = (
    "relevance",
    "date",
    "title",
    "year",
    "school",
    "course",
    "similarity",
)
DEFAULT_SORT: SortKey = "relevance"


@dataclass(frozen=True)
class SearchRequest:
    """Canonical search request; mode is decided here and never re-checked."""

    mode: SearchMode
    query: str
    sort: SortKey = DEFAULT_SORT
    limit: int | None = None
    offset: int = 0


def normalize_sort_key(sort: str | None) -> SortKey:
    """Return a supported sort key, falling back to relevance."""
    if sort is None:
        return DEFAULT_SORT
    candidate = sort.strip().lower()
    for key in SORT_KEYS:
        if key == candidate:
            return key
    return DEFAULT_SORT


def normalize_query(
    query: str | None,
    *,
    semantic: bool = False,
    sort: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> SearchRequest:
    text = (query or "").strip()
    # Semantic mode needs something to embed.
    mode = SearchMode.SEMANTIC if semantic and text else SearchMode.LEXICAL
    return SearchRequest(
        mode=mode,
        query=text,
        sort=normalize_sort_key(sort),
        limit=limit if limit is not None and limit >= 1 else None,
        offset=max(offset or 0, 0),
    )
