"""
Sort policies applied to a strategy's results.
"""

from __future__ import annotations

from typing import Any, Callable

from ..storage import ScoredResource
from .query import SearchMode, SortKey


# key -> (sort key function, descending)
_SORTERS: dict[str, tuple[Callable[[ScoredResource], Any], bool]] = {
    "date": (lambda hit: hit.resource.created_at, True),
    "title": (lambda hit: hit.resource.title, False),
    "year": (lambda hit: hit.resource.year_of_creation or 0, True),
    "school": (lambda hit: hit.resource.school or "", False),
    "course": (lambda hit: hit.resource.course_name or "", False),
}


def sort_results(
    results: list[ScoredResource],
    sort_key: SortKey | str,
    *,
    mode: SearchMode = SearchMode.LEXICAL,
) -> list[ScoredResource]:
    """Return results ordered by *sort_key*; stable for equal keys.

    ``relevance`` keeps the strategy's native order. ``similarity`` orders by
    similarity in semantic mode and is a no-op in lexical mode.
    """
    if sort_key == "similarity":
        if mode is not SearchMode.SEMANTIC:
            return list(results)
        return sorted(
            results,
            key=lambda hit: hit.similarity if hit.similarity is not None else float("-inf"),
            reverse=True,
        )

    sorter = _SORTERS.get(sort_key)
    if sorter is None:
        return list(results)
    key_fn, descending = sorter
    # sorted(reverse=True) keeps equal elements in their original order.
    return sorted(results, key=key_fn, reverse=descending)
