"""
Search orchestration: strategy selection, sorting, pagination, formatting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..embeddings import EmbeddingProvider
from ..errors import EmbeddingError
from ..models import SearchResult
from ..storage import ScoredResource, StorageBackend
from .formatter import format_hit
from .lexical import LexicalSearchStrategy
from .query import SearchMode, SearchRequest
from .ranker import sort_results
from .semantic import SemanticSearchEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchOutcome:
    """Formatted results plus how they were produced."""

    results: list[SearchResult]
    mode: SearchMode
    fallback_used: bool = False


class ResourceSearchEngine:
    """Run a normalized search request against the resource store."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider | None = None,
        *,
        fallback_to_lexical: bool = False,
        semantic_engine: SemanticSearchEngine | None = None,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.fallback_to_lexical = fallback_to_lexical
        self._lexical = LexicalSearchStrategy(storage)
        if semantic_engine is not None:
            self._semantic: SemanticSearchEngine | None = semantic_engine
        elif embedding_provider is not None:
            self._semantic = SemanticSearchEngine(storage, embedding_provider)
        else:
            self._semantic = None

    def search(self, request: SearchRequest) -> SearchOutcome:
        mode = request.mode
        fallback_used = False

        if mode is SearchMode.SEMANTIC:
            try:
                hits = self._semantic_search(request.query)
            except EmbeddingError as exc:
                if not self.fallback_to_lexical:
                    raise
                logger.warning(
                    "Semantic search failed, falling back to lexical: query=%r error=%s",
                    request.query,
                    exc,
                )
                mode = SearchMode.LEXICAL
                fallback_used = True
                hits = self._lexical.search(request.query)
        else:
            hits = self._lexical.search(request.query)

        ordered = sort_results(hits, request.sort, mode=mode)
        window = self._paginate(ordered, limit=request.limit, offset=request.offset)
        logger.info(
            "search: mode=%s sort=%s matched=%d returned=%d",
            mode.value,
            request.sort,
            len(ordered),
            len(window),
        )
        return SearchOutcome(
            results=[format_hit(hit) for hit in window],
            mode=mode,
            fallback_used=fallback_used,
        )

    def _semantic_search(self, query: str) -> list[ScoredResource]:
        if self._semantic is None:
            raise EmbeddingError("No embedding provider configured")
        return self._semantic.search(query)

    @staticmethod
    def _paginate(
        hits: list[ScoredResource], *, limit: int | None, offset: int
    ) -> list[ScoredResource]:
        start = max(offset, 0)
        if limit is None:
            return hits[start:]
        return hits[start : start + max(limit, 1)]
