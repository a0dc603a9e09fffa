"""
Vector-based semantic search engine.

Embeds a query and ranks approved resources by cosine similarity against
their stored embeddings, keeping only hits above a fixed relevance floor.
"""

from __future__ import annotations

from ..embeddings import EmbeddingProvider
from ..errors import EmbeddingError
from ..storage import ScoredResource, StorageBackend


MIN_SIMILARITY = 0.5
MAX_RESULTS = 50


class SemanticSearchEngine:
    """Embed a query and search stored resource embeddings."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider,
        *,
        min_similarity: float = MIN_SIMILARITY,
        max_results: int = MAX_RESULTS,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.min_similarity = min_similarity
        self.max_results = max_results

    def search(self, query: str) -> list[ScoredResource]:
        """Return hits with similarity > min_similarity, best first."""
        query_embedding = self.embedding_provider.embed_query(query)
        if not query_embedding:
            raise EmbeddingError("Embedding provider returned an empty vector")
        hits = self.storage.find_approved_by_vector_distance(
            query_embedding=query_embedding,
            max_results=self.max_results,
            min_similarity=self.min_similarity,
        )
        # Floor and ordering must hold for any backend.
        kept = [
            hit
            for hit in hits
            if hit.similarity is not None and hit.similarity > self.min_similarity
        ]
        kept.sort(key=lambda hit: hit.similarity, reverse=True)
        return kept[: self.max_results]
