"""
Embedding provider for vector-based semantic search.

Wraps the Google GenAI embedding API for batch and single-query embedding
with configurable model, dimensions, batch size, and a bounded cache of
query vectors.
"""

from __future__ import annotations

import os
import re
import threading
from collections import OrderedDict
from typing import Any

from google.genai import Client as GenAIClient

from .errors import EmbeddingError


_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 50
_DEFAULT_QUERY_CACHE_SIZE = 256

_NEWLINES_RE = re.compile(r"[\r\n]+")


def normalize_embedding_text(text: str) -> str:
    """Collapse newlines to spaces and trim surrounding whitespace."""
    return _NEWLINES_RE.sub(" ", text).strip()


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        query_cache_size: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("RESOURCE_SEARCH_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("RESOURCE_SEARCH_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("RESOURCE_SEARCH_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )
        if query_cache_size is None:
            query_cache_size = int(
                os.getenv(
                    "RESOURCE_SEARCH_QUERY_CACHE_SIZE", str(_DEFAULT_QUERY_CACHE_SIZE)
                )
            )
        self.query_cache_size = max(query_cache_size, 0)
        self._query_cache: OrderedDict[str, list[float]] = OrderedDict()
        self._cache_lock = threading.Lock()

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(api_key=resolved_key)

    def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        Raises EmbeddingError if any text is blank or the API call fails.
        """
        normalized = [normalize_embedding_text(text) for text in texts]
        if any(not text for text in normalized):
            raise EmbeddingError("Text cannot be empty")

        all_embeddings: list[list[float]] = []
        for start in range(0, len(normalized), self.batch_size):
            batch = normalized[start : start + self.batch_size]
            vectors = self._embed(batch, task_type=task_type)
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Expected {len(batch)} embeddings, got {len(vectors)}"
                )
            all_embeddings.extend(vectors)
        return all_embeddings

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        text = normalize_embedding_text(query)
        if not text:
            raise EmbeddingError("Text cannot be empty")

        cached = self._cache_get(text)
        if cached is not None:
            return cached

        vectors = self._embed([text], task_type="RETRIEVAL_QUERY")
        if not vectors:
            raise EmbeddingError("Invalid embedding response: no vectors returned")
        vector = vectors[0]
        self._cache_put(text, vector)
        return list(vector)

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._query_cache.clear()

    def _embed(self, contents: list[str], *, task_type: str) -> list[list[float]]:
        try:
            result = self._client.models.embed_content(
                model=self.model,
                contents=contents,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

        embeddings = getattr(result, "embeddings", None) or []
        vectors: list[list[float]] = []
        for emb in embeddings:
            values = getattr(emb, "values", None)
            if not values:
                raise EmbeddingError("Invalid embedding response: missing values")
            vectors.append([float(v) for v in values][: self.dim])
        return vectors

    def _cache_get(self, text: str) -> list[float] | None:
        if self.query_cache_size == 0:
            return None
        with self._cache_lock:
            vector = self._query_cache.get(text)
            if vector is None:
                return None
            self._query_cache.move_to_end(text)
            return list(vector)

    def _cache_put(self, text: str, vector: list[float]) -> None:
        if self.query_cache_size == 0:
            return
        with self._cache_lock:
            self._query_cache[text] = list(vector)
            self._query_cache.move_to_end(text)
            while len(self._query_cache) > self.query_cache_size:
                self._query_cache.popitem(last=False)
