"""
Resource embedding pipeline: embed on create, re-embed on edit, backfill.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from ..embeddings import EmbeddingProvider
from ..errors import EmbeddingError
from ..storage import ResourceRecord, StorageBackend
from .text import build_resource_text, embedded_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexingResult:
    """Summary output for an indexing run."""

    resources_written: int
    embeddings_written: int
    embeddings_failed: int = 0
    embeddings_cleared: int = 0


class ResourceIndexer:
    """Persist resources and keep their embeddings in sync with their text."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider | None = None,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider

    def add_resource(self, resource: ResourceRecord) -> IndexingResult:
        """Store a new resource, embedding it when a provider is available.

        Embedding failures never block the write; the resource is stored
        without a vector and picked up by a later backfill.
        """
        embedding = self._try_embed(resource)
        self.storage.upsert_resource(dataclasses.replace(resource, embedding=embedding))
        return IndexingResult(
            resources_written=1,
            embeddings_written=1 if embedding is not None else 0,
            embeddings_failed=1 if embedding is None and self.embedding_provider else 0,
        )

    def update_resource(self, resource: ResourceRecord) -> IndexingResult:
        """Store an edited resource and regenerate a stale embedding."""
        existing = self.storage.get_resource(resource_id=resource.id)
        text_changed = existing is None or embedded_fields(existing) != embedded_fields(
            resource
        )
        previous = existing.embedding if existing is not None else None

        if not text_changed and previous is not None:
            self.storage.upsert_resource(dataclasses.replace(resource, embedding=previous))
            return IndexingResult(resources_written=1, embeddings_written=0)

        embedding = self._try_embed(resource)
        self.storage.upsert_resource(dataclasses.replace(resource, embedding=embedding))
        cleared = 1 if embedding is None and previous is not None else 0
        if cleared:
            logger.warning(
                "Dropped stale embedding for resource %s after failed regeneration",
                resource.id,
            )
        return IndexingResult(
            resources_written=1,
            embeddings_written=1 if embedding is not None else 0,
            embeddings_failed=1 if embedding is None and self.embedding_provider else 0,
            embeddings_cleared=cleared,
        )

    def backfill(self, *, limit: int | None = None) -> IndexingResult:
        """Embed stored resources that have no vector yet."""
        if self.embedding_provider is None:
            raise EmbeddingError("No embedding provider configured")

        pending = self.storage.list_resources_missing_embeddings(limit=limit)
        written = 0
        failed = 0
        batch_size = max(self.embedding_provider.batch_size, 1)
        for start in range(0, len(pending), batch_size):
            batch: list[tuple[ResourceRecord, str]] = []
            for resource in pending[start : start + batch_size]:
                try:
                    batch.append((resource, build_resource_text(resource)))
                except ValueError:
                    failed += 1
            if not batch:
                continue
            try:
                vectors = self.embedding_provider.embed_texts([text for _, text in batch])
            except EmbeddingError:
                logger.warning(
                    "Embedding batch of %d resources failed", len(batch), exc_info=True
                )
                failed += len(batch)
                continue
            for (resource, _), vector in zip(batch, vectors):
                self.storage.store_resource_embedding(
                    resource_id=resource.id, embedding=vector
                )
                written += 1

        logger.info("backfill: embedded=%d failed=%d", written, failed)
        return IndexingResult(
            resources_written=0,
            embeddings_written=written,
            embeddings_failed=failed,
        )

    def _try_embed(self, resource: ResourceRecord) -> list[float] | None:
        if self.embedding_provider is None:
            return None
        try:
            text = build_resource_text(resource)
            return self.embedding_provider.embed_texts([text])[0]
        except (EmbeddingError, ValueError):
            logger.warning(
                "Failed to generate embedding for resource %s", resource.id, exc_info=True
            )
            return None
