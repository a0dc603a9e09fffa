"""
Storage interfaces and data models for resource persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


class ResourceStatus(str, Enum):
    """Moderation state of an uploaded resource."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class UserRecord:
    """A site user; only the username is needed for search."""

    id: str
    username: str


@dataclass(frozen=True)
class ResourceRecord:
    """An academic resource as persisted in the store."""

    id: str
    title: str
    file_url: str
    created_at: datetime
    status: ResourceStatus = ResourceStatus.PENDING
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    school: str | None = None
    program: str | None = None
    course_name: str | None = None
    resource_type: str | None = None
    year_of_creation: int | None = None
    course_year: int | None = None
    uploader_id: str | None = None
    embedding: list[float] | None = None


@dataclass(frozen=True)
class ScoredResource:
    """A store hit with its joined uploader name and optional similarity."""

    resource: ResourceRecord
    uploader_name: str | None = None
    similarity: float | None = None


class StorageBackend(Protocol):
    """Protocol for the resource store consumed by search and indexing."""

    def initialize(self) -> None:
        """Initialize required tables."""

    def upsert_user(self, user: UserRecord) -> None:
        """Insert or update a user."""

    def upsert_resource(self, resource: ResourceRecord) -> None:
        """Insert or update a resource, including its embedding column."""

    def get_resource(self, *, resource_id: str) -> ResourceRecord | None:
        """Get a resource by id regardless of status."""

    def find_approved(self, *, query: str | None = None) -> list[ScoredResource]:
        """Return approved resources, optionally filtered by a lexical query."""

    def find_approved_by_vector_distance(
        self,
        *,
        query_embedding: list[float],
        max_results: int,
        min_similarity: float,
    ) -> list[ScoredResource]:
        """Return approved resources ranked by cosine similarity to the query."""

    def store_resource_embedding(
        self, *, resource_id: str, embedding: list[float]
    ) -> None:
        """Set the embedding of a resource."""

    def clear_resource_embedding(self, *, resource_id: str) -> None:
        """Drop the embedding of a resource."""

    def list_resources_missing_embeddings(
        self, *, limit: int | None = None
    ) -> list[ResourceRecord]:
        """List resources without a stored embedding."""

    def count_resources(self, *, status: ResourceStatus | None = None) -> int:
        """Count resources, optionally restricted to a status."""
