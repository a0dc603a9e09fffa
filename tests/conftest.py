from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

import pytest

from resource_search.storage import DuckDBStorage, ResourceRecord, ResourceStatus


BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)


@dataclass
class FakeEmbedding:
    values: list[float]


@dataclass
class FakeEmbedResult:
    embeddings: list[FakeEmbedding]


class FakeModels:
    """Records calls and returns vectors looked up by exact text."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> FakeEmbedResult:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        dim = config.get("output_dimensionality", 2)
        default = [0.0] * (dim - 1) + [1.0]
        return FakeEmbedResult(
            embeddings=[
                FakeEmbedding(values=list(self.vectors.get(text, default)))
                for text in contents
            ]
        )


class FakeGenAIClient:
    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.models = FakeModels(vectors, error=error)


def unit_vector_at(similarity: float) -> list[float]:
    """2-d unit vector whose cosine similarity with [1, 0] is *similarity*."""
    return [similarity, math.sqrt(1.0 - similarity * similarity)]


@pytest.fixture()
def storage(tmp_path: Path):
    store = DuckDBStorage(str(tmp_path / "resources.duckdb"))
    yield store
    store.close()


@pytest.fixture()
def make_resource() -> Callable[..., ResourceRecord]:
    def _make(
        resource_id: str,
        title: str = "Untitled",
        *,
        minutes: int = 0,
        status: ResourceStatus = ResourceStatus.APPROVED,
        file_url: str | None = None,
        **fields: Any,
    ) -> ResourceRecord:
        return ResourceRecord(
            id=resource_id,
            title=title,
            file_url=file_url or f"uploads/{resource_id}.pdf",
            created_at=BASE_TIME + timedelta(minutes=minutes),
            status=status,
            **fields,
        )

    return _make


@pytest.fixture()
def genai_client() -> Callable[..., FakeGenAIClient]:
    return FakeGenAIClient


@pytest.fixture()
def unit_vector() -> Callable[[float], list[float]]:
    return unit_vector_at
