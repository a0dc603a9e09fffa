"""Tests for the /api/search and /api/health REST endpoints."""

from __future__ import annotations

import asyncio
import threading
import time

import pytest
from fastapi.testclient import TestClient

from resource_search.embeddings import EmbeddingProvider
from resource_search.server import ClientDisconnected, _run_until_disconnect, create_app
from resource_search.storage import DuckDBStorage, ResourceStatus, UserRecord


@pytest.fixture()
def seeded_storage(storage, make_resource, unit_vector):
    storage.upsert_user(UserRecord(id="u1", username="alice"))
    storage.upsert_resource(
        make_resource(
            "a",
            "Data Structures Final 2023",
            minutes=2,
            tags=["Final", "2023"],
            uploader_id="u1",
            year_of_creation=2023,
            embedding=unit_vector(0.9),
        )
    )
    storage.upsert_resource(
        make_resource(
            "b",
            "Data Structures Final 2023",
            minutes=3,
            status=ResourceStatus.PENDING,
            embedding=unit_vector(0.95),
        )
    )
    storage.upsert_resource(
        make_resource(
            "c",
            "Poetry Anthology",
            minutes=1,
            file_url="uploads/c",
            embedding=unit_vector(0.3),
        )
    )
    return storage


def _client(storage, provider=None, **kwargs) -> TestClient:
    return TestClient(create_app(storage=storage, embedding_provider=provider, **kwargs))


def test_search_endpoint_returns_lexical_results(seeded_storage) -> None:
    with _client(seeded_storage) as client:
        response = client.get("/api/search", params={"q": "data structures"})

    assert response.status_code == 200
    assert response.headers["X-Search-Mode"] == "lexical"
    data = response.json()
    assert [item["id"] for item in data] == ["a"]
    item = data[0]
    assert item["uploader"] == "alice"
    assert item["fileType"] == "pdf"
    assert item["downloads"] == 0
    assert item["courseYear"] == ""
    assert item["uploadDate"].startswith("2024-01-01T09:02")
    assert "similarity" not in item


def test_search_endpoint_without_query_lists_approved(seeded_storage) -> None:
    with _client(seeded_storage) as client:
        plain = client.get("/api/search").json()
        semantic = client.get("/api/search", params={"q": "", "semantic": "true"}).json()

    assert [item["id"] for item in plain] == ["a", "c"]
    assert semantic == plain
    assert plain[1]["fileType"] == "unknown"
    assert plain[1]["uploader"] == "Anonymous"


def test_search_endpoint_semantic_mode(seeded_storage, genai_client) -> None:
    provider = EmbeddingProvider(client=genai_client({"graph exam": [1.0, 0.0]}), dim=2)

    with _client(seeded_storage, provider) as client:
        response = client.get(
            "/api/search", params={"q": "graph exam", "semantic": "true"}
        )

    assert response.status_code == 200
    assert response.headers["X-Search-Mode"] == "semantic"
    data = response.json()
    assert [item["id"] for item in data] == ["a"]
    assert data[0]["similarity"] == pytest.approx(0.9, abs=1e-6)


def test_search_endpoint_sort_and_pagination(seeded_storage) -> None:
    with _client(seeded_storage) as client:
        by_title = client.get("/api/search", params={"sort": "title"}).json()
        second = client.get(
            "/api/search", params={"sort": "title", "limit": 1, "offset": 1}
        ).json()
        unknown = client.get("/api/search", params={"sort": "bogus"}).json()

    assert [item["title"] for item in by_title] == [
        "Data Structures Final 2023",
        "Poetry Anthology",
    ]
    assert [item["id"] for item in second] == ["c"]
    assert [item["id"] for item in unknown] == ["a", "c"]


def test_search_endpoint_embedding_failure_returns_error(seeded_storage, genai_client) -> None:
    provider = EmbeddingProvider(client=genai_client(error=RuntimeError("outage")), dim=2)

    with _client(seeded_storage, provider, fallback_to_lexical=False) as client:
        response = client.get("/api/search", params={"q": "final", "semantic": "true"})

    assert response.status_code == 502
    assert "error" in response.json()


def test_search_endpoint_fallback_is_flagged(seeded_storage, genai_client) -> None:
    provider = EmbeddingProvider(client=genai_client(error=RuntimeError("outage")), dim=2)

    with _client(seeded_storage, provider, fallback_to_lexical=True) as client:
        response = client.get("/api/search", params={"q": "final", "semantic": "true"})

    assert response.status_code == 200
    assert response.headers["X-Search-Fallback"] == "lexical"
    assert response.headers["X-Search-Mode"] == "lexical"
    assert [item["id"] for item in response.json()] == ["a"]


def test_search_endpoint_store_failure_returns_500(seeded_storage) -> None:
    seeded_storage._conn.execute("DROP TABLE resources")

    with _client(seeded_storage) as client:
        response = client.get("/api/search", params={"q": "final"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch search results"}


def test_search_endpoint_times_out(seeded_storage, genai_client) -> None:
    client_stub = genai_client({"slow": [1.0, 0.0]})
    original = client_stub.models.embed_content

    def _slow_embed(**kwargs):
        time.sleep(0.5)
        return original(**kwargs)

    client_stub.models.embed_content = _slow_embed
    provider = EmbeddingProvider(client=client_stub, dim=2)

    with _client(seeded_storage, provider, timeout_seconds=0.05) as client:
        response = client.get("/api/search", params={"q": "slow", "semantic": "true"})

    assert response.status_code == 504
    assert response.json() == {"error": "Search timed out"}


def test_search_endpoint_rejects_invalid_pagination(seeded_storage) -> None:
    with _client(seeded_storage) as client:
        response = client.get("/api/search", params={"limit": 0})

    assert response.status_code == 422


def test_health_endpoint(seeded_storage) -> None:
    with _client(seeded_storage) as client:
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "resources": 2, "semantic": False}


class _StubRequest:
    def __init__(self, disconnected: bool) -> None:
        self.disconnected = disconnected

    async def is_disconnected(self) -> bool:
        return self.disconnected


def test_disconnect_stops_waiting_for_running_search() -> None:
    release = threading.Event()
    finished = threading.Event()

    def _slow_search() -> str:
        release.wait(5)
        finished.set()
        return "done"

    async def _scenario() -> bool:
        try:
            with pytest.raises(ClientDisconnected):
                await _run_until_disconnect(_StubRequest(True), _slow_search, 5.0)
            return finished.is_set()
        finally:
            release.set()

    assert asyncio.run(_scenario()) is False


def test_connected_client_receives_result() -> None:
    async def _scenario() -> str:
        return await _run_until_disconnect(_StubRequest(False), lambda: "done", 5.0)

    assert asyncio.run(_scenario()) == "done"


def test_shutdown_waits_for_timed_out_search(tmp_path, monkeypatch, genai_client) -> None:
    events: list[str] = []
    client_stub = genai_client({"slow": [1.0, 0.0]})
    original_embed = client_stub.models.embed_content

    def _slow_embed(**kwargs):
        time.sleep(0.3)
        events.append("embedded")
        return original_embed(**kwargs)

    client_stub.models.embed_content = _slow_embed
    original_close = DuckDBStorage.close

    def _recording_close(self) -> None:
        events.append("closed")
        original_close(self)

    monkeypatch.setattr(DuckDBStorage, "close", _recording_close)
    app = create_app(
        db_path=str(tmp_path / "resources.duckdb"),
        embedding_provider=EmbeddingProvider(client=client_stub, dim=2),
        timeout_seconds=0.05,
    )

    with TestClient(app) as client:
        response = client.get("/api/search", params={"q": "slow", "semantic": "true"})
        assert response.status_code == 504

    assert events[0] == "embedded"
    assert events[-1] == "closed"
    assert app.state.in_flight.active == 0
