"""
FastAPI server exposing the resource search endpoint.

The DuckDB store and the embedding provider are created once by the app
lifespan (or injected by the caller) and shared through ``app.state``.
Each request runs on its own cursor in a worker thread.
"""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .config import (
    configure_logging,
    resolve_db_path,
    resolve_fallback_to_lexical,
    resolve_timeout_seconds,
)
from .embeddings import EmbeddingProvider
from .errors import EmbeddingError, StoreError
from .search import ResourceSearchEngine, SearchOutcome, normalize_query
from .storage import DuckDBStorage, ResourceStatus, StorageBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DISCONNECT_POLL_SECONDS = 0.1
_SHUTDOWN_GRACE_SECONDS = 10.0


class ClientDisconnected(Exception):
    """Raised when the client goes away before the search finishes."""


class InFlightSearches:
    """Counts worker threads that may still hold a cursor on the store."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._active = 0

    @property
    def active(self) -> int:
        with self._cond:
            return self._active

    def start(self) -> None:
        with self._cond:
            self._active += 1

    def finish(self) -> None:
        with self._cond:
            self._active -= 1
            self._cond.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._active == 0, timeout)


def _acquire_request_storage(
    storage: StorageBackend,
) -> tuple[StorageBackend, Callable[[], None]]:
    if isinstance(storage, DuckDBStorage):
        scoped = storage.cursor()
        return scoped, scoped.close
    return storage, lambda: None


async def _run_until_disconnect(
    request: Request, call: Callable[[], T], timeout: float
) -> T:
    """Run *call* in a thread; stop waiting on timeout or client disconnect."""
    work = asyncio.ensure_future(asyncio.to_thread(call))

    async def _watch() -> None:
        while not await request.is_disconnected():
            await asyncio.sleep(_DISCONNECT_POLL_SECONDS)

    watcher = asyncio.ensure_future(_watch())
    try:
        done, _ = await asyncio.wait(
            {work, watcher},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        watcher.cancel()

    if work in done:
        return work.result()
    work.cancel()
    if watcher in done:
        raise ClientDisconnected()
    raise asyncio.TimeoutError()


def _parse_flag(value: str | None) -> bool:
    return value is not None and value.strip().lower() in {"true", "1"}


def create_app(
    *,
    storage: StorageBackend | None = None,
    embedding_provider: EmbeddingProvider | None = None,
    db_path: str | None = None,
    fallback_to_lexical: bool | None = None,
    timeout_seconds: float | None = None,
) -> FastAPI:
    """Build the app; injected collaborators are used as-is and never closed."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: DuckDBStorage | None = None
        if app.state.storage is None:
            configure_logging()
            owned = DuckDBStorage(resolve_db_path(db_path))
            app.state.storage = owned
            if app.state.embedding_provider is None:
                try:
                    app.state.embedding_provider = EmbeddingProvider()
                except ValueError:
                    logger.warning("GOOGLE_API_KEY not set; semantic search disabled")
        try:
            yield
        finally:
            if owned is not None:
                # Timed-out searches keep running in their threads.
                idle = await asyncio.to_thread(
                    app.state.in_flight.wait_idle, _SHUTDOWN_GRACE_SECONDS
                )
                if not idle:
                    logger.warning(
                        "Closing store with %d searches still running",
                        app.state.in_flight.active,
                    )
                owned.close()
                app.state.storage = None

    app = FastAPI(
        title="Resource Search",
        description="Lexical and semantic search over shared academic resources",
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.embedding_provider = embedding_provider
    app.state.fallback_to_lexical = resolve_fallback_to_lexical(fallback_to_lexical)
    app.state.timeout_seconds = resolve_timeout_seconds(timeout_seconds)
    app.state.in_flight = InFlightSearches()

    @app.get("/api/health")
    async def health(request: Request):
        """Report store reachability and whether semantic search is available."""
        state = request.app.state
        if state.storage is None:
            return JSONResponse({"error": "Store not initialized"}, status_code=503)
        try:
            approved = await asyncio.to_thread(
                _count_approved, state.storage
            )
        except StoreError as exc:
            logger.exception("[GET /api/health]")
            return JSONResponse({"error": str(exc)}, status_code=503)
        return {
            "status": "ok",
            "resources": approved,
            "semantic": state.embedding_provider is not None,
        }

    @app.get("/api/search")
    async def search_resources(
        request: Request,
        q: str | None = None,
        semantic: str | None = None,
        sort: str | None = None,
        limit: int | None = Query(default=None, ge=1),
        offset: int = Query(default=0, ge=0),
    ):
        """Search approved resources; returns a JSON array of results."""
        state = request.app.state
        if state.storage is None:
            return JSONResponse({"error": "Store not initialized"}, status_code=503)

        search_request = normalize_query(
            q,
            semantic=_parse_flag(semantic),
            sort=sort,
            limit=limit,
            offset=offset,
        )

        def _run() -> SearchOutcome:
            try:
                scoped, cleanup = _acquire_request_storage(state.storage)
                try:
                    engine = ResourceSearchEngine(
                        scoped,
                        state.embedding_provider,
                        fallback_to_lexical=state.fallback_to_lexical,
                    )
                    return engine.search(search_request)
                finally:
                    cleanup()
            finally:
                state.in_flight.finish()

        state.in_flight.start()
        try:
            outcome = await _run_until_disconnect(request, _run, state.timeout_seconds)
        except EmbeddingError:
            logger.exception("[GET /api/search] embedding failed")
            return JSONResponse(
                {"error": "Failed to generate query embedding"}, status_code=502
            )
        except asyncio.TimeoutError:
            logger.error(
                "[GET /api/search] timed out after %.1fs", state.timeout_seconds
            )
            return JSONResponse({"error": "Search timed out"}, status_code=504)
        except ClientDisconnected:
            logger.info("[GET /api/search] client disconnected")
            return JSONResponse({"error": "Client disconnected"}, status_code=499)
        except Exception:
            logger.exception("[GET /api/search]")
            return JSONResponse(
                {"error": "Failed to fetch search results"}, status_code=500
            )

        headers: dict[str, str] = {"X-Search-Mode": outcome.mode.value}
        if outcome.fallback_used:
            headers["X-Search-Fallback"] = "lexical"
        payload: list[dict[str, Any]] = [
            result.to_public_dict() for result in outcome.results
        ]
        return JSONResponse(payload, headers=headers)

    return app


def _count_approved(storage: StorageBackend) -> int:
    scoped, cleanup = _acquire_request_storage(storage)
    try:
        return scoped.count_resources(status=ResourceStatus.APPROVED)
    finally:
        cleanup()


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8000, db_path: str | None = None):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(create_app(db_path=db_path), host=host, port=port)


if __name__ == "__main__":
    run_server()
