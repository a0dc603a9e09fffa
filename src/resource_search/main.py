from typer import Typer, Option, Argument, Exit
from typing import Annotated, Optional

from rich.console import Console
from rich.table import Table

from .config import configure_logging, resolve_db_path, resolve_fallback_to_lexical
from .embeddings import EmbeddingProvider
from .errors import SearchError
from .indexing import ResourceIndexer, load_export
from .search import SORT_KEYS, ResourceSearchEngine, SearchMode, normalize_query
from .storage import DuckDBStorage

app = Typer(help="Search shared academic resources.")

DbPathOption = Annotated[
    Optional[str],
    Option("--db-path", help="DuckDB file (defaults to RESOURCE_SEARCH_DB_PATH)."),
]


def _optional_provider(console: Console) -> EmbeddingProvider | None:
    try:
        return EmbeddingProvider()
    except ValueError as exc:
        console.print(f"[yellow]{exc}[/]")
        return None


@app.callback()
def _setup(
    log_level: Annotated[
        Optional[str],
        Option("--log-level", help="Logging level (defaults to RESOURCE_SEARCH_LOG_LEVEL)."),
    ] = None,
) -> None:
    configure_logging(log_level, default="WARNING")


@app.command()
def load(
    export_path: Annotated[str, Argument(help="JSON export with users and resources.")],
    db_path: DbPathOption = None,
    embed: Annotated[
        bool, Option("--embed/--no-embed", help="Generate embeddings while loading.")
    ] = False,
) -> None:
    """Import users and resources from a JSON export."""
    console = Console()
    users, resources = load_export(export_path)
    storage = DuckDBStorage(resolve_db_path(db_path))
    try:
        provider = _optional_provider(console) if embed else None
        indexer = ResourceIndexer(storage, provider)
        for user in users:
            storage.upsert_user(user)
        embedded = 0
        for resource in resources:
            if resource.embedding is not None:
                storage.upsert_resource(resource)
                continue
            result = indexer.update_resource(resource)
            embedded += result.embeddings_written
    finally:
        storage.close()
    console.print(
        f"[bold green]Loaded[/] {len(users)} users, {len(resources)} resources "
        f"({embedded} embedded)."
    )


@app.command()
def embed(
    db_path: DbPathOption = None,
    limit: Annotated[
        Optional[int], Option("--limit", help="Maximum resources to embed.")
    ] = None,
) -> None:
    """Generate embeddings for resources that have none."""
    console = Console()
    provider = _optional_provider(console)
    if provider is None:
        raise Exit(code=1)
    storage = DuckDBStorage(resolve_db_path(db_path))
    try:
        result = ResourceIndexer(storage, provider).backfill(limit=limit)
    finally:
        storage.close()
    console.print(
        f"[bold green]Embedded[/] {result.embeddings_written} resources, "
        f"{result.embeddings_failed} failed."
    )


@app.command()
def search(
    query: Annotated[str, Argument(help="Search text; empty lists everything.")] = "",
    semantic: Annotated[
        bool, Option("--semantic", help="Use embedding similarity.")
    ] = False,
    sort: Annotated[
        str, Option("--sort", help=f"One of: {', '.join(SORT_KEYS)}.")
    ] = "relevance",
    limit: Annotated[Optional[int], Option("--limit")] = None,
    offset: Annotated[int, Option("--offset")] = 0,
    db_path: DbPathOption = None,
    fallback: Annotated[
        Optional[bool],
        Option("--fallback/--no-fallback", help="Fall back to lexical search."),
    ] = None,
) -> None:
    """Run a search and print the results as a table."""
    console = Console()
    request = normalize_query(
        query, semantic=semantic, sort=sort, limit=limit, offset=offset
    )
    storage = DuckDBStorage(resolve_db_path(db_path))
    try:
        provider = _optional_provider(console) if semantic and request.query else None
        engine = ResourceSearchEngine(
            storage,
            provider,
            fallback_to_lexical=resolve_fallback_to_lexical(fallback),
        )
        outcome = engine.search(request)
    except SearchError as exc:
        console.print(f"[bold red]Search failed:[/] {exc}")
        raise Exit(code=1)
    finally:
        storage.close()

    table = Table(title=f"{len(outcome.results)} results ({outcome.mode.value})")
    table.add_column("Title")
    table.add_column("Course")
    table.add_column("School")
    table.add_column("Year", justify="right")
    table.add_column("Type")
    table.add_column("Uploader")
    if outcome.mode is SearchMode.SEMANTIC:
        table.add_column("Similarity", justify="right")
    for result in outcome.results:
        row = [
            result.title,
            result.course_name,
            result.school,
            str(result.year_of_creation or ""),
            result.file_type,
            result.uploader,
        ]
        if result.similarity is not None:
            row.append(f"{result.similarity:.3f}")
        table.add_row(*row)
    if outcome.fallback_used:
        console.print("[yellow]Embedding failed; showing lexical results.[/]")
    console.print(table)


@app.command()
def serve(
    host: Annotated[str, Option("--host")] = "127.0.0.1",
    port: Annotated[int, Option("--port")] = 8000,
    db_path: DbPathOption = None,
) -> None:
    """Run the HTTP search API."""
    from .server import run_server

    run_server(host=host, port=port, db_path=db_path)
