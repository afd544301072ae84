"""Command line front end for stored collections."""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer

from stromcollect.config import get_config
from stromcollect.core.events import EventStore
from stromcollect.core.storage import SQLiteStorage
from stromcollect.export import DataExportManager, ExportResult
from stromcollect.logging_config import configure_logging
from stromcollect.registry import CollectionFilter, CollectionRegistry, CollectionSort
from stromcollect.search import SearchScope, search_collections

logger = logging.getLogger(__name__)

app = typer.Typer(help="Stromatolite field collection manager")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    config = get_config()
    configure_logging(
        level="DEBUG" if verbose else config.LOG_LEVEL,
        json_format=config.LOG_JSON,
    )


@contextmanager
def _session() -> Iterator[tuple[CollectionRegistry, EventStore]]:
    """Registry and event store bound to the configured database."""
    config = get_config()
    event_store = EventStore(config.event_log_path())
    storage = SQLiteStorage(config.DATABASE_PATH)
    try:
        registry = CollectionRegistry(storage, event_store)
        registry.reload()
        yield registry, event_store
    finally:
        storage.close()


def _fail(message: str) -> None:
    typer.echo(f"❌ {message}", err=True)
    raise typer.Exit(1)


def _report_export(result: ExportResult) -> None:
    if not result.success:
        _fail(f"Export failed: {result.error}")
    typer.echo(f"✅ Exported to: {result.export_path}")
    typer.echo(f"📊 Files: {result.files_exported} ({result.total_size} bytes)")
    for locality in result.failed_collections:
        typer.echo(f"⚠️  Skipped: {locality}", err=True)


@app.command()
def create(
    locality: str = typer.Argument(..., help="Collection locality"),
    collector: str = typer.Argument(..., help="Collector name"),
) -> None:
    """Create a collection and print its id."""
    if not locality.strip() or not collector.strip():
        _fail("Locality and collector name are required")

    with _session() as (registry, _):
        collection = registry.create(locality, collector)
        if collection is None:
            _fail("Could not save the new collection")
        typer.echo(collection.id)


@app.command("list")
def list_collections(
    filter_option: CollectionFilter = typer.Option(
        CollectionFilter.ALL, "--filter", help="Which collections to show"
    ),
    sort_option: CollectionSort = typer.Option(
        CollectionSort.DATE_NEWEST, "--sort", help="Sort order"
    ),
) -> None:
    """List stored collections."""
    with _session() as (registry, _):
        collections = registry.browse(filter_option, sort_option)
        if not collections:
            typer.echo("No collections")
            return
        for collection in collections:
            status = "complete" if collection.is_complete else "in progress"
            typer.echo(
                f"{collection.id}  {collection.collection_date:%Y-%m-%d}  "
                f"{collection.locality} ({collection.collector_name})  "
                f"{len(collection.specimens)} specimens  [{status}]"
            )


@app.command()
def complete(collection_id: str = typer.Argument(..., help="Collection id")) -> None:
    """Mark a collection complete."""
    with _session() as (registry, _):
        collection = registry.find(collection_id)
        if collection is None:
            _fail(f"No collection with id {collection_id}")
        if not registry.mark_complete(collection):
            _fail("Could not save the collection")
        typer.echo(f"✅ Completed: {collection.locality}")


@app.command()
def delete(
    collection_id: str = typer.Argument(..., help="Collection id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a collection with all its specimens and media."""
    with _session() as (registry, _):
        collection = registry.find(collection_id)
        if collection is None:
            _fail(f"No collection with id {collection_id}")
        if not yes:
            typer.confirm(
                f"Delete {collection.locality!r} and its {len(collection.specimens)} specimens?",
                abort=True,
            )
        if not registry.delete(collection):
            _fail("Could not delete the collection")
        typer.echo(f"🗑️  Deleted: {collection.locality}")


@app.command()
def export(
    collection_id: str = typer.Argument(..., help="Collection id"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Export root (default: STROMCOLLECT_EXPORT_DIR)"
    ),
) -> None:
    """Export one collection."""
    config = get_config()
    with _session() as (registry, event_store):
        collection = registry.find(collection_id)
        if collection is None:
            _fail(f"No collection with id {collection_id}")
        manager = DataExportManager(output or config.EXPORT_DIR, config.EXPORT_PREFIX, event_store)
        result = asyncio.run(manager.export_collection(collection))
    _report_export(result)


@app.command("export-all")
def export_all(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Export root (default: STROMCOLLECT_EXPORT_DIR)"
    ),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Skip collections that fail instead of aborting"
    ),
) -> None:
    """Export every collection into one directory."""
    config = get_config()
    with _session() as (registry, event_store):
        manager = DataExportManager(output or config.EXPORT_DIR, config.EXPORT_PREFIX, event_store)
        result = asyncio.run(
            manager.export_all_collections(registry.collections, isolate_failures=keep_going)
        )
    _report_export(result)


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for"),
    scope: SearchScope = typer.Option(SearchScope.ALL, "--scope", help="What to search"),
) -> None:
    """Search collections, specimens and transcribed text."""
    with _session() as (registry, _):
        results = search_collections(registry.collections, query, scope)
    if not results:
        typer.echo("No results")
        return
    for result in results:
        typer.echo(f"[{result.type.value}] {result.title} {result.subtitle}: {result.match_text}")


if __name__ == "__main__":
    app()
