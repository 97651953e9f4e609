"""CLI for qquery (import, task queries, MCP server)."""

import asyncio
import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from qquery.config import DEFAULT_DATA_DIR, QuerySettings, load_settings
from qquery.core.database.schema import get_metadata, migrate_schema
from qquery.core.database.store import SqliteStore
from qquery.core.importer.loader import import_graph_file
from qquery.core.query.assembler import assemble
from qquery.core.selection.directive import parse_directive
from qquery.core.tree.markdown import render_result_as_markdown
from qquery.errors import CorruptTreeError
from qquery.logging_config import configure_logging
from qquery.models.node import FilterQuery, NoMatchingTasks
from qquery.protocols import DocumentStore

app = typer.Typer(help="qquery: the actionable frontier of your Logseq tasks, filtered by tag.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Archive database directory"),
]
TagOption = Annotated[
    list[str] | None,
    typer.Option("--tag", "-t", help="Select a tag (repeatable, ANDed)"),
]
DirectiveOption = Annotated[
    str | None,
    typer.Option("--directive", help="Take the selection from a {{renderer :qquery, ...}} text"),
]
ApiOption = Annotated[
    bool,
    typer.Option("--api", help="Query the running Logseq app instead of the archive"),
]
SettingsOption = Annotated[
    Path | None,
    typer.Option("--settings", help="Settings JSON file (maxTasks, tagsToHide, ...)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@app.command(name="import")
def import_cmd(
    source_file: Path = typer.Argument(..., help="Logseq JSON export (Export graph > JSON)"),
    data_dir: DataDirOption = None,
    force: bool = typer.Option(False, "--force", "-f", help="Re-import an unchanged file"),
) -> None:
    """Import a Logseq graph export into the archive database."""
    if not source_file.exists():
        logger.error("Graph export not found: {}", source_file)
        raise typer.Exit(1)

    dst = data_dir or DEFAULT_DATA_DIR
    dst.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(dst / "archive.db"))
    try:
        migrate_schema(conn)
        try:
            stats = import_graph_file(conn, source_file, force=force)
        except (ValueError, KeyError) as e:
            logger.error("Malformed graph export {}: {}", source_file, e)
            raise typer.Exit(1) from None
        if stats.skipped:
            typer.echo("Graph unchanged since last import, skipped (use --force)")
        else:
            typer.echo(
                f"Imported {stats.pages_imported} pages "
                f"({stats.blocks_imported} blocks, {stats.tasks_imported} open tasks)"
            )
    finally:
        conn.close()


def _open_db(data_dir: Path | None) -> sqlite3.Connection:
    """Open the archive database, raising if it doesn't exist."""
    dst = data_dir or DEFAULT_DATA_DIR
    db_path = dst / "archive.db"
    if not db_path.exists():
        logger.error("Archive database not found: {}. Run 'import' first.", db_path)
        raise typer.Exit(1)
    return sqlite3.connect(str(db_path))


@contextmanager
def _open_store(data_dir: Path | None, *, api: bool) -> Iterator[DocumentStore]:
    if api:
        from qquery.api import LogseqApi
        from qquery.core.store.api_store import ApiStore

        try:
            client = LogseqApi()
        except RuntimeError as e:
            logger.error("{}", e)
            raise typer.Exit(1) from None
        yield ApiStore(client)
        return

    conn = _open_db(data_dir)
    try:
        yield SqliteStore(conn)
    finally:
        conn.close()


def _selection(tags: list[str] | None, directive: str | None) -> list[str]:
    names = list(tags or [])
    if directive is None:
        return names
    parsed = parse_directive(directive)
    if parsed is None:
        typer.echo("No {{renderer :qquery}} directive found.")
        raise typer.Exit(1)
    return parsed + [n for n in names if n not in parsed]


def _settings(path: Path | None, max_tasks: int | None) -> QuerySettings:
    try:
        settings = load_settings(path)
    except (OSError, ValueError) as e:
        logger.error("Cannot load settings: {}", e)
        raise typer.Exit(1) from None
    if max_tasks is not None:
        settings = replace(settings, max_tasks=max_tasks)
    return settings


@app.command()
def tasks(
    tag: TagOption = None,
    directive: DirectiveOption = None,
    max_tasks: Annotated[
        int | None,
        typer.Option("--max-tasks", "-n", min=0, help="Max tasks to show"),
    ] = None,
    api: ApiOption = False,
    settings_file: SettingsOption = None,
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the actionable tasks carrying every selected tag."""
    names = _selection(tag, directive)
    settings = _settings(settings_file, max_tasks)

    with _open_store(data_dir, api=api) as store:
        if output_json:
            from qquery.mcp.server import qquery_tasks

            data = asyncio.run(
                qquery_tasks(store, tags=names, settings=settings, include_breadcrumbs=True)
            )
            typer.echo(json.dumps(data, indent=2))
            if "error" in data:
                raise typer.Exit(2)
            if not data["found"]:
                raise typer.Exit(1)
            return

        try:
            result = asyncio.run(assemble(store, FilterQuery(tuple(names), settings)))
        except CorruptTreeError as e:
            logger.error("Outline is inconsistent, query aborted: {}", e)
            raise typer.Exit(2) from None

    typer.echo(render_result_as_markdown(result), nl=False)
    if isinstance(result, NoMatchingTasks):
        raise typer.Exit(1)


@app.command()
def tags(
    tag: TagOption = None,
    directive: DirectiveOption = None,
    api: ApiOption = False,
    settings_file: SettingsOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """List the tags that would narrow the current selection further."""
    names = _selection(tag, directive)
    settings = _settings(settings_file, None)

    with _open_store(data_dir, api=api) as store:
        try:
            result = asyncio.run(assemble(store, FilterQuery(tuple(names), settings)))
        except CorruptTreeError as e:
            logger.error("Outline is inconsistent, query aborted: {}", e)
            raise typer.Exit(2) from None

    if isinstance(result, NoMatchingTasks):
        typer.echo("No matching tasks.")
        raise typer.Exit(1)
    for t in result.remaining_tags:
        typer.echo(t.original_name)


@app.command()
def documents(data_dir: DataDirOption = None) -> None:
    """List archived pages and their open task counts."""
    conn = _open_db(data_dir)
    try:
        rows = SqliteStore(conn).list_documents()
        source = get_metadata(conn, "graph_source")
        typer.echo(f"{len(rows)} pages" + (f" from {source}" if source else "") + ":\n")
        for doc, count in rows:
            if count:
                typer.echo(f"  {doc.original_name} - {count} open tasks  [id={doc.id}]")
    finally:
        conn.close()


@app.command()
def directive(
    names: Annotated[list[str] | None, typer.Argument(help="Selected tag names")] = None,
    toggle: Annotated[
        str | None,
        typer.Option("--toggle", help="Add this tag, or remove it if already selected"),
    ] = None,
) -> None:
    """Print the {{renderer :qquery, ...}} directive for a selection."""
    from qquery.mcp.server import qquery_directive

    data = qquery_directive(tags=list(names or []), toggle=toggle)
    if "error" in data:
        typer.echo(data["error"])
        raise typer.Exit(1)
    typer.echo(data["directive"])


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from qquery.mcp.server import run_mcp_server

    run_mcp_server()
