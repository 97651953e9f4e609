"""MCP server exposing task queries over a Logseq graph."""

import os
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from qquery.config import DEFAULT_DATA_DIR, QuerySettings, load_settings
from qquery.core.database.schema import migrate_schema
from qquery.core.database.store import SqliteStore
from qquery.core.query.assembler import assemble
from qquery.core.selection.directive import parse_directive, render_directive, toggle_tag
from qquery.core.tree.navigation import ancestors_of, breadcrumbs
from qquery.errors import CorruptTreeError
from qquery.models.node import FilterQuery, NoMatchingTasks, Node, Tag
from qquery.protocols import DocumentStore


def _tag_entry(tag: Tag) -> dict[str, Any]:
    return {"id": tag.id, "name": tag.name, "original_name": tag.original_name}


async def _task_entry(
    store: DocumentStore, task: Node, *, include_breadcrumbs: bool
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": task.id,
        "uuid": task.uuid,
        "marker": task.marker,
        "content": task.content,
        "document_id": task.document_id,
    }
    if include_breadcrumbs:
        entry["breadcrumbs"] = breadcrumbs(await ancestors_of(store, task))
    return entry


def _directive_or_none(names: list[str]) -> str | None:
    try:
        return render_directive(names)
    except ValueError:
        return None


# --- Core functions (testable without MCP context) ---


async def qquery_tasks(
    store: DocumentStore,
    *,
    tags: list[str] | None = None,
    directive: str | None = None,
    settings: QuerySettings | None = None,
    max_tasks: int | None = None,
    include_breadcrumbs: bool = False,
) -> dict[str, Any]:
    """Return the actionable tasks carrying every selected tag.

    Tasks that are prerequisites of another selected task (nested under it, or
    earlier in the same numbered list) are left out.

    Args:
        tags: Tag names to select (AND).
        directive: A {{renderer :qquery, ...}} directive to take the selection from.
        settings: Query settings (defaults to the settings file / environment).
        max_tasks: Override settings.max_tasks.
        include_breadcrumbs: Include each task's ancestor chain.
    """
    names = list(tags or [])
    if directive is not None:
        parsed = parse_directive(directive)
        if parsed is None:
            return {"error": "No {{renderer :qquery}} directive found."}
        names = parsed + [n for n in names if n not in parsed]

    if settings is None:
        try:
            settings = load_settings()
        except (OSError, ValueError) as e:
            logger.error("Cannot load settings: {}", e)
            return {"error": f"Cannot load settings: {e}"}
    if max_tasks is not None:
        settings = replace(settings, max_tasks=max(0, max_tasks))

    try:
        result = await assemble(store, FilterQuery(tuple(names), settings))
    except CorruptTreeError as e:
        return {"error": str(e)}

    output: dict[str, Any] = {
        "found": result.found,
        "selected_tags": [_tag_entry(t) for t in result.selected_tags],
        "directive": _directive_or_none(names),
    }
    if isinstance(result, NoMatchingTasks):
        output.update({"tasks": [], "remaining_tags": [], "count": 0, "overflow": 0})
        return output

    output.update({
        "tasks": [
            await _task_entry(store, t, include_breadcrumbs=include_breadcrumbs)
            for t in result.tasks
        ],
        "remaining_tags": [_tag_entry(t) for t in result.remaining_tags],
        "count": len(result.tasks),
        "overflow": len(result.overflow),
        "suppressed": len(result.dependent_ids),
    })
    return output


def qquery_documents(store: SqliteStore) -> dict[str, Any]:
    """List the archived pages with their open task counts."""
    rows = store.list_documents()
    return {
        "documents": [
            {
                "id": doc.id,
                "name": doc.original_name,
                "journal": doc.is_journal,
                "open_tasks": count,
            }
            for doc, count in rows
        ],
        "count": len(rows),
        "open_tasks": sum(count for _doc, count in rows),
    }


def qquery_directive(*, tags: list[str], toggle: str | None = None) -> dict[str, Any]:
    """Render the directive for a selection, optionally toggling one tag first."""
    names = toggle_tag(tags, toggle) if toggle else list(tags)
    try:
        return {"tags": names, "directive": render_directive(names)}
    except ValueError as e:
        return {"error": str(e)}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    conn: sqlite3.Connection
    archive_dir: Path

    @property
    def store(self) -> SqliteStore:
        return SqliteStore(self.conn)


def _resolve_archive_dir() -> Path:
    archive_dir_env = os.environ.get("QQUERY_ARCHIVE_DIR")
    return Path(archive_dir_env) if archive_dir_env else DEFAULT_DATA_DIR


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open database on startup, close on shutdown."""
    archive_dir = _resolve_archive_dir()
    archive_dir.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(archive_dir / "archive.db"))
    migrate_schema(conn)
    logger.info("Serving archive {}", archive_dir)
    try:
        yield ServerContext(conn=conn, archive_dir=archive_dir)
    finally:
        conn.close()


mcp_server = FastMCP(
    "qquery",
    instructions="""\
Logseq tasks (TODO/DOING blocks) filtered by tags.

1. Call qquery_tasks_tool with no tags to see every actionable task and the
   tags available for narrowing (remaining_tags).
2. Call it again with tags chosen from remaining_tags; tags are ANDed.

Tasks nested under another matching task, or earlier in the same numbered
list, are prerequisites and are suppressed: only the frontier is returned.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def qquery_tasks_tool(
    ctx: Context,
    tags: list[str] | None = None,
    directive: str | None = None,
    max_tasks: int | None = None,
    include_breadcrumbs: bool = True,
) -> dict[str, Any]:
    """Return actionable Logseq tasks carrying every selected tag.

    Args:
        tags: Tag names to select (ANDed).
        directive: A {{renderer :qquery, tag1, tag2}} directive to read the selection from.
        max_tasks: Max tasks to return (defaults to the configured maxTasks).
        include_breadcrumbs: Include each task's ancestor chain.
    """
    return await qquery_tasks(
        _ctx(ctx).store,
        tags=tags,
        directive=directive,
        max_tasks=max_tasks,
        include_breadcrumbs=include_breadcrumbs,
    )


@mcp_server.tool()
async def qquery_documents_tool(ctx: Context) -> dict[str, Any]:
    """List archived pages with their number of open tasks."""
    return qquery_documents(_ctx(ctx).store)


@mcp_server.tool()
async def qquery_directive_tool(tags: list[str], toggle: str | None = None) -> dict[str, Any]:
    """Render the {{renderer :qquery, ...}} directive for a tag selection.

    Args:
        tags: Currently selected tag names, in selection order.
        toggle: A tag to add (or remove, if already selected) first.
    """
    return qquery_directive(tags=tags, toggle=toggle)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from qquery.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
