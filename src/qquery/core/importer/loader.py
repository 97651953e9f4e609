"""Import a Logseq JSON graph export into the SQLite archive."""

import hashlib
import json
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from qquery.core.database.schema import set_metadata
from qquery.core.importer.json_reader import parse_graph_data
from qquery.models.node import Document, Node


@dataclass(frozen=True)
class ImportStats:
    """Summary of an import operation."""

    pages_imported: int
    blocks_imported: int
    tasks_imported: int
    skipped: bool = False


def _file_hash(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _should_reimport(conn: sqlite3.Connection, source: str, source_hash: str) -> bool:
    row = conn.execute(
        "SELECT source_hash FROM sync_state WHERE source = ?",
        (source,),
    ).fetchone()
    if row is None:
        return True
    return row[0] != source_hash


def insert_nodes(
    conn: sqlite3.Connection, documents: list[Document], nodes: list[Node]
) -> None:
    pages = {d.id: d for d in documents}
    by_uuid = {n.uuid: n for n in nodes}
    sort_orders = {
        by_uuid[child].id: i
        for n in nodes
        for i, child in enumerate(n.children)
        if child in by_uuid
    }
    conn.executemany(
        """INSERT INTO nodes
           (id, uuid, page_id, parent_id, name, original_name, is_journal,
            content, marker, properties, sort_order)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        [
            (
                n.id, n.uuid, n.document_id, n.parent_id,
                pages[n.id].name if n.id in pages else None,
                pages[n.id].original_name if n.id in pages else None,
                int(pages[n.id].is_journal) if n.id in pages else 0,
                n.content, n.marker, json.dumps(n.properties, sort_keys=True),
                sort_orders.get(n.id, 0),
            )
            for n in nodes
        ],
    )
    conn.executemany(
        "INSERT INTO path_refs (node_id, ref_id) VALUES (?, ?)",
        [(n.id, ref) for n in nodes for ref in sorted(n.tag_refs)],
    )


def import_graph_file(
    conn: sqlite3.Connection,
    source_file: Path,
    *,
    force: bool = False,
) -> ImportStats:
    """Replace the archive contents with a Logseq JSON export.

    Args:
        conn: SQLite connection (schema must already exist).
        source_file: The exported graph (Export graph > Export as JSON).
        force: Re-import even if the file hasn't changed.

    Returns:
        ImportStats with counts of imported pages, blocks and tasks.
    """
    if not source_file.is_file():
        msg = f"Graph export not found: {source_file}"
        raise FileNotFoundError(msg)

    source = str(source_file.resolve())
    source_hash = _file_hash(source_file)
    if not force and not _should_reimport(conn, source, source_hash):
        logger.debug("Skipping {}: unchanged since last import", source_file.name)
        return ImportStats(pages_imported=0, blocks_imported=0, tasks_imported=0, skipped=True)

    data = json.loads(source_file.read_text(encoding="utf-8"))
    documents, nodes = parse_graph_data(data)

    try:
        # One archive holds one graph.
        conn.execute("DELETE FROM path_refs")
        conn.execute("DELETE FROM nodes")
        conn.execute("DELETE FROM sync_state")

        insert_nodes(conn, documents, nodes)

        now_ms = int(time.time() * 1000)
        conn.execute(
            """INSERT OR REPLACE INTO sync_state
               (source, last_import_at, source_hash)
               VALUES (?, ?, ?)""",
            (source, now_ms, source_hash),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        logger.exception("Failed to import {}", source_file.name)
        raise

    set_metadata(conn, "graph_source", source)

    blocks = [n for n in nodes if not n.is_document]
    stats = ImportStats(
        pages_imported=len(documents),
        blocks_imported=len(blocks),
        tasks_imported=sum(1 for n in blocks if n.is_task),
    )
    logger.info(
        "Import complete: {} pages, {} blocks, {} open tasks",
        stats.pages_imported, stats.blocks_imported, stats.tasks_imported,
    )
    return stats
