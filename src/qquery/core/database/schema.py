"""SQLite schema creation and migration for the graph archive."""

import sqlite3

SCHEMA_VERSION = 1

# Pages and blocks share one table: a page is the row with parent_id NULL and
# page_id equal to its own id.
_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS nodes (
    id INTEGER PRIMARY KEY,
    uuid TEXT NOT NULL UNIQUE,
    page_id INTEGER NOT NULL,
    parent_id INTEGER,
    name TEXT,
    original_name TEXT,
    is_journal INTEGER NOT NULL DEFAULT 0,
    content TEXT NOT NULL DEFAULT '',
    marker TEXT,
    properties TEXT NOT NULL DEFAULT '{}',
    sort_order INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (page_id) REFERENCES nodes(id),
    FOREIGN KEY (parent_id) REFERENCES nodes(id)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_nodes_name ON nodes(name) WHERE name IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_nodes_parent ON nodes(parent_id, sort_order);
CREATE INDEX IF NOT EXISTS idx_nodes_marker ON nodes(marker);

CREATE TABLE IF NOT EXISTS path_refs (
    node_id INTEGER NOT NULL,
    ref_id INTEGER NOT NULL,
    PRIMARY KEY (node_id, ref_id),
    FOREIGN KEY (node_id) REFERENCES nodes(id),
    FOREIGN KEY (ref_id) REFERENCES nodes(id)
);

CREATE INDEX IF NOT EXISTS idx_path_refs_ref ON path_refs(ref_id);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sync_state (
    source TEXT PRIMARY KEY,
    last_import_at INTEGER,
    source_hash TEXT
);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes."""
    conn.executescript(_SCHEMA_SQL)
    set_metadata(conn, "schema_version", str(SCHEMA_VERSION))


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)


def get_metadata(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_metadata(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        (key, value),
    )
    conn.commit()
