"""DocumentStore backed by the SQLite graph archive."""

import json
import sqlite3
from collections.abc import Sequence

from qquery.models.node import TASK_MARKERS, Document, Node, Tag

_NODE_COLUMNS = "id, uuid, page_id, parent_id, content, marker, properties"


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" * len(values))


class SqliteStore:
    """Read-only view of an imported graph.

    Every read hits the database, so each query sees the archive as it is now.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _row_to_node(self, row: tuple) -> Node:
        node_id = row[0]
        children = self.conn.execute(
            "SELECT uuid FROM nodes WHERE parent_id = ? ORDER BY sort_order",
            (node_id,),
        ).fetchall()
        refs = self.conn.execute(
            "SELECT ref_id FROM path_refs WHERE node_id = ?", (node_id,)
        ).fetchall()
        return Node(
            id=node_id,
            uuid=row[1],
            document_id=row[2],
            parent_id=row[3],
            content=row[4],
            marker=row[5],
            properties=json.loads(row[6]),
            children=tuple(c[0] for c in children),
            tag_refs=frozenset(r[0] for r in refs),
        )

    async def get_node(self, node_id: int) -> Node | None:
        row = self.conn.execute(
            f"SELECT {_NODE_COLUMNS} FROM nodes WHERE id = ?", (node_id,)
        ).fetchone()
        return self._row_to_node(row) if row else None

    async def get_parent(self, node: Node) -> Node | None:
        if node.parent_id is None:
            return None
        return await self.get_node(node.parent_id)

    async def get_children(self, node: Node) -> list[Node]:
        rows = self.conn.execute(
            f"SELECT {_NODE_COLUMNS} FROM nodes WHERE parent_id = ? ORDER BY sort_order",
            (node.id,),
        ).fetchall()
        return [self._row_to_node(r) for r in rows]

    async def query_tasks(self, markers: Sequence[str]) -> list[Node]:
        rows = self.conn.execute(
            f"SELECT {_NODE_COLUMNS} FROM nodes "
            f"WHERE marker IN ({_placeholders(markers)}) ORDER BY id",
            list(markers),
        ).fetchall()
        return [self._row_to_node(r) for r in rows]

    async def query_task_tags(self, markers: Sequence[str]) -> list[Tag]:
        rows = self.conn.execute(
            "SELECT DISTINCT p.id, p.name, p.original_name, p.is_journal "
            "FROM nodes b "
            "JOIN path_refs r ON r.node_id = b.id "
            "JOIN nodes p ON p.id = r.ref_id "
            f"WHERE b.marker IN ({_placeholders(markers)}) AND p.name IS NOT NULL "
            "ORDER BY p.id",
            list(markers),
        ).fetchall()
        return [Tag(id=r[0], name=r[1], original_name=r[2], is_journal=bool(r[3])) for r in rows]

    async def find_tags(self, names: Sequence[str]) -> list[Tag]:
        if not names:
            return []
        rows = self.conn.execute(
            "SELECT id, name, original_name, is_journal FROM nodes "
            f"WHERE name IN ({_placeholders(names)}) ORDER BY id",
            [n.lower() for n in names],
        ).fetchall()
        return [Tag(id=r[0], name=r[1], original_name=r[2], is_journal=bool(r[3])) for r in rows]

    async def find_namespace_documents(self, prefixes: Sequence[str]) -> list[Document]:
        if not prefixes:
            return []
        # substr() rather than LIKE so that "_" and "%" in names match literally
        clauses = " OR ".join("substr(name, 1, ?) = ?" for _ in prefixes)
        params: list[str | int] = []
        for prefix in prefixes:
            stem = prefix.lower().rstrip("/") + "/"
            params.extend([len(stem), stem])
        rows = self.conn.execute(
            "SELECT id, uuid, name, original_name, is_journal FROM nodes "
            f"WHERE parent_id IS NULL AND ({clauses}) ORDER BY id",
            params,
        ).fetchall()
        return [
            Document(id=r[0], uuid=r[1], name=r[2], original_name=r[3], is_journal=bool(r[4]))
            for r in rows
        ]

    def list_documents(self) -> list[tuple[Document, int]]:
        """Return every page with the number of open tasks it holds."""
        rows = self.conn.execute(
            "SELECT p.id, p.uuid, p.name, p.original_name, p.is_journal, "
            "COUNT(b.id) "
            "FROM nodes p LEFT JOIN nodes b "
            f"ON b.page_id = p.id AND b.marker IN ({_placeholders(TASK_MARKERS)}) "
            "WHERE p.parent_id IS NULL "
            "GROUP BY p.id ORDER BY p.name",
            list(TASK_MARKERS),
        ).fetchall()
        return [
            (
                Document(id=r[0], uuid=r[1], name=r[2], original_name=r[3], is_journal=bool(r[4])),
                r[5],
            )
            for r in rows
        ]
