"""Tests for the SQLite-backed document store."""

import asyncio
import sqlite3

from qquery.core.database.store import SqliteStore
from qquery.models.node import TASK_MARKERS, Node


def _by_uuid(store: SqliteStore, uuid: str) -> Node:
    row = store.conn.execute("SELECT id FROM nodes WHERE uuid = ?", (uuid,)).fetchone()
    node = asyncio.run(store.get_node(row[0]))
    assert node is not None
    return node


def test_query_tasks_returns_open_tasks_in_id_order(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    tasks = asyncio.run(store.query_tasks(TASK_MARKERS))

    assert [t.uuid for t in tasks] == [
        "b-changelog",
        "b-tag",
        "b-flaky",
        "b-repro",
        "b-milk",
        "b-plumber",
        "b-journal",
        "b-legacy",
    ]
    assert all(t.is_task for t in tasks)


def test_get_node_restores_tree_fields(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    plan = _by_uuid(store, "b-plan")
    changelog = _by_uuid(store, "b-changelog")

    assert plan.children == ("b-changelog", "b-tag")
    assert changelog.parent_id == plan.id
    assert changelog.is_ordered
    assert changelog.marker == "TODO"
    assert plan.document_id in changelog.tag_refs


def test_get_node_unknown_id(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    assert asyncio.run(store.get_node(9999)) is None


def test_get_parent_walks_to_page(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    changelog = _by_uuid(store, "b-changelog")

    plan = asyncio.run(store.get_parent(changelog))
    assert plan is not None
    page = asyncio.run(store.get_parent(plan))
    assert page is not None
    assert page.uuid == "p-alpha"
    assert page.is_document
    assert asyncio.run(store.get_parent(page)) is None


def test_get_children_in_outline_order(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    errands = _by_uuid(store, "p-errands")
    children = asyncio.run(store.get_children(errands))
    assert [c.uuid for c in children] == ["b-milk", "b-plumber", "b-done"]


def test_query_task_tags_covers_task_paths_only(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    names = {t.name for t in asyncio.run(store.query_task_tags(TASK_MARKERS))}

    assert {"docs", "ci", "home", "errands", "project/alpha", "todo", "doing"} <= names
    # referenced only by a DONE block
    assert "done" not in names
    assert "project" not in names


def test_query_task_tags_flags_journals(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    tags = {t.name: t for t in asyncio.run(store.query_task_tags(TASK_MARKERS))}
    assert tags["oct 18th, 2026"].is_journal
    assert not tags["errands"].is_journal


def test_find_tags_is_case_insensitive(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    tags = asyncio.run(store.find_tags(["Errands", "missing"]))
    assert [t.original_name for t in tags] == ["Errands"]
    assert asyncio.run(store.find_tags([])) == []


def test_find_namespace_documents_excludes_prefix_page(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)

    docs = asyncio.run(store.find_namespace_documents(["Archive"]))
    assert [d.original_name for d in docs] == ["Archive/Old"]

    docs = asyncio.run(store.find_namespace_documents(["project/"]))
    assert [d.original_name for d in docs] == ["Project/Alpha"]


def test_find_namespace_documents_matches_literally(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    assert asyncio.run(store.find_namespace_documents(["arch%"])) == []


def test_list_documents_counts_open_tasks(populated_db: sqlite3.Connection) -> None:
    rows = SqliteStore(populated_db).list_documents()
    counts = {doc.name: count for doc, count in rows}
    assert counts["project/alpha"] == 4
    assert counts["errands"] == 2
    assert counts["docs"] == 0
    assert [doc.name for doc, _ in rows] == sorted(counts)
