"""Tests for MCP tool core functions."""

import asyncio
import sqlite3
from pathlib import Path

import pytest

from qquery.config import QuerySettings
from qquery.core.database.store import SqliteStore
from qquery.mcp.server import qquery_directive, qquery_documents, qquery_tasks
from tests.unit.fakes import FakeStore

SETTINGS = QuerySettings()


def test_qquery_tasks_returns_frontier(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(qquery_tasks(store, settings=SETTINGS))

    assert result["found"]
    contents = [t["content"].split("\n")[0] for t in result["tasks"]]
    assert contents == [
        "TODO tag the release",
        "DOING fix flaky test #ci",
        "TODO buy milk #home",
        "TODO call plumber #home",
        "TODO pick up parcel [[Errands]]",
        "TODO migrate legacy wiki #docs",
    ]
    assert result["suppressed"] == 2
    assert result["directive"] == "{{renderer :qquery}}"


def test_qquery_tasks_facets(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(qquery_tasks(store, settings=SETTINGS))

    assert [t["name"] for t in result["remaining_tags"]] == [
        "archive/old",
        "ci",
        "docs",
        "errands",
        "home",
        "project/alpha",
    ]


def test_qquery_tasks_with_tags_and_breadcrumbs(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(
        qquery_tasks(store, tags=["Project/Alpha"], settings=SETTINGS, include_breadcrumbs=True)
    )

    assert [t["original_name"] for t in result["selected_tags"]] == ["Project/Alpha"]
    by_uuid = {t["uuid"]: t for t in result["tasks"]}
    assert set(by_uuid) == {"b-tag", "b-flaky"}
    assert by_uuid["b-tag"]["breadcrumbs"] == "Project/Alpha > Plan release"
    assert result["directive"] == "{{renderer :qquery, Project/Alpha}}"


def test_qquery_tasks_respects_ignored_namespaces(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    settings = QuerySettings(namespaces_to_ignore=("archive",))
    result = asyncio.run(qquery_tasks(store, tags=["docs"], settings=settings))

    # alone in the selection, the changelog task is no longer anyone's prerequisite
    assert [t["uuid"] for t in result["tasks"]] == ["b-changelog"]
    assert result["suppressed"] == 0


def test_qquery_tasks_reads_directive(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(
        qquery_tasks(store, directive="{{renderer :qquery, home}}", settings=SETTINGS)
    )

    assert result["count"] == 2
    assert [t["name"] for t in result["selected_tags"]] == ["home"]


def test_qquery_tasks_missing_directive(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(qquery_tasks(store, directive="no directive", settings=SETTINGS))
    assert "error" in result


def test_qquery_tasks_max_tasks_override(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(qquery_tasks(store, settings=SETTINGS, max_tasks=2))

    assert result["count"] == 2
    assert result["overflow"] == 4


def test_qquery_tasks_no_results(populated_db: sqlite3.Connection) -> None:
    store = SqliteStore(populated_db)
    result = asyncio.run(qquery_tasks(store, tags=["done"], settings=SETTINGS))

    assert result["found"] is False
    assert result["count"] == 0
    assert [t["name"] for t in result["selected_tags"]] == ["done"]


def test_qquery_tasks_reports_corrupt_tree(store: FakeStore) -> None:
    page = store.add_page("D")
    a = store.add_block(page, "a")
    b = store.add_block(a, "b")
    store.add_block(b, "TODO c")
    store.records[a.id].parent_id = b.id

    result = asyncio.run(qquery_tasks(store, settings=SETTINGS))

    assert "Cycle" in result["error"]


def test_qquery_tasks_unencodable_selection_has_no_directive(store: FakeStore) -> None:
    store.add_block(store.add_page("D"), "TODO a", tags=["x,y"])
    result = asyncio.run(qquery_tasks(store, tags=["x,y"], settings=SETTINGS))

    assert result["found"]
    assert result["directive"] is None


def test_qquery_documents(populated_db: sqlite3.Connection) -> None:
    result = qquery_documents(SqliteStore(populated_db))

    counts = {d["name"]: d["open_tasks"] for d in result["documents"]}
    assert counts["Project/Alpha"] == 4
    assert result["open_tasks"] == 8
    assert result["count"] == 13


def test_qquery_directive_toggle() -> None:
    assert qquery_directive(tags=["work"], toggle="home") == {
        "tags": ["work", "home"],
        "directive": "{{renderer :qquery, work, home}}",
    }
    assert qquery_directive(tags=["work", "home"], toggle="work")["tags"] == ["home"]


def test_qquery_directive_error() -> None:
    assert "error" in qquery_directive(tags=["a}b"])


def test_qquery_tasks_reports_bad_settings(
    store: FakeStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    store.add_block(store.add_page("D"), "TODO a")
    monkeypatch.setenv("QQUERY_MAX_TASKS", "lots")

    result = asyncio.run(qquery_tasks(store))

    assert "Cannot load settings" in result["error"]


def test_qquery_tasks_reports_malformed_settings_file(
    store: FakeStore, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    bad = tmp_path / "settings.json"
    bad.write_text("{not json")
    monkeypatch.setattr("qquery.config.SETTINGS_FILES", [bad])
    monkeypatch.delenv("QQUERY_MAX_TASKS", raising=False)

    result = asyncio.run(qquery_tasks(store))

    assert "error" in result
