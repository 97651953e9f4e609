"""Shared test fixtures."""

import json
import sqlite3
from pathlib import Path

import pytest

from qquery.core.database.schema import create_schema
from qquery.core.importer.loader import import_graph_file
from tests.unit.fakes import FakeStore
from tests.unit.sample_graph import GRAPH_EXPORT


@pytest.fixture
def graph_file(tmp_path: Path) -> Path:
    """Write the sample graph export to disk."""
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(GRAPH_EXPORT))
    return path


@pytest.fixture
def populated_db(graph_file: Path) -> sqlite3.Connection:
    """Return an in-memory DB with the sample graph imported."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    import_graph_file(conn, graph_file)
    return conn


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
