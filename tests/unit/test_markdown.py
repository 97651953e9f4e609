"""Tests for markdown rendering of query results."""

from qquery.config import QuerySettings
from qquery.core.tree.markdown import render_result_as_markdown
from qquery.models.node import FilterQuery, NoMatchingTasks, Node, QueryResult, Tag


def _task(node_id: int, content: str) -> Node:
    return Node(id=node_id, uuid=f"b{node_id}", document_id=1, parent_id=1, content=content,
                marker="TODO")


def test_render_tasks_with_selection_and_facets() -> None:
    result = QueryResult(
        selected_tags=(Tag(2, "work", "Work"),),
        remaining_tags=(Tag(3, "big project", "Big Project"), Tag(4, "home", "home")),
        tasks=(_task(10, "TODO write report\nwith details"), _task(11, "DOING review")),
    )

    assert render_result_as_markdown(result) == (
        "Selected: #Work\n"
        "Tags: #[[Big Project]] #home\n"
        "\n"
        "- TODO write report\n"
        "- DOING review\n"
    )


def test_render_overflow_summary() -> None:
    result = QueryResult(
        selected_tags=(),
        remaining_tags=(),
        tasks=(_task(10, "TODO a"),),
        overflow=(_task(11, "TODO b"),),
    )
    assert render_result_as_markdown(result).endswith("- ... (1 more task)\n")

    result = QueryResult(
        selected_tags=(),
        remaining_tags=(),
        tasks=(),
        overflow=(_task(11, "TODO b"), _task(12, "TODO c")),
    )
    assert render_result_as_markdown(result) == "\n- ... (2 more tasks)\n"


def test_render_no_matching_tasks() -> None:
    result = NoMatchingTasks(
        selected_tags=(Tag(5, "alpha", "alpha"),),
        query=FilterQuery(("alpha",), QuerySettings()),
    )
    assert render_result_as_markdown(result) == "Selected: #alpha\nNo matching tasks.\n"
