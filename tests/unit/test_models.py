"""Tests for domain models."""

import pytest

from qquery.config import QuerySettings
from qquery.models.node import Document, FilterQuery, NoMatchingTasks, Node, QueryResult


def test_document_is_frozen() -> None:
    doc = Document(id=1, uuid="u1", name="inbox", original_name="Inbox")
    with pytest.raises(AttributeError):
        doc.name = "changed"  # type: ignore[misc]


def test_node_is_task_only_for_open_markers() -> None:
    base = {"id": 2, "uuid": "b", "document_id": 1, "parent_id": 1}
    assert Node(**base, marker="TODO").is_task
    assert Node(**base, marker="DOING").is_task
    assert not Node(**base, marker="DONE").is_task
    assert not Node(**base).is_task


def test_node_is_document_when_parentless() -> None:
    assert Node(id=1, uuid="p", document_id=1, parent_id=None).is_document
    assert not Node(id=2, uuid="b", document_id=1, parent_id=1).is_document


@pytest.mark.parametrize("key", ["logseq.order-list-type", "logseqOrderListType"])
def test_node_is_ordered_accepts_both_property_spellings(key: str) -> None:
    node = Node(id=2, uuid="b", document_id=1, parent_id=1, properties={key: "number"})
    assert node.is_ordered


def test_node_is_not_ordered_for_other_list_types() -> None:
    node = Node(
        id=2, uuid="b", document_id=1, parent_id=1,
        properties={"logseq.order-list-type": "bullet"},
    )
    assert not node.is_ordered


def test_node_equality_ignores_properties() -> None:
    a = Node(id=2, uuid="b", document_id=1, parent_id=1, properties={"x": 1})
    b = Node(id=2, uuid="b", document_id=1, parent_id=1)
    assert a == b
    assert hash(a) == hash(b)


def test_filter_query_canonicalises_selected_names() -> None:
    query = FilterQuery(selected_tag_names=(" Work ", "", "HOME"))
    assert query.selected_names == ("work", "home")


def test_result_found_flags() -> None:
    query = FilterQuery(settings=QuerySettings())
    assert QueryResult(selected_tags=(), remaining_tags=(), tasks=()).found
    assert not NoMatchingTasks(selected_tags=(), query=query).found
