"""Collect open tasks and the tags they reference from a DocumentStore.

Every function here is best-effort: a failing store is logged and reads as
"nothing found", so a malformed graph degrades the result instead of failing it.
"""

from collections.abc import Awaitable, Sequence
from typing import TypeVar

from loguru import logger

from qquery.models.node import TASK_MARKERS, Document, Node, Tag
from qquery.protocols import DocumentStore

T = TypeVar("T")


async def _best_effort(read: Awaitable[list[T]], what: str) -> list[T]:
    try:
        return list(await read)
    except Exception:
        logger.exception("Document store query failed while fetching {}", what)
        return []


async def collect_tasks(store: DocumentStore) -> list[Node]:
    """Return every block whose marker is TODO or DOING."""
    tasks = await _best_effort(store.query_tasks(TASK_MARKERS), "tasks")
    logger.debug("Collected {} open tasks", len(tasks))
    return tasks


async def collect_task_tags(store: DocumentStore) -> list[Tag]:
    """Return the distinct pages referenced along the path of any open task."""
    return await _best_effort(store.query_task_tags(TASK_MARKERS), "task tags")


async def resolve_tags(store: DocumentStore, names: Sequence[str]) -> list[Tag]:
    """Resolve tag names to tags. Names without a page are dropped."""
    if not names:
        return []
    return await _best_effort(store.find_tags(names), "tags by name")


async def resolve_namespace_documents(
    store: DocumentStore, prefixes: Sequence[str]
) -> list[Document]:
    """Resolve namespace prefixes to the pages living under them."""
    if not prefixes:
        return []
    return await _best_effort(store.find_namespace_documents(prefixes), "namespace pages")
