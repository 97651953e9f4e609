"""Run one task query end to end."""

from loguru import logger

from qquery.core.query.collector import collect_task_tags, collect_tasks
from qquery.core.query.filters import filter_tasks, remaining_tags
from qquery.core.tree.dependency import dependent_task_ids
from qquery.models.node import FilterQuery, NoMatchingTasks, QueryResult
from qquery.protocols import DocumentStore


async def assemble(store: DocumentStore, query: FilterQuery) -> QueryResult | NoMatchingTasks:
    """Collect, filter and order tasks for a tag selection.

    Prerequisite tasks are dropped; the rest keep their collected order and are
    split at settings.max_tasks into tasks and overflow. Facets are derived from
    the whole uncapped list.

    Returns:
        NoMatchingTasks when no task passes the filters, a QueryResult otherwise.

    Raises:
        CorruptTreeError: The outline is inconsistent; the query is aborted.
    """
    tasks = await collect_tasks(store)
    tags = await collect_task_tags(store)

    outcome = await filter_tasks(store, tasks, tags, query)
    if not outcome.candidate_tasks:
        logger.info(
            "No tasks match {}",
            ", ".join(t.original_name for t in outcome.selected_tags) or "the filters",
        )
        return NoMatchingTasks(selected_tags=outcome.selected_tags, query=query)

    dependents = await dependent_task_ids(store, outcome.candidate_tasks)
    filtered = tuple(t for t in outcome.candidate_tasks if t.id not in dependents)
    limit = query.settings.max_tasks

    return QueryResult(
        selected_tags=outcome.selected_tags,
        remaining_tags=remaining_tags(tags, query, filtered),
        tasks=filtered[:limit],
        overflow=filtered[limit:],
        dependent_ids=frozenset(dependents),
    )
