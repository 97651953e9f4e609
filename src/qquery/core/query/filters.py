"""Narrow tasks by tag selection and exclusions; derive the remaining facets."""

import locale
from collections.abc import Iterable, Sequence

from qquery.core.query.collector import resolve_namespace_documents, resolve_tags
from qquery.models.node import TASK_MARKERS, FilterOutcome, FilterQuery, Node, Tag
from qquery.protocols import DocumentStore

# Marker pages every task references; never useful as a facet.
RESERVED_TAG_NAMES = frozenset(m.lower() for m in TASK_MARKERS)


def select_tags(tags: Sequence[Tag], names: Sequence[str]) -> tuple[Tag, ...]:
    """Return the tags named in names, in the order of names. Unknown names are dropped."""
    by_name = {t.name: t for t in tags}
    return tuple(by_name[n] for n in dict.fromkeys(names) if n in by_name)


def select_candidates(
    tasks: Sequence[Node],
    selected_tags: Sequence[Tag],
    *,
    ignored_tag_ids: Iterable[int] = (),
    ignored_document_ids: Iterable[int] = (),
) -> tuple[Node, ...]:
    """Keep tasks carrying every selected tag, no ignored tag and no ignored page."""
    required = frozenset(t.id for t in selected_tags)
    ignored_tags = frozenset(ignored_tag_ids)
    ignored_docs = frozenset(ignored_document_ids)
    return tuple(
        task
        for task in tasks
        if task.document_id not in ignored_docs
        and required <= task.tag_refs
        and not (task.tag_refs & ignored_tags)
    )


async def filter_tasks(
    store: DocumentStore,
    tasks: Sequence[Node],
    tags: Sequence[Tag],
    query: FilterQuery,
) -> FilterOutcome:
    """Apply the tag selection and the configured exclusions.

    Args:
        store: Store used to resolve selected pages no task references, and the
            ignored tag and namespace names.
        tasks: Open tasks, as collected.
        tags: Tags referenced by those tasks.
        query: Tag selection plus settings.
    """
    names = query.selected_names
    known = {t.name for t in tags}
    # A page no open task references still narrows the selection (to nothing).
    pages = await resolve_tags(store, [n for n in names if n not in known])
    selected_tags = select_tags([*tags, *pages], names)
    settings = query.settings
    ignored_tags = await resolve_tags(store, settings.tags_to_ignore)
    ignored_docs = await resolve_namespace_documents(store, settings.namespaces_to_ignore)
    candidates = select_candidates(
        tasks,
        selected_tags,
        ignored_tag_ids=(t.id for t in ignored_tags),
        ignored_document_ids=(d.id for d in ignored_docs),
    )
    return FilterOutcome(selected_tags=selected_tags, candidate_tasks=candidates)


def remaining_tags(
    tags: Sequence[Tag],
    query: FilterQuery,
    filtered_tasks: Sequence[Node],
) -> tuple[Tag, ...]:
    """Tags still useful for narrowing the filtered tasks, sorted by name."""
    selected = set(query.selected_names)
    property_names = {key.lower() for task in filtered_tasks for key in task.properties}
    hidden = set(query.settings.tags_to_hide)
    referenced = frozenset().union(*(task.tag_refs for task in filtered_tasks))

    facets = [
        tag
        for tag in tags
        if tag.name not in selected
        and tag.name not in property_names
        and tag.name not in RESERVED_TAG_NAMES
        and not tag.is_journal
        and tag.name not in hidden
        and tag.id in referenced
    ]
    return tuple(sorted(facets, key=lambda t: locale.strxfrm(t.name)))
