"""Domain models for task queries over a Logseq graph."""

from dataclasses import dataclass, field
from typing import Any

from qquery.config import QuerySettings

# Status markers that make a block a task the engine filters and orders.
TASK_MARKERS: tuple[str, ...] = ("TODO", "DOING")

# Property keys that mark a block as a numbered list item. Older hosts expose the
# dotted key, the plugin API exposes the camelCase one.
ORDERED_LIST_KEYS: tuple[str, ...] = ("logseq.order-list-type", "logseqOrderListType")


@dataclass(frozen=True)
class Node:
    """A block (or page root) in a document tree."""

    id: int
    uuid: str
    document_id: int
    parent_id: int | None
    content: str = ""
    children: tuple[str, ...] = ()
    properties: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    marker: str | None = None
    tag_refs: frozenset[int] = frozenset()

    @property
    def is_document(self) -> bool:
        return self.parent_id is None

    @property
    def is_task(self) -> bool:
        return self.marker in TASK_MARKERS

    @property
    def is_ordered(self) -> bool:
        """True when the block renders as a numbered list item."""
        return any(self.properties.get(key) == "number" for key in ORDERED_LIST_KEYS)


@dataclass(frozen=True)
class Document:
    """A page: the root of an outline tree."""

    id: int
    uuid: str
    name: str
    original_name: str
    is_journal: bool = False


@dataclass(frozen=True)
class Tag:
    """A page referenced by other blocks as a label."""

    id: int
    name: str
    original_name: str
    is_journal: bool = False


@dataclass(frozen=True)
class FilterQuery:
    """Tag selection (in selection order) plus the settings it runs under."""

    selected_tag_names: tuple[str, ...] = ()
    settings: QuerySettings = field(default_factory=QuerySettings)

    @property
    def selected_names(self) -> tuple[str, ...]:
        """Selected names in canonical (lowercase) form."""
        return tuple(name.strip().lower() for name in self.selected_tag_names if name.strip())


@dataclass(frozen=True)
class FilterOutcome:
    """Selected tags and the tasks matching them, before dependency filtering."""

    selected_tags: tuple[Tag, ...]
    candidate_tasks: tuple[Node, ...]


@dataclass(frozen=True)
class QueryResult:
    """The actionable tasks for a query, plus facets for further narrowing."""

    selected_tags: tuple[Tag, ...]
    remaining_tags: tuple[Tag, ...]
    tasks: tuple[Node, ...]
    overflow: tuple[Node, ...] = ()
    dependent_ids: frozenset[int] = frozenset()

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class NoMatchingTasks:
    """No task matched the selection and exclusion filters."""

    selected_tags: tuple[Tag, ...]
    query: FilterQuery

    @property
    def found(self) -> bool:
        return False
