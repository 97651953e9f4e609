"""Parse a Logseq JSON graph export into domain models."""

import re
import uuid
from dataclasses import dataclass, field
from typing import Any

from qquery.models.node import Document, Node

_MARKER_RE = re.compile(
    r"^(TODO|DOING|DONE|LATER|NOW|WAITING|WAIT|CANCELED|CANCELLED|IN-PROGRESS|STARTED)(?=\s|$)"
)
_PAGE_REF_RE = re.compile(r"#?\[\[([^\[\]]+)\]\]")
_HASHTAG_RE = re.compile(r"(?<![\w#/\[])#([^\s#\[\],.!?;:\"'()]+)")

# Built-in properties that never become page references.
_HIDDEN_PROPERTIES = frozenset({
    "id",
    "collapsed",
    "heading",
    "background-color",
    "created-at",
    "updated-at",
    "icon",
    "public",
    "title",
    "filters",
    "logseq.order-list-type",
    "logseqorderlisttype",
})

# Properties whose values are comma-separated page names rather than free text.
_PAGE_LIST_PROPERTIES = frozenset({"tags", "alias"})


def parse_marker(content: str) -> str | None:
    """Return the status marker a block's content starts with, if any."""
    match = _MARKER_RE.match(content.lstrip())
    return match.group(1) if match else None


def parse_refs(text: str) -> list[str]:
    """Return referenced page names ([[page]], #[[page]], #tag) in order of appearance."""
    found: list[tuple[int, str]] = []
    for match in _PAGE_REF_RE.finditer(text):
        found.append((match.start(), match.group(1).strip()))
    for match in _HASHTAG_RE.finditer(text):
        found.append((match.start(), match.group(1)))
    return [name for _pos, name in sorted(found) if name]


def _property_refs(properties: dict[str, Any]) -> list[str]:
    names: list[str] = []
    for key, value in properties.items():
        if key.lower() in _HIDDEN_PROPERTIES:
            continue
        names.append(key)
        values = value if isinstance(value, list) else [value]
        for item in values:
            text = str(item)
            if key.lower() in _PAGE_LIST_PROPERTIES:
                names.extend(p.strip().strip("[]#") for p in text.split(","))
            else:
                names.extend(parse_refs(text))
    return [n for n in names if n]


@dataclass
class _GraphBuilder:
    """Assigns ids and materialises implicit pages while walking the export."""

    documents: list[Document] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    page_ids: dict[str, int] = field(default_factory=dict)
    seen_uuids: set[str] = field(default_factory=set)
    next_id: int = 1

    def allocate(self, node_uuid: str) -> int:
        if node_uuid in self.seen_uuids:
            msg = f"Duplicate block uuid: {node_uuid!r}"
            raise ValueError(msg)
        self.seen_uuids.add(node_uuid)
        node_id = self.next_id
        self.next_id += 1
        return node_id

    def add_page(
        self,
        original_name: str,
        *,
        page_uuid: str | None = None,
        is_journal: bool = False,
        properties: dict[str, Any] | None = None,
        children: tuple[str, ...] = (),
    ) -> int:
        name = original_name.lower()
        page_uuid = page_uuid or str(uuid.uuid5(uuid.NAMESPACE_URL, f"page:{name}"))
        page_id = self.allocate(page_uuid)
        self.page_ids[name] = page_id
        self.documents.append(
            Document(
                id=page_id,
                uuid=page_uuid,
                name=name,
                original_name=original_name,
                is_journal=is_journal,
            )
        )
        self.nodes.append(
            Node(
                id=page_id,
                uuid=page_uuid,
                document_id=page_id,
                parent_id=None,
                content=original_name,
                children=children,
                properties=properties or {},
            )
        )
        return page_id

    def page_id(self, original_name: str) -> int:
        """Return the id of a page, creating it when only referenced."""
        existing = self.page_ids.get(original_name.lower())
        if existing is not None:
            return existing
        page_id = self.add_page(original_name)
        self.ensure_namespace(original_name)
        return page_id

    def ensure_namespace(self, original_name: str) -> None:
        """Namespaced pages (a/b/c) imply their parent namespaces (a/b, a)."""
        if "/" in original_name:
            self.page_id(original_name.rsplit("/", 1)[0])


def _block_uuid(raw: dict[str, Any], page_name: str, position: str) -> str:
    return raw.get("id") or str(uuid.uuid5(uuid.NAMESPACE_URL, f"block:{page_name}:{position}"))


def parse_graph_data(data: dict[str, Any]) -> tuple[list[Document], list[Node]]:
    """Parse a Logseq JSON export into pages and nodes.

    Args:
        data: Raw export data ({"version": 1, "blocks": [page, ...]}).

    Returns:
        Tuple of (pages, nodes). Nodes include one root per page (also for pages
        that are only referenced) followed by blocks; every block carries its
        marker and its path refs (own refs, ancestor refs and its page).
    """
    raw_pages: list[dict[str, Any]] = data["blocks"]
    builder = _GraphBuilder()

    # First pass: declared pages, so their ids and uuids win over implicit ones.
    declared: list[tuple[int, dict[str, Any]]] = []
    for raw_page in raw_pages:
        original_name = raw_page.get("page-name") or raw_page.get("title")
        if not original_name:
            msg = f"Page without a name: {raw_page.get('id')!r}"
            raise ValueError(msg)
        if original_name.lower() in builder.page_ids:
            msg = f"Duplicate page: {original_name!r}"
            raise ValueError(msg)
        children = raw_page.get("children", [])
        child_uuids = tuple(
            _block_uuid(c, original_name, str(i)) for i, c in enumerate(children)
        )
        page_id = builder.add_page(
            original_name,
            page_uuid=raw_page.get("id"),
            is_journal=bool(raw_page.get("journal?", False)),
            properties=raw_page.get("properties") or {},
            children=child_uuids,
        )
        declared.append((page_id, raw_page))

    for _page_id, raw_page in declared:
        builder.ensure_namespace(raw_page.get("page-name") or raw_page.get("title"))

    # Second pass: depth-first over each page's blocks.
    for page_id, raw_page in declared:
        page_name = raw_page.get("page-name") or raw_page.get("title")
        stack: list[tuple[dict[str, Any], int, frozenset[int], str]] = [
            (child, page_id, frozenset(), str(i))
            for i, child in reversed(list(enumerate(raw_page.get("children", []))))
        ]
        while stack:
            raw, parent_id, inherited, position = stack.pop()
            node_uuid = _block_uuid(raw, page_name, position)
            node_id = builder.allocate(node_uuid)
            content = raw.get("content", "")
            properties = raw.get("properties") or {}
            marker = parse_marker(content)

            names = parse_refs(content) + _property_refs(properties)
            if marker:
                names.append(marker)
            own_refs = frozenset(builder.page_id(n) for n in names)
            path_refs = inherited | own_refs | {page_id}

            children = raw.get("children", [])
            builder.nodes.append(
                Node(
                    id=node_id,
                    uuid=node_uuid,
                    document_id=page_id,
                    parent_id=parent_id,
                    content=content,
                    children=tuple(
                        _block_uuid(c, page_name, f"{position}.{i}")
                        for i, c in enumerate(children)
                    ),
                    properties=properties,
                    marker=marker,
                    tag_refs=path_refs,
                )
            )
            for i, child in reversed(list(enumerate(children))):
                stack.append((child, node_id, path_refs, f"{position}.{i}"))

    return builder.documents, builder.nodes
