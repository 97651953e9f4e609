"""DocumentStore backed by a running Logseq instance (HTTP API server).

Entities arrive in two spellings depending on the call: plugin methods
(getBlock, getPage) use camelCase keys, datascript pulls keep the attribute
names ("path-refs", "original-name"). Both are accepted.
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from qquery.models.node import Document, Node, Tag
from qquery.protocols import ApiProtocol


def _get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _ref_id(value: Any) -> int | None:
    if isinstance(value, dict):
        return value.get("id")
    return value


def _edn_set(values: Sequence[str]) -> str:
    return "#{" + " ".join(json.dumps(v, ensure_ascii=False) for v in values) + "}"


def _child_uuid(child: Any) -> str:
    # getBlock lists children as ["uuid", "..."] pairs unless includeChildren is set
    if isinstance(child, list):
        return child[1]
    return child["uuid"]


def _is_page(data: dict[str, Any]) -> bool:
    return "name" in data and "page" not in data


def _to_tag(data: dict[str, Any]) -> Tag:
    name = data["name"]
    return Tag(
        id=data["id"],
        name=name,
        original_name=_get(data, "originalName", "original-name", default=name),
        is_journal=bool(_get(data, "journal?", "journal", default=False)),
    )


def _to_document(data: dict[str, Any]) -> Document:
    tag = _to_tag(data)
    return Document(
        id=tag.id,
        uuid=data["uuid"],
        name=tag.name,
        original_name=tag.original_name,
        is_journal=tag.is_journal,
    )


def _pulled(rows: Any) -> list[dict[str, Any]]:
    """Flatten [[entity], [entity], ...] datascript results."""
    out: list[dict[str, Any]] = []
    for row in rows or []:
        out.append(row[0] if isinstance(row, list) else row)
    return out


class ApiStore:
    """Read-only view of the graph open in the Logseq desktop app."""

    def __init__(self, api: ApiProtocol) -> None:
        self.api = api

    async def _call(self, method: str, *args: Any) -> Any:
        return await asyncio.to_thread(self.api.call, method, list(args))

    def _to_node(self, data: dict[str, Any], children: Sequence[str] | None = None) -> Node:
        if _is_page(data):
            return Node(
                id=data["id"],
                uuid=data["uuid"],
                document_id=data["id"],
                parent_id=None,
                content=_get(data, "originalName", "original-name", default=data["name"]),
                children=tuple(children or ()),
                properties=data.get("properties") or {},
            )
        if children is None:
            children = [_child_uuid(c) for c in data.get("children") or []]
        return Node(
            id=data["id"],
            uuid=data["uuid"],
            document_id=_ref_id(data["page"]),
            parent_id=_ref_id(data["parent"]),
            content=data.get("content", ""),
            children=tuple(children),
            properties=data.get("properties") or {},
            marker=data.get("marker"),
            tag_refs=frozenset(
                _ref_id(r) for r in _get(data, "pathRefs", "path-refs", default=[]) or []
            ),
        )

    async def _page_children(self, page: dict[str, Any]) -> list[str]:
        tree = await self._call("logseq.Editor.getPageBlocksTree", page["name"])
        return [b["uuid"] for b in tree or []]

    async def get_node(self, node_id: int) -> Node | None:
        data = await self._call("logseq.Editor.getBlock", node_id)
        if data is None:
            data = await self._call("logseq.Editor.getPage", node_id)
        if data is None:
            return None
        if _is_page(data):
            return self._to_node(data, await self._page_children(data))
        return self._to_node(data)

    async def get_parent(self, node: Node) -> Node | None:
        if node.parent_id is None:
            return None
        return await self.get_node(node.parent_id)

    async def get_children(self, node: Node) -> list[Node]:
        children: list[Node] = []
        for child_uuid in node.children:
            data = await self._call("logseq.Editor.getBlock", child_uuid)
            if data is not None:
                children.append(self._to_node(data))
        return children

    async def query_tasks(self, markers: Sequence[str]) -> list[Node]:
        query = (
            "[:find (pull ?b [*]) :where [?b :block/marker ?m] "
            f"[(contains? {_edn_set(markers)} ?m)]]"
        )
        rows = _pulled(await self._call("logseq.DB.datascriptQuery", query))
        # pull [*] does not include children; fetch each block for its ordered children
        tasks: list[Node] = []
        for data in sorted(rows, key=lambda d: d["id"]):
            full = await self._call("logseq.Editor.getBlock", data["id"])
            tasks.append(self._to_node({**data, **(full or {})}))
        return tasks

    async def query_task_tags(self, markers: Sequence[str]) -> list[Tag]:
        query = (
            "[:find (pull ?t [*]) :where [?b :block/marker ?m] "
            f"[(contains? {_edn_set(markers)} ?m)] [?b :block/path-refs ?t]]"
        )
        rows = _pulled(await self._call("logseq.DB.datascriptQuery", query))
        unique = {d["id"]: d for d in rows if "name" in d}
        return [_to_tag(unique[i]) for i in sorted(unique)]

    async def find_tags(self, names: Sequence[str]) -> list[Tag]:
        if not names:
            return []
        query = (
            "[:find (pull ?p [*]) :where [?p :block/name ?n] "
            f"[(contains? {_edn_set([n.lower() for n in names])} ?n)]]"
        )
        rows = _pulled(await self._call("logseq.DB.datascriptQuery", query))
        return sorted((_to_tag(d) for d in rows), key=lambda t: t.id)

    async def find_namespace_documents(self, prefixes: Sequence[str]) -> list[Document]:
        found: dict[int, Document] = {}
        for prefix in prefixes:
            stem = prefix.lower().rstrip("/") + "/"
            query = (
                "[:find (pull ?p [*]) :where [?p :block/name ?n] "
                f"[(clojure.string/starts-with? ?n {json.dumps(stem, ensure_ascii=False)})]]"
            )
            for data in _pulled(await self._call("logseq.DB.datascriptQuery", query)):
                found[data["id"]] = _to_document(data)
        return [found[i] for i in sorted(found)]
