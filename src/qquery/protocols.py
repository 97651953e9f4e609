"""Protocols for dependency injection in the query engine."""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from qquery.models.node import Document, Node, Tag


@runtime_checkable
class ApiProtocol(Protocol):
    """Protocol for Logseq HTTP API clients."""

    def call(self, method: str, args: list[Any]) -> Any:
        """Invoke an API method and return the decoded JSON response."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Read-only access to a forest of pages and blocks."""

    async def get_node(self, node_id: int) -> Node | None:
        """Fetch a node (block or page root) by id."""
        ...

    async def get_parent(self, node: Node) -> Node | None:
        """Fetch the parent of a node, or None for a page root."""
        ...

    async def get_children(self, node: Node) -> list[Node]:
        """Fetch the direct children of a node in outline order."""
        ...

    async def query_tasks(self, markers: Sequence[str]) -> list[Node]:
        """Fetch every block whose status marker is in markers."""
        ...

    async def query_task_tags(self, markers: Sequence[str]) -> list[Tag]:
        """Fetch the distinct pages on the path refs of those blocks."""
        ...

    async def find_tags(self, names: Sequence[str]) -> list[Tag]:
        """Fetch pages by canonical name. Unknown names are skipped."""
        ...

    async def find_namespace_documents(self, prefixes: Sequence[str]) -> list[Document]:
        """Fetch pages living under any of the namespace prefixes."""
        ...
