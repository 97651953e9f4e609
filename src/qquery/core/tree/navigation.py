"""Tree navigation: ancestor chains up to the owning page."""

from loguru import logger

from qquery.errors import CorruptTreeError
from qquery.models.node import Node
from qquery.protocols import DocumentStore


async def _lookup_parent(store: DocumentStore, node: Node) -> Node | None:
    try:
        return await store.get_parent(node)
    except Exception:
        logger.exception("Parent lookup failed for block {}", node.uuid)
        return None


async def ancestors_of(store: DocumentStore, node: Node) -> list[Node]:
    """Return the ancestors of a node, nearest first, ending with its page.

    A node without a parent (or whose parent cannot be read) ends the chain, so a
    page has no ancestors. Parents are fetched one level at a time.

    Raises:
        CorruptTreeError: The parent links loop back on themselves.
    """
    chain: list[Node] = []
    seen = {node.id}
    current = node
    while current.parent_id is not None:
        parent = await _lookup_parent(store, current)
        if parent is None:
            break
        if parent.id in seen:
            msg = f"Cycle in parent links: block {parent.uuid} is its own ancestor"
            raise CorruptTreeError(msg)
        seen.add(parent.id)
        chain.append(parent)
        current = parent
    return chain


def breadcrumbs(chain: list[Node], *, width: int = 40) -> str:
    """Render an ancestor chain root-first, as "page > parent > ..."."""
    return " > ".join(n.content.split("\n", 1)[0][:width] for n in reversed(chain))
