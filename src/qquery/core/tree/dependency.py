"""Infer prerequisite tasks from their position in the outline.

Two structural signals order tasks:

- nesting: a task nested under another task is a sub-step of it, and so its
  prerequisite;
- numbered lists: when two tasks descend through numbered siblings of their
  nearest common ancestor, the earlier sibling's task is the prerequisite.

Plain bullets and sibling adjacency carry no ordering. Every pair of tasks is
compared directly, so chains (a before b before c) need no transitive closure.
Cost is O(n^2) comparisons plus one parent read per tree level per task, which
suits the few dozen tasks a tag selection usually leaves, not thousands.
"""

from collections.abc import Sequence
from itertools import combinations

from loguru import logger

from qquery.core.tree.navigation import ancestors_of
from qquery.errors import CorruptTreeError
from qquery.models.node import Node
from qquery.protocols import DocumentStore


def furthest_uncommon_ancestors(
    t1: Node, chain1: Sequence[Node], t2: Node, chain2: Sequence[Node]
) -> tuple[Node, Node, Node]:
    """Return (common, branch1, branch2) for two nodes that are not nested.

    common is the nearest common ancestor; branch1 and branch2 are its direct
    children through which t1 and t2 descend (possibly t1 or t2 themselves).

    Raises:
        CorruptTreeError: The chains do not share a root.
    """
    path1 = [*reversed(chain1), t1]
    path2 = [*reversed(chain2), t2]
    if path1[0].id != path2[0].id:
        msg = f"Blocks {t1.uuid} and {t2.uuid} share a page but no common ancestor"
        raise CorruptTreeError(msg)

    depth = 0
    while (
        depth + 1 < len(path1)
        and depth + 1 < len(path2)
        and path1[depth + 1].id == path2[depth + 1].id
    ):
        depth += 1
    return path1[depth], path1[depth + 1], path2[depth + 1]


def _child_position(parent: Node, child: Node) -> int:
    try:
        return parent.children.index(child.uuid)
    except ValueError:
        msg = f"Block {child.uuid} is missing from the children of {parent.uuid}"
        raise CorruptTreeError(msg) from None


def structural_order(
    t1: Node, chain1: Sequence[Node], t2: Node, chain2: Sequence[Node]
) -> int:
    """Compare two tasks by outline position.

    Returns:
        A negative number when t1 is a prerequisite of t2, positive when t2 is a
        prerequisite of t1, and 0 when they are independent or when either
        chain stops short of its page.
    """
    if t1.document_id != t2.document_id:
        return 0
    if any(a.id == t2.id for a in chain1):
        return -1
    if any(a.id == t1.id for a in chain2):
        return 1

    root1 = chain1[-1] if chain1 else t1
    root2 = chain2[-1] if chain2 else t2
    if not (root1.is_document and root2.is_document):
        # A parent read failed part way up; the outline position is unknown.
        return 0

    common, branch1, branch2 = furthest_uncommon_ancestors(t1, chain1, t2, chain2)
    if not (branch1.is_ordered and branch2.is_ordered):
        return 0
    pos1 = _child_position(common, branch1)
    pos2 = _child_position(common, branch2)
    return -1 if pos1 < pos2 else 1


async def dependent_task_ids(store: DocumentStore, tasks: Sequence[Node]) -> set[int]:
    """Return the ids of tasks that are prerequisites of another task in tasks."""
    chains: dict[int, list[Node]] = {}
    for task in tasks:
        chains[task.id] = await ancestors_of(store, task)

    dependents: set[int] = set()
    for t1, t2 in combinations(tasks, 2):
        if t1.id == t2.id:
            continue
        order = structural_order(t1, chains[t1.id], t2, chains[t2.id])
        if order < 0:
            dependents.add(t1.id)
        elif order > 0:
            dependents.add(t2.id)

    logger.debug("{} of {} tasks are prerequisites", len(dependents), len(tasks))
    return dependents
