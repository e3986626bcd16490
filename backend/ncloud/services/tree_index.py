"""Tree index: adjacency snapshot of a user's directories and subtree walks.

``build_adjacency`` turns ``(id, parent)`` edges into a parent -> children
map in one pass. ``enumerate_subtree`` flattens the descendants of a set of
roots in pre-order using an explicit stack, so arbitrarily deep trees never
touch the interpreter's recursion limit.

Both functions are pure. The adjacency map is a snapshot: callers rebuild it
for every operation instead of caching it across store round-trips.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from ..repositories.directory_repository import DirectoryRepository

Adjacency = Dict[str, List[str]]


def build_adjacency(edges: Iterable[Tuple[str, Optional[str]]]) -> Adjacency:
    """Group child ids under their parent id, preserving edge order.

    Edges with an empty parent (roots) are skipped.
    """
    adjacency: Adjacency = {}
    for child_id, parent_id in edges:
        if not parent_id:
            continue
        adjacency.setdefault(parent_id, []).append(child_id)
    return adjacency


def build_user_adjacency(db: Session, user_id: str) -> Adjacency:
    """Snapshot the adjacency map of every non-root directory owned by *user_id*."""
    return build_adjacency(DirectoryRepository(db).list_tree_edges(user_id))


def enumerate_subtree(roots: Sequence[str], adjacency: Adjacency) -> List[str]:
    """All descendants of *roots* in pre-order, roots themselves excluded.

    For each root in turn: its first child, that child's whole subtree, then
    the next child, and so on, in adjacency order. A node reachable from
    several roots (a root nested under another root) is emitted once, at its
    first pre-order position.

    Example::

        adjacency = {"a": ["b", "c"], "b": ["d"]}
        enumerate_subtree(["a"], adjacency) == ["b", "d", "c"]
    """
    result: List[str] = []
    seen: Set[str] = set()

    for root in roots:
        # Reversed so the leftmost child is popped first.
        stack = list(reversed(adjacency.get(root, ())))
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            result.append(node)
            children = adjacency.get(node)
            if children:
                stack.extend(reversed(children))
    return result


def subtree_with_roots(roots: Sequence[str], adjacency: Adjacency) -> List[str]:
    """Roots followed by their descendants, each id once."""
    ordered = list(dict.fromkeys(roots))
    seen = set(ordered)
    for node in enumerate_subtree(ordered, adjacency):
        if node not in seen:
            seen.add(node)
            ordered.append(node)
    return ordered


def is_within(candidate: str, root: str, adjacency: Adjacency) -> bool:
    """True if *candidate* is *root* itself or one of its descendants."""
    if candidate == root:
        return True
    return candidate in set(enumerate_subtree([root], adjacency))
