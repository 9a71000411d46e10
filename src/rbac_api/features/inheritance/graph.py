"""Pure functions over the role inheritance graph.

Edges point from a parent role to the child role it inherits from. Every
traversal uses an explicit stack and a visited set, so depth is bounded by the
number of roles rather than the interpreter's recursion limit.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from uuid import UUID

Edge = tuple[UUID, UUID]
Adjacency = dict[UUID, list[UUID]]


@dataclass(frozen=True, slots=True)
class ForestNode:
    role_id: UUID
    depth: int
    parent_id: UUID | None


def build_adjacency(
    edges: Iterable[Edge],
    names: Mapping[UUID, str] | None = None,
) -> Adjacency:
    """Return ``parent -> [child]``; children sorted by ``(name, id)`` when names are given."""

    adjacency: defaultdict[UUID, list[UUID]] = defaultdict(list)
    for parent, child in edges:
        adjacency[parent].append(child)
    for children in adjacency.values():
        children.sort(key=_sort_key(names))
    return dict(adjacency)


def reachable(adjacency: Mapping[UUID, list[UUID]], start: UUID) -> list[UUID]:
    """Roles reachable from ``start`` (excluded), in DFS preorder."""

    order: list[UUID] = []
    visited = {start}
    stack = list(reversed(adjacency.get(start, ())))
    while stack:
        node = stack.pop()
        if node in visited:
            continue
        visited.add(node)
        order.append(node)
        stack.extend(reversed(adjacency.get(node, ())))
    return order


def would_create_cycle(edges: Iterable[Edge], parent: UUID, child: UUID) -> bool:
    """Whether adding ``parent -> child`` would close a cycle."""

    if parent == child:
        return True
    adjacency = build_adjacency(edges)
    return parent in reachable(adjacency, child)


def find_roots(role_ids: Iterable[UUID], edges: Iterable[Edge]) -> list[UUID]:
    children = {child for _, child in edges}
    return [role_id for role_id in role_ids if role_id not in children]


def walk_forest(names: Mapping[UUID, str], edges: Iterable[Edge]) -> list[ForestNode]:
    """Display order for the inheritance forest.

    Roots are roles that are never a child. Each root is walked depth-first
    with children in ``(name, id)`` order. A role reachable through several
    parents is listed under each of them; a single path never repeats a role.
    """

    edge_list = list(edges)
    adjacency = build_adjacency(edge_list, names)
    key = _sort_key(names)
    roots = sorted(find_roots(names, edge_list), key=key)

    nodes: list[ForestNode] = []
    for root in roots:
        stack: list[tuple[UUID, int, UUID | None, frozenset[UUID]]] = [
            (root, 0, None, frozenset())
        ]
        while stack:
            role_id, depth, parent_id, path = stack.pop()
            if role_id in path:
                continue
            nodes.append(ForestNode(role_id=role_id, depth=depth, parent_id=parent_id))
            on_path = path | {role_id}
            for child in reversed(adjacency.get(role_id, ())):
                stack.append((child, depth + 1, role_id, on_path))
    return nodes


def _sort_key(names: Mapping[UUID, str] | None):
    if names is None:
        return str
    return lambda role_id: (names.get(role_id, ""), str(role_id))


__all__ = [
    "Adjacency",
    "Edge",
    "ForestNode",
    "build_adjacency",
    "find_roots",
    "reachable",
    "walk_forest",
    "would_create_cycle",
]
