from __future__ import annotations

from uuid import uuid4

from rbac_api.features.inheritance.graph import (
    build_adjacency,
    find_roots,
    reachable,
    walk_forest,
    would_create_cycle,
)


def test_self_loop_is_a_cycle() -> None:
    role = uuid4()

    assert would_create_cycle([], role, role)


def test_closing_edge_is_detected() -> None:
    a, b, c = uuid4(), uuid4(), uuid4()
    edges = [(a, b), (b, c)]

    assert would_create_cycle(edges, c, a)
    assert would_create_cycle(edges, b, a)
    assert not would_create_cycle(edges, a, c)


def test_diamond_is_not_a_cycle() -> None:
    top, left, right, bottom = uuid4(), uuid4(), uuid4(), uuid4()
    edges = [(top, left), (top, right), (left, bottom)]

    assert not would_create_cycle(edges, right, bottom)


def test_reachable_is_preorder_by_name() -> None:
    root, b, a, leaf = uuid4(), uuid4(), uuid4(), uuid4()
    names = {root: "Root", a: "Alpha", b: "Beta", leaf: "Leaf"}
    adjacency = build_adjacency([(root, b), (root, a), (a, leaf), (b, leaf)], names)

    assert reachable(adjacency, root) == [a, leaf, b]
    assert reachable(adjacency, leaf) == []


def test_find_roots_keeps_input_order() -> None:
    a, b, c = uuid4(), uuid4(), uuid4()

    assert find_roots([a, b, c], [(a, b)]) == [a, c]


def test_forest_lists_shared_child_under_each_parent() -> None:
    left, right, shared, lone = uuid4(), uuid4(), uuid4(), uuid4()
    names = {left: "Left", right: "Right", shared: "Shared", lone: "Alone"}
    edges = [(left, shared), (right, shared)]

    nodes = walk_forest(names, edges)

    assert [(n.role_id, n.depth, n.parent_id) for n in nodes] == [
        (lone, 0, None),
        (left, 0, None),
        (shared, 1, left),
        (right, 0, None),
        (shared, 1, right),
    ]
