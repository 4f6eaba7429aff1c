"""Expansion and topological ordering of feature sets."""

import pytest

from features.catalog import sort
from features.catalog.errors import InternalInvariantViolation
from features.catalog.models import Feature


def _graph(*features):
    by_id = {f.id: f for f in features}
    return by_id.get


def _names(features):
    return [f.name for f in features]


def _assert_dependencies_first(ordered, resolve):
    position = {f.id: i for i, f in enumerate(ordered)}
    for feature in ordered:
        for dep_id in feature.dependencies:
            assert position[dep_id] < position[feature.id], (resolve(dep_id).name, feature.name)


def test_single_dependency():
    base = Feature(name="base")
    app = Feature(name="app", dependencies={base.id})
    assert _names(sort.linearize([app], _graph(base, app))) == ["base", "app"]


def test_diamond_order():
    base = Feature(name="base")
    left = Feature(name="left", dependencies={base.id})
    right = Feature(name="right", dependencies={base.id})
    top = Feature(name="top", dependencies={left.id, right.id})
    resolve = _graph(base, left, right, top)

    ordered = sort.linearize([top], resolve)

    assert _names(ordered) == ["base", "left", "right", "top"]
    _assert_dependencies_first(ordered, resolve)


def test_independent_dependencies_ordered_by_name():
    c, a, b = Feature(name="c"), Feature(name="a"), Feature(name="B")
    d = Feature(name="d", dependencies={c.id, a.id, b.id})
    assert _names(sort.linearize([d], _graph(a, b, c, d))) == ["a", "B", "c", "d"]


def test_duplicate_roots_yield_same_order():
    base = Feature(name="base")
    app = Feature(name="app", dependencies={base.id})
    resolve = _graph(base, app)
    assert _names(sort.linearize([app], resolve)) == _names(sort.linearize([app, app, base], resolve))


def test_root_order_does_not_matter():
    x, y, z = Feature(name="x"), Feature(name="y"), Feature(name="z")
    resolve = _graph(x, y, z)
    assert _names(sort.linearize([z, x, y], resolve)) == _names(sort.linearize([y, z, x], resolve))


def test_transitive_closure_is_complete():
    chain = [Feature(name="f000")]
    for i in range(1, 300):
        chain.append(Feature(name=f"f{i:03d}", dependencies={chain[-1].id}))
    resolve = _graph(*chain)

    ordered = sort.linearize([chain[-1]], resolve)

    assert _names(ordered) == [f.name for f in chain]


def test_empty_roots():
    assert sort.linearize([], _graph()) == []


def test_cycle_is_an_internal_error():
    x = Feature(name="x")
    y = Feature(name="y", dependencies={x.id})
    x.dependencies.add(y.id)

    with pytest.raises(InternalInvariantViolation) as exc:
        sort.linearize([x], _graph(x, y))
    assert sorted(exc.value.names) == ["x", "y"]
    assert exc.value.status_code == 500


def test_dangling_edge_is_an_internal_error():
    broken = Feature(name="broken", dependencies={"feat-missing"})
    with pytest.raises(InternalInvariantViolation):
        sort.linearize([broken], _graph(broken))


def test_topological_sort_ignores_edges_outside_the_node_set():
    deps = {"a": [], "b": ["a", "outside"], "c": ["b"]}
    ordered = sort.topological_sort(["c", "b", "a"], deps.__getitem__, key=lambda n: n)
    assert ordered == ["a", "b", "c"]
