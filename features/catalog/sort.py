"""
Topological linearization of feature sets.

Given any collection of root features, produce the full transitive closure
in an order where every feature comes after all of its dependencies. The
order depends only on the graph and on feature names, never on set or
dict iteration order, so the same request yields the same build plan on
every run.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Hashable, Iterable, TypeVar

from features.catalog.errors import InternalInvariantViolation
from features.catalog.models import Feature, Resolver

log = logging.getLogger(__name__)

T = TypeVar("T")


def _ordered_dependencies(feature: Feature, resolve: Resolver) -> list[Feature]:
    deps = []
    for dep_id in feature.dependencies:
        dep = resolve(dep_id)
        if dep is None:
            log.critical("[SORT] Dangling dependency %s on feature %s", dep_id, feature.name)
            raise InternalInvariantViolation(
                f"Feature {feature.name} depends on missing feature id {dep_id}",
                [feature.name],
            )
        deps.append(dep)
    deps.sort(key=lambda f: f.sort_key)
    return deps


def expand(roots: Iterable[Feature], resolve: Resolver) -> list[Feature]:
    """Collect roots plus everything reachable from them, once each, in discovery order."""
    pending = sorted({f.id: f for f in roots}.values(), key=lambda f: f.sort_key)
    seen: set[str] = set()
    expanded: list[Feature] = []
    # Depth-first with an explicit stack; reversed pushes keep name order on pop
    stack = list(reversed(pending))
    while stack:
        feature = stack.pop()
        if feature.id in seen:
            continue
        seen.add(feature.id)
        expanded.append(feature)
        for dep in reversed(_ordered_dependencies(feature, resolve)):
            if dep.id not in seen:
                stack.append(dep)
    return expanded


def topological_sort(
    nodes: list[T],
    dependencies_of: Callable[[T], Iterable[Hashable]],
    key: Callable[[T], Hashable],
) -> list[T]:
    """Kahn's algorithm over ``nodes``; dependencies come first.

    Edges pointing outside ``nodes`` are ignored. Ties are broken by the
    position in ``nodes``. Runs in O(V + E).
    """
    index = {key(n): i for i, n in enumerate(nodes)}
    remaining = [0] * len(nodes)
    dependents: list[list[int]] = [[] for _ in nodes]
    for i, node in enumerate(nodes):
        for dep_key in set(dependencies_of(node)):
            j = index.get(dep_key)
            if j is None:
                continue
            remaining[i] += 1
            dependents[j].append(i)

    ready = deque(i for i, count in enumerate(remaining) if count == 0)
    ordered: list[T] = []
    while ready:
        i = ready.popleft()
        ordered.append(nodes[i])
        for j in dependents[i]:
            remaining[j] -= 1
            if remaining[j] == 0:
                ready.append(j)

    if len(ordered) != len(nodes):
        stuck = [nodes[i] for i, count in enumerate(remaining) if count > 0]
        names = [getattr(n, "name", str(key(n))) for n in stuck]
        log.critical("[SORT] Dependency cycle detected among: %s", ", ".join(names))
        raise InternalInvariantViolation(
            "Dependency cycle detected among: " + ", ".join(names), names
        )
    return ordered


def linearize(roots: Iterable[Feature], resolve: Resolver) -> list[Feature]:
    """Expand ``roots`` transitively and return them in dependency order."""
    expanded = expand(roots, resolve)
    ordered = topological_sort(expanded, lambda f: f.dependencies, key=lambda f: f.id)
    log.debug("[SORT] Linearized %d feature(s)", len(ordered))
    return ordered
