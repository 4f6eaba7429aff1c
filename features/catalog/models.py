"""
Data models for the catalog feature.

A Feature is a node in the dependency graph. Its outgoing edges are kept
as a set of feature ids and resolved through the store on demand, so a
feature never holds references to other Feature objects and a rename
leaves every edge intact.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Callable, Optional

from features.tags.models import Tag

Resolver = Callable[[str], Optional["Feature"]]


def new_feature_id() -> str:
    return f"feat-{uuid.uuid4().hex[:12]}"


@dataclass
class Feature:
    """A named, reusable fragment of build instructions."""
    name: str
    id: str = field(default_factory=new_feature_id)
    docker_data: str = ""
    test_instruction: str | None = None
    description: str | None = None
    approved: bool = False
    dependencies: set[str] = field(default_factory=set)  # feature ids
    tags: set[Tag] = field(default_factory=set)

    @property
    def sort_key(self) -> tuple[str, str]:
        return self.name.lower(), self.id

    def contains_dependency_recursively(self, target: Feature, resolve: Resolver) -> bool:
        """Return True if ``target`` is reachable from this feature.

        Zero hops count, so a feature always contains itself. Walks the
        edges iteratively; ``resolve`` maps a feature id to its Feature.
        """
        stack = [self.id]
        visited: set[str] = set()
        while stack:
            feature_id = stack.pop()
            if feature_id == target.id:
                return True
            if feature_id in visited:
                continue
            visited.add(feature_id)
            node = self if feature_id == self.id else resolve(feature_id)
            if node is None:
                continue
            stack.extend(d for d in node.dependencies if d not in visited)
        return False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["dependencies"] = sorted(self.dependencies)
        data["tags"] = sorted(({"name": t.name, "value": t.value} for t in self.tags),
                              key=lambda t: (t["name"], t["value"]))
        return data


@dataclass
class FeaturePage:
    """One page of features plus the total number of features in the catalog."""
    features: list[Feature]
    total: int
