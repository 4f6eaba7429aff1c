"""
Feature Service — the only code path that mutates the feature catalog.

Each mutation runs in a single store transaction: every validation happens
before the one write, and any error rolls the whole call back. Reads run
in read-only transactions so a build plan never sees a graph mid-update.
"""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

import config
from features.catalog import sort
from features.catalog.errors import (
    BadRequestError,
    DependencyNotFoundError,
    DuplicateFeatureError,
    FeatureNameEmptyError,
    FeatureNotDeletableError,
    FeatureNotFoundError,
    InvalidTagError,
    NotFoundError,
    RecursiveDependencyError,
)
from features.catalog.models import Feature, FeaturePage
from features.catalog.store import FeatureStore
from features.tags.models import TagInput
from features.tags.store import TagResolver

log = logging.getLogger(__name__)


def _is_blank(name: str | None) -> bool:
    return name is None or not name.strip()


def _describe_tag(item) -> str:
    if isinstance(item, dict):
        return f"{item.get('name', '')}={item.get('value', '')}"
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return f"{item[0]}={item[1]}"
    return str(item)


def _first_error(e: Exception) -> str:
    if isinstance(e, ValidationError) and e.errors():
        return e.errors()[0]["msg"]
    return str(e)


class FeatureService:
    """Creates, updates, approves, deletes and linearizes catalog features."""

    def __init__(self, store: FeatureStore, tag_resolver: TagResolver):
        self.store = store
        self.tag_resolver = tag_resolver

    # ── Reads ─────────────────────────────────────────────────────────

    def list_features(self, name: str = "") -> list[Feature]:
        """Features whose name contains ``name`` (case-insensitive), by name."""
        with self.store.transaction(readonly=True):
            return self.store.find_by_name_containing(name or "")

    def get_features_with_total_count(
        self, offset: int = 0, limit: int = config.DEFAULT_PAGE_LIMIT
    ) -> FeaturePage:
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")
        limit = min(limit, config.MAX_PAGE_LIMIT)
        with self.store.transaction(readonly=True):
            return FeaturePage(
                features=self.store.get_features(offset, limit),
                total=self.store.count(),
            )

    def get_feature(self, name: str) -> Feature:
        with self.store.transaction(readonly=True):
            return self._load_existing(name)

    def get_sorted_features(self, features: Iterable[Feature]) -> list[Feature]:
        """Transitive closure of ``features`` in dependency order."""
        with self.store.transaction(readonly=True):
            return sort.linearize(features, self.store.find_by_id)

    def get_sorted_features_by_names(self, names: Iterable[str]) -> list[Feature]:
        """Resolve ``names`` and return their transitive closure in dependency order."""
        with self.store.transaction(readonly=True):
            roots = self.load_features(names)
            return sort.linearize(roots, self.store.find_by_id)

    # ── Mutations ─────────────────────────────────────────────────────

    def create_feature(
        self,
        name: str,
        docker_data: str | None = None,
        test_instruction: str | None = None,
        description: str | None = None,
        dependency_names: Iterable[str] | None = None,
        tags: Iterable[TagInput | tuple[str, str]] | None = None,
    ) -> Feature:
        try:
            with self.store.transaction():
                self._name_guard_check(name)
                dependencies = self.load_features(dependency_names)

                feature = Feature(name=name, docker_data="" if docker_data is None else docker_data)
                feature.approved = False
                feature.dependencies = {d.id for d in dependencies}
                if test_instruction is not None:
                    feature.test_instruction = test_instruction
                if description:
                    feature.description = description

                requested_tags = self._coerce_tags(tags)
                if requested_tags:
                    feature.tags = self.tag_resolver.upsert(requested_tags)
                saved = self.store.save(feature)
        except (BadRequestError, NotFoundError) as e:
            log.warning("[FEATURE] Create rejected: %s — %s", name, e.message)
            raise
        log.info("[FEATURE] Created: %s (%s), %d dependencies", saved.name, saved.id, len(saved.dependencies))
        return saved

    def update_feature(
        self,
        name: str,
        new_name: str | None = None,
        docker_data: str | None = None,
        test_instruction: str | None = None,
        description: str | None = None,
        dependency_names: Iterable[str] | None = None,
    ) -> Feature:
        """Update the given fields; None leaves a field untouched.

        ``dependency_names`` replaces the whole dependency set. The update is
        rejected if any new dependency already depends on this feature.
        """
        try:
            with self.store.transaction():
                existing = self._load_existing(name)
                if new_name is not None and new_name != existing.name:
                    if _is_blank(new_name):
                        raise FeatureNameEmptyError()
                    other = self.store.find_by_name(new_name)
                    if other is not None and other.id != existing.id:
                        raise DuplicateFeatureError(new_name)
                    existing.name = new_name
                if docker_data is not None:
                    existing.docker_data = docker_data
                if test_instruction is not None:
                    existing.test_instruction = test_instruction
                if description is not None:
                    existing.description = description
                if dependency_names is not None:
                    dependencies = self.load_features(dependency_names)
                    recursive = [
                        d for d in dependencies
                        if d.contains_dependency_recursively(existing, self.store.find_by_id)
                    ]
                    if recursive:
                        raise RecursiveDependencyError(d.name for d in recursive)
                    existing.dependencies = {d.id for d in dependencies}
                saved = self.store.save(existing)
        except (BadRequestError, NotFoundError) as e:
            log.warning("[FEATURE] Update rejected: %s — %s", name, e.message)
            raise
        log.info("[FEATURE] Updated: %s (%s)", saved.name, saved.id)
        return saved

    def approve_feature(self, name: str) -> None:
        with self.store.transaction():
            feature = self._load_existing(name)
            feature.approved = True
            self.store.save(feature)
        log.info("[FEATURE] Approved: %s", feature.name)

    def delete_feature(self, name: str) -> None:
        with self.store.transaction():
            feature = self._load_existing(name)
            referencing = self.store.find_all_referencing(feature)
            if referencing:
                log.warning(
                    "[FEATURE] Delete rejected: %s is referenced by %d feature(s)",
                    feature.name, len(referencing),
                )
                raise FeatureNotDeletableError(f.name for f in referencing)
            self.store.delete(feature)
        log.info("[FEATURE] Deleted: %s (%s)", feature.name, feature.id)

    # ── Helpers ───────────────────────────────────────────────────────

    def load_features(self, names: Iterable[str] | None) -> list[Feature]:
        """Resolve every name or fail, reporting all names that don't exist."""
        unique_names = list(dict.fromkeys(names or []))
        found: dict[str, Feature] = {}
        missing: list[str] = []
        for dep_name in unique_names:
            feature = self.store.find_by_name(dep_name)
            if feature is None:
                missing.append(dep_name)
            else:
                found.setdefault(feature.id, feature)
        if missing:
            raise DependencyNotFoundError(missing)
        return sorted(found.values(), key=lambda f: f.sort_key)

    def _coerce_tags(self, tags) -> list[TagInput]:
        requested = []
        for item in tags or []:
            try:
                requested.append(TagInput.coerce(item))
            except (ValidationError, TypeError, ValueError) as e:
                raise InvalidTagError(_describe_tag(item), _first_error(e)) from e
        return requested

    def _name_guard_check(self, name: str | None) -> None:
        if _is_blank(name):
            raise FeatureNameEmptyError()
        if self.store.find_by_name(name) is not None:
            raise DuplicateFeatureError(name)

    def _load_existing(self, name: str) -> Feature:
        feature = self.store.find_by_name(name)
        if feature is None:
            raise FeatureNotFoundError([name])
        return feature
