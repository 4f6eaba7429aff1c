"""
Feature store contract and the in-memory backend.

The catalog service only talks to storage through FeatureStore. Every
service call wraps its reads and its single write in ``transaction()``;
backends must make that block atomic and isolated from other callers.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Protocol

from features.catalog.errors import DuplicateFeatureError
from features.catalog.models import Feature
from features.tags.models import Tag

log = logging.getLogger(__name__)


class FeatureStore(Protocol):
    def transaction(self, readonly: bool = False): ...

    def find_by_name(self, name: str) -> Feature | None: ...

    def find_by_id(self, feature_id: str) -> Feature | None: ...

    def find_by_name_containing(self, substring: str) -> list[Feature]: ...

    def get_features(self, offset: int, limit: int) -> list[Feature]: ...

    def save(self, feature: Feature) -> Feature: ...

    def delete(self, feature: Feature) -> None: ...

    def find_all_referencing(self, feature: Feature) -> list[Feature]: ...

    def count(self) -> int: ...


class MemoryFeatureStore:
    """Process-local store. Transactions are serialized by one re-entrant lock.

    Features handed out are copies; callers change stored state only via
    ``save``. A transaction that raises restores the state it started from.
    Nested transactions join the outermost one, as they do in Postgres.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._features: dict[str, Feature] = {}  # id → feature
        self._names: dict[str, str] = {}  # lowercased name → id
        self.tag_records: dict[tuple[str, str], Tag] = {}
        self._active_snapshot: tuple | None = None

    @contextmanager
    def transaction(self, readonly: bool = False) -> Iterator[None]:
        with self._lock:
            owns_snapshot = not readonly and self._active_snapshot is None
            if owns_snapshot:
                self._active_snapshot = self._snapshot()
            try:
                yield
            except BaseException:
                if owns_snapshot:
                    self._restore(self._active_snapshot)
                    log.debug("[STORE] Rolled back in-memory transaction")
                raise
            finally:
                if owns_snapshot:
                    self._active_snapshot = None

    def _snapshot(self) -> tuple:
        # Stored features are replaced on save, never mutated in place
        return dict(self._features), dict(self._names), dict(self.tag_records)

    def _restore(self, snapshot: tuple) -> None:
        self._features, self._names, self.tag_records = snapshot

    # ── Reads ─────────────────────────────────────────────────────────

    def find_by_name(self, name: str) -> Feature | None:
        with self._lock:
            feature_id = self._names.get(name.lower())
            return self.find_by_id(feature_id) if feature_id else None

    def find_by_id(self, feature_id: str) -> Feature | None:
        with self._lock:
            feature = self._features.get(feature_id)
            return copy.deepcopy(feature) if feature else None

    def _sorted(self) -> list[Feature]:
        return sorted(self._features.values(), key=lambda f: f.sort_key)

    def find_by_name_containing(self, substring: str) -> list[Feature]:
        needle = substring.lower()
        with self._lock:
            return [copy.deepcopy(f) for f in self._sorted() if needle in f.name.lower()]

    def get_features(self, offset: int, limit: int) -> list[Feature]:
        with self._lock:
            return [copy.deepcopy(f) for f in self._sorted()[offset:offset + limit]]

    def find_all_referencing(self, feature: Feature) -> list[Feature]:
        with self._lock:
            return [copy.deepcopy(f) for f in self._sorted() if feature.id in f.dependencies]

    def count(self) -> int:
        with self._lock:
            return len(self._features)

    # ── Writes ────────────────────────────────────────────────────────

    def save(self, feature: Feature) -> Feature:
        with self._lock:
            key = feature.name.lower()
            owner = self._names.get(key)
            if owner is not None and owner != feature.id:
                raise DuplicateFeatureError(feature.name)
            previous = self._features.get(feature.id)
            if previous is not None:
                self._names.pop(previous.name.lower(), None)
            self._features[feature.id] = copy.deepcopy(feature)
            self._names[key] = feature.id
            return copy.deepcopy(feature)

    def delete(self, feature: Feature) -> None:
        with self._lock:
            stored = self._features.pop(feature.id, None)
            if stored is not None:
                self._names.pop(stored.name.lower(), None)
