"""
Tag resolution — turns requested (name, value) pairs into Tag records.

Resolvers write through the feature store they are bound to, so tag
upserts join the transaction of the feature mutation that triggered them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Protocol

from features.tags.models import Tag, TagInput

if TYPE_CHECKING:
    from features.catalog.store import MemoryFeatureStore

log = logging.getLogger(__name__)


class TagResolver(Protocol):
    def upsert(self, tags: Iterable[TagInput | tuple[str, str]]) -> set[Tag]:
        ...


class MemoryTagResolver:
    """Tag resolver backed by the in-memory feature store's tag records."""

    def __init__(self, store: MemoryFeatureStore):
        self.store = store

    def upsert(self, tags: Iterable[TagInput | tuple[str, str]]) -> set[Tag]:
        resolved: set[Tag] = set()
        with self.store.transaction():
            records: dict[tuple[str, str], Tag] = self.store.tag_records
            for item in tags:
                requested = TagInput.coerce(item)
                key = (requested.name, requested.value)
                tag = records.get(key)
                if tag is None:
                    tag = Tag(name=requested.name, value=requested.value)
                    records[key] = tag
                    log.info("[TAG] Created: %s=%s (%s)", tag.name, tag.value, tag.id)
                resolved.add(tag)
        return resolved
