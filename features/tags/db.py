"""
Postgres tag resolver.

Table:
  tags  — one row per distinct (name, value) pair
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from features.tags.models import Tag, TagInput, _new_tag_id

if TYPE_CHECKING:
    from features.catalog.db import PostgresFeatureStore

log = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tags (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    value           TEXT NOT NULL DEFAULT '',
    created_at      TIMESTAMPTZ DEFAULT now(),
    UNIQUE (name, value)
);
"""


class PostgresTagResolver:
    """Upserts tags using the cursor of the active feature store transaction."""

    def __init__(self, store: PostgresFeatureStore):
        self.store = store

    def upsert(self, tags: Iterable[TagInput | tuple[str, str]]) -> set[Tag]:
        resolved: set[Tag] = set()
        with self.store.transaction(), self.store.cursor() as cur:
            for item in tags:
                requested = TagInput.coerce(item)
                # DO UPDATE (a no-op write) so RETURNING yields the existing row too
                cur.execute("""
                    INSERT INTO tags (id, name, value)
                    VALUES (%(id)s, %(name)s, %(value)s)
                    ON CONFLICT (name, value) DO UPDATE SET name = EXCLUDED.name
                    RETURNING id, name, value
                """, {
                    "id": _new_tag_id(),
                    "name": requested.name,
                    "value": requested.value,
                })
                row = cur.fetchone()
                resolved.add(Tag(id=row["id"], name=row["name"], value=row["value"]))
        log.debug("[TAG] Upserted %d tag(s)", len(resolved))
        return resolved
