"""
Postgres backing store for catalog features.

Tables:
  features              — one row per feature
  feature_dependencies  — one row per dependency edge (feature → dependency)
  feature_tags          — links features to rows in the tags table

Edges are stored as feature ids, so renames never touch them. A unique
index on lower(name) and the non-cascading foreign key on
feature_dependencies.dependency_id back the service-level uniqueness and
referential integrity checks at the database level.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

import psycopg2
import psycopg2.errors
import psycopg2.extensions
import psycopg2.extras

import config
from features.catalog.errors import ConcurrentModificationError
from features.catalog.models import Feature
from features.tags import db as tag_db
from features.tags.models import Tag

log = logging.getLogger(__name__)

# ── Schema ────────────────────────────────────────────────────────────

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS features (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL,
    docker_data       TEXT NOT NULL DEFAULT '',
    test_instruction  TEXT,
    description       TEXT,
    approved          BOOLEAN NOT NULL DEFAULT false,
    created_at        TIMESTAMPTZ DEFAULT now(),
    updated_at        TIMESTAMPTZ DEFAULT now()
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_features_name_lower ON features (lower(name));

CREATE TABLE IF NOT EXISTS feature_dependencies (
    feature_id      TEXT NOT NULL REFERENCES features(id) ON DELETE CASCADE,
    dependency_id   TEXT NOT NULL REFERENCES features(id),
    PRIMARY KEY (feature_id, dependency_id)
);

CREATE INDEX IF NOT EXISTS idx_feature_dependencies_dependency ON feature_dependencies(dependency_id);

CREATE TABLE IF NOT EXISTS feature_tags (
    feature_id      TEXT NOT NULL REFERENCES features(id) ON DELETE CASCADE,
    tag_id          TEXT NOT NULL REFERENCES tags(id),
    PRIMARY KEY (feature_id, tag_id)
);
"""

_SELECT_FEATURES = """
    SELECT
        f.id, f.name, f.docker_data, f.test_instruction, f.description, f.approved,
        coalesce(
            (SELECT array_agg(d.dependency_id) FROM feature_dependencies d
             WHERE d.feature_id = f.id),
            '{}'
        ) AS dependencies,
        coalesce(
            (SELECT json_agg(json_build_object('id', t.id, 'name', t.name, 'value', t.value))
             FROM feature_tags ft JOIN tags t ON t.id = ft.tag_id
             WHERE ft.feature_id = f.id),
            '[]'::json
        ) AS tags
    FROM features f
"""

_CONFLICT_ERRORS = (
    psycopg2.errors.SerializationFailure,
    psycopg2.errors.UniqueViolation,
    psycopg2.errors.ForeignKeyViolation,
)


def _row_to_feature(row: dict) -> Feature:
    return Feature(
        id=row["id"],
        name=row["name"],
        docker_data=row["docker_data"] or "",
        test_instruction=row["test_instruction"],
        description=row["description"],
        approved=row["approved"],
        dependencies=set(row["dependencies"] or []),
        tags={Tag(id=t["id"], name=t["name"], value=t["value"]) for t in row["tags"] or []},
    )


class PostgresFeatureStore:
    """Feature store on Postgres, one connection per transaction.

    Transactions run at SERIALIZABLE isolation. Conflicts with concurrent
    writers surface as ConcurrentModificationError and leave nothing
    committed.
    """

    def __init__(self, dsn: str | None = None):
        self.dsn = dsn or config.DATABASE_URL
        self._local = threading.local()

    def init_db(self) -> None:
        """Create tables if they don't exist."""
        conn = psycopg2.connect(self.dsn)
        conn.autocommit = True
        try:
            with conn.cursor() as cur:
                cur.execute(tag_db.SCHEMA_SQL)
                cur.execute(SCHEMA_SQL)
            log.info("Database schema initialized")
        except Exception as e:
            log.error("Failed to initialize database: %s", e)
            raise
        finally:
            conn.close()

    # ── Connection / transaction ──────────────────────────────────────

    @contextmanager
    def transaction(self, readonly: bool = False) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            # Nested: join the outer transaction
            yield
            return

        conn = psycopg2.connect(self.dsn)
        conn.set_session(
            isolation_level=psycopg2.extensions.ISOLATION_LEVEL_SERIALIZABLE,
            readonly=readonly,
        )
        self._local.conn = conn
        try:
            with conn:  # commit on success, rollback on exception
                yield
        except _CONFLICT_ERRORS as e:
            log.warning("[STORE] Transaction conflict: %s", e)
            raise ConcurrentModificationError(f"Concurrent modification: {e}") from e
        finally:
            self._local.conn = None
            conn.close()

    @contextmanager
    def cursor(self):
        """Yield a dict cursor on the active transaction's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            raise RuntimeError("cursor() requires an active transaction()")
        cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        try:
            yield cur
        finally:
            cur.close()

    def _fetch_all(self, where_sql: str, params: tuple = ()) -> list[Feature]:
        with self.transaction(readonly=True), self.cursor() as cur:
            cur.execute(_SELECT_FEATURES + where_sql, params)
            return [_row_to_feature(row) for row in cur.fetchall()]

    def _fetch_one(self, where_sql: str, params: tuple) -> Feature | None:
        rows = self._fetch_all(where_sql, params)
        return rows[0] if rows else None

    # ── Reads ─────────────────────────────────────────────────────────

    def find_by_name(self, name: str) -> Feature | None:
        return self._fetch_one(" WHERE lower(f.name) = lower(%s)", (name,))

    def find_by_id(self, feature_id: str) -> Feature | None:
        return self._fetch_one(" WHERE f.id = %s", (feature_id,))

    def find_by_name_containing(self, substring: str) -> list[Feature]:
        return self._fetch_all(
            " WHERE strpos(lower(f.name), lower(%s)) > 0 ORDER BY lower(f.name), f.id",
            (substring,),
        )

    def get_features(self, offset: int, limit: int) -> list[Feature]:
        return self._fetch_all(
            " ORDER BY lower(f.name), f.id OFFSET %s LIMIT %s", (offset, limit)
        )

    def find_all_referencing(self, feature: Feature) -> list[Feature]:
        return self._fetch_all(
            " WHERE f.id IN (SELECT feature_id FROM feature_dependencies WHERE dependency_id = %s)"
            " ORDER BY lower(f.name), f.id",
            (feature.id,),
        )

    def count(self) -> int:
        with self.transaction(readonly=True), self.cursor() as cur:
            cur.execute("SELECT count(*) AS total FROM features")
            return cur.fetchone()["total"]

    # ── Writes ────────────────────────────────────────────────────────

    def save(self, feature: Feature) -> Feature:
        """Insert or update a feature together with its edges and tag links."""
        with self.transaction(), self.cursor() as cur:
            cur.execute("""
                INSERT INTO features (
                    id, name, docker_data, test_instruction, description, approved
                ) VALUES (
                    %(id)s, %(name)s, %(docker_data)s, %(test_instruction)s,
                    %(description)s, %(approved)s
                )
                ON CONFLICT (id) DO UPDATE SET
                    name = EXCLUDED.name,
                    docker_data = EXCLUDED.docker_data,
                    test_instruction = EXCLUDED.test_instruction,
                    description = EXCLUDED.description,
                    approved = EXCLUDED.approved,
                    updated_at = now()
            """, {
                "id": feature.id,
                "name": feature.name,
                "docker_data": feature.docker_data,
                "test_instruction": feature.test_instruction,
                "description": feature.description,
                "approved": feature.approved,
            })

            cur.execute("DELETE FROM feature_dependencies WHERE feature_id = %s", (feature.id,))
            if feature.dependencies:
                psycopg2.extras.execute_values(
                    cur,
                    "INSERT INTO feature_dependencies (feature_id, dependency_id) VALUES %s",
                    [(feature.id, dep_id) for dep_id in sorted(feature.dependencies)],
                )

            cur.execute("DELETE FROM feature_tags WHERE feature_id = %s", (feature.id,))
            if feature.tags:
                psycopg2.extras.execute_values(
                    cur,
                    "INSERT INTO feature_tags (feature_id, tag_id) VALUES %s",
                    [(feature.id, tag.id) for tag in feature.tags],
                )
        return feature

    def delete(self, feature: Feature) -> None:
        with self.transaction(), self.cursor() as cur:
            cur.execute("DELETE FROM features WHERE id = %s", (feature.id,))
