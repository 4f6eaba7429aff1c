"""
Application wiring for the feature catalog.

Builds the store, tag resolver and FeatureService from config. The HTTP
layer (if any) lives outside this project and only needs create_service().
"""

from __future__ import annotations

import logging

import config
from features.catalog import FeatureService, MemoryFeatureStore
from features.tags import MemoryTagResolver

log = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def create_store(backend: str | None = None):
    """Return a feature store for ``backend`` (defaults to config.FEATURE_STORE)."""
    backend = (backend or config.FEATURE_STORE).lower()
    if backend == "memory":
        return MemoryFeatureStore()
    if backend != "postgres":
        raise ValueError(f"Unknown feature store backend: {backend}")

    from features.catalog.db import PostgresFeatureStore

    store = PostgresFeatureStore(config.DATABASE_URL)
    try:
        store.init_db()
        log.info("Postgres feature store initialized")
    except Exception as e:
        log.warning("Could not connect to Postgres: %s (features will be in-memory only)", e)
        return MemoryFeatureStore()
    return store


def create_service(store=None) -> FeatureService:
    store = store if store is not None else create_store()
    if isinstance(store, MemoryFeatureStore):
        return FeatureService(store, MemoryTagResolver(store))

    from features.tags.db import PostgresTagResolver

    return FeatureService(store, PostgresTagResolver(store))
