"""
Features package — each sub-package encapsulates a self-contained part of the catalog.

Convention:
  features/<feature_name>/
    __init__.py      — public API re-exports
    models.py        — data models specific to this feature
    store.py         — storage contract and in-memory backend
    db.py            — Postgres backend (if applicable)
    ...              — any other feature-specific modules
"""
