"""
Catalog feature — the feature dependency graph and the service that guards it.

Public API:
    from features.catalog import Feature, FeatureService, MemoryFeatureStore
    from features.catalog.db import PostgresFeatureStore
    from features.catalog import errors
"""

from features.catalog.models import Feature, FeaturePage
from features.catalog.service import FeatureService
from features.catalog.store import FeatureStore, MemoryFeatureStore

__all__ = ["Feature", "FeaturePage", "FeatureService", "FeatureStore", "MemoryFeatureStore"]
