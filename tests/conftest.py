"""
Shared pytest fixtures for the feature catalog test suite.

Everything runs against the in-memory store unless a test opts into
Postgres via TEST_DATABASE_URL.
"""

import pytest

from features.catalog import FeatureService, MemoryFeatureStore
from features.tags import MemoryTagResolver


@pytest.fixture
def store():
    return MemoryFeatureStore()


@pytest.fixture
def service(store):
    return FeatureService(store, MemoryTagResolver(store))


def store_state(store):
    """Observable state of a memory store, for before/after comparisons."""
    features = [f.to_dict() for f in store.get_features(0, 10_000)]
    tags = sorted((t.name, t.value, t.id) for t in store.tag_records.values())
    return features, tags
