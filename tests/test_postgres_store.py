"""
Postgres store integration tests.

Run only when TEST_DATABASE_URL points at a disposable database; the
catalog tables in it are dropped and recreated for every test.
"""

import os

import pytest

from features.catalog import FeatureService
from features.catalog.errors import (
    DependencyNotFoundError,
    DuplicateFeatureError,
    FeatureNotDeletableError,
    RecursiveDependencyError,
)

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")


@pytest.fixture
def pg_service():
    import psycopg2

    from features.catalog.db import PostgresFeatureStore
    from features.tags.db import PostgresTagResolver

    conn = psycopg2.connect(TEST_DATABASE_URL)
    conn.autocommit = True
    with conn.cursor() as cur:
        cur.execute("DROP TABLE IF EXISTS feature_tags, feature_dependencies, features, tags CASCADE")
    conn.close()

    store = PostgresFeatureStore(TEST_DATABASE_URL)
    store.init_db()
    return FeatureService(store, PostgresTagResolver(store))


def test_round_trip(pg_service):
    base = pg_service.create_feature("base", docker_data="FROM debian", tags=[("os", "debian")])
    app = pg_service.create_feature("app", dependency_names=["BASE"], description="app")

    loaded = pg_service.get_feature("App")
    assert loaded.id == app.id
    assert loaded.dependencies == {base.id}
    assert loaded.description == "app"
    assert {(t.name, t.value) for t in pg_service.get_feature("base").tags} == {("os", "debian")}
    assert [f.name for f in pg_service.get_sorted_features_by_names(["app"])] == ["base", "app"]


def test_invariants(pg_service):
    pg_service.create_feature("base")
    pg_service.create_feature("app", dependency_names=["base"])

    with pytest.raises(DuplicateFeatureError):
        pg_service.create_feature("Base")
    with pytest.raises(DependencyNotFoundError):
        pg_service.create_feature("x", dependency_names=["nonexistent"])
    with pytest.raises(RecursiveDependencyError):
        pg_service.update_feature("base", dependency_names=["app"])
    with pytest.raises(FeatureNotDeletableError):
        pg_service.delete_feature("base")

    assert pg_service.get_features_with_total_count().total == 2
    assert pg_service.get_feature("base").dependencies == set()

    pg_service.delete_feature("app")
    pg_service.delete_feature("base")
    assert pg_service.list_features() == []


def test_rename_and_approve(pg_service):
    pg_service.create_feature("base")
    pg_service.create_feature("app", dependency_names=["base"])
    pg_service.update_feature("base", new_name="core")
    pg_service.approve_feature("core")

    assert pg_service.get_feature("core").approved is True
    assert [f.name for f in pg_service.get_sorted_features_by_names(["app"])] == ["core", "app"]
