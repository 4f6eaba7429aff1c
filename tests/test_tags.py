"""Tag inputs and the in-memory tag resolver."""

import pytest
from pydantic import ValidationError

from features.catalog.errors import ErrorCode, InvalidTagError, ServiceError
from features.tags import MemoryTagResolver, Tag, TagInput


def test_tag_input_coercion():
    assert TagInput.coerce(("os", "linux")) == TagInput(name="os", value="linux")
    assert TagInput.coerce({"name": "os"}) == TagInput(name="os", value="")
    existing = TagInput(name="lang", value="python")
    assert TagInput.coerce(existing) is existing


def test_tag_input_rejects_blank_name():
    with pytest.raises(ValidationError):
        TagInput(name="  ", value="x")


def test_tag_identity_ignores_id():
    assert Tag(name="os", value="linux", id="tag-1") == Tag(name="os", value="linux", id="tag-2")
    assert len({Tag(name="os", value="linux"), Tag(name="os", value="linux")}) == 1


def test_upsert_reuses_existing_records(store):
    resolver = MemoryTagResolver(store)

    first = resolver.upsert([("os", "linux"), ("lang", "python")])
    second = resolver.upsert([TagInput(name="os", value="linux"), ("os", "linux")])

    assert len(store.tag_records) == 2
    assert len(second) == 1
    linux_ids = {t.id for t in first | second if t.name == "os"}
    assert len(linux_ids) == 1


def test_features_share_tag_records(service, store):
    a = service.create_feature("a", tags=[("os", "linux")])
    b = service.create_feature("b", tags=[{"name": "os", "value": "linux"}])

    assert [t.id for t in a.tags] == [t.id for t in b.tags]
    assert len(store.tag_records) == 1


def test_invalid_tag_rolls_back_feature_creation(service, store):
    with pytest.raises(InvalidTagError) as exc:
        service.create_feature("a", tags=[("os", "linux"), ("", "bad")])

    assert isinstance(exc.value, ServiceError)
    assert exc.value.code == ErrorCode.TAG_INVALID
    assert exc.value.status_code == 400
    assert exc.value.names == ["=bad"]
    assert exc.value.to_response().code == ErrorCode.TAG_INVALID

    assert store.count() == 0
    assert store.tag_records == {}


@pytest.mark.parametrize("tag", [("", "v"), {"value": "v"}, ("only-name",)])
def test_malformed_tags_are_rejected_as_bad_requests(service, store, tag):
    with pytest.raises(InvalidTagError):
        service.create_feature("x", tags=[tag])
    assert store.find_by_name("x") is None
