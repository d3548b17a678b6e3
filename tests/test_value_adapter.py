"""Tests for scoped_settings/value_adapter.py."""

import json
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from conftest import Tag, User
from scoped_settings.entities import EntityCollection, EntityRegistry, model_name
from scoped_settings.exceptions import (
    InvalidEntityType,
    MalformedEnvelope,
    PartialEntityCollection,
    SerializationError,
)
from scoped_settings.value_adapter import TypeTag, ValueAdapter


class TestSavable:
    """Tests for ValueAdapter.savable type detection."""

    def test_bool_detected_before_int(self, adapter):
        assert adapter.savable(True) == {"type": "bool", "value": True}
        assert adapter.savable(False) == {"type": "bool", "value": False}

    def test_int(self, adapter):
        assert adapter.savable(-3) == {"type": "int", "value": -3}

    def test_float(self, adapter):
        assert adapter.savable(2.5) == {"type": "float", "value": 2.5}

    def test_list(self, adapter):
        assert adapter.savable([1, "a"]) == {"type": "array", "value": [1, "a"]}

    def test_tuple_becomes_list(self, adapter):
        assert adapter.savable((1, 2)) == {"type": "array", "value": [1, 2]}

    def test_dict(self, adapter):
        assert adapter.savable({"a": 1}) == {"type": "array", "value": {"a": 1}}

    def test_frozenset(self, adapter):
        assert adapter.savable(frozenset({4})) == {"type": "array", "value": [4]}

    def test_datetime(self, adapter):
        moment = datetime(2024, 6, 7, 17, 29, 2, tzinfo=timezone.utc)
        assert adapter.savable(moment) == {"type": "timestamp", "value": "2024-06-07T17:29:02+00:00"}

    def test_date(self, adapter):
        assert adapter.savable(date(2024, 6, 7)) == {"type": "timestamp", "value": "2024-06-07"}

    def test_string(self, adapter):
        assert adapter.savable("smtp") == {"type": "string", "value": "smtp"}

    def test_none_is_string(self, adapter):
        assert adapter.savable(None) == {"type": "string", "value": None}

    def test_unknown_object_falls_back_to_string(self, adapter):
        assert adapter.savable(Decimal("1.50")) == {"type": "string", "value": "1.50"}

    def test_entity_reference(self, adapter, users):
        envelope = adapter.savable(users["alice"])
        assert envelope == {
            "type": "entity-ref",
            "value": {"model": model_name(User), "id": 1},
        }

    def test_entity_collection(self, adapter, tags):
        envelope = adapter.savable(EntityCollection([tags[2], tags[0]]))
        assert envelope == {
            "type": "entity-collection",
            "value": {"model": model_name(Tag), "ids": [3, 1]},
        }

    def test_plain_list_of_entities_is_not_a_reference(self, adapter, tags):
        envelope = adapter.savable([tags[0]])
        assert envelope["type"] == "array"
        with pytest.raises(SerializationError):
            adapter.to_json(envelope)

    def test_unregistered_entity_collection_raises(self, tags):
        adapter = ValueAdapter(registry=EntityRegistry())
        with pytest.raises(SerializationError):
            adapter.savable(EntityCollection(tags))

    def test_uuid_ids_are_stored_as_strings(self):
        registry = EntityRegistry()
        token = uuid.UUID("12345678-1234-5678-1234-567812345678")

        class Device:
            pass

        registry.register(Device, fetch_one=lambda i: None, fetch_many=lambda ids: [],
                          get_id=lambda entity: token)
        envelope = ValueAdapter(registry=registry).savable(Device())
        assert envelope["value"]["id"] == str(token)


class TestRoundTrip:
    """restore(savable(v)) == v, through JSON text."""

    @pytest.mark.parametrize("value", [
        True,
        False,
        -7,
        0,
        42,
        3.25,
        -0.5,
        [1, [2, 3], {"a": [4]}],
        {"x": 1, "y": {"z": [1, 2]}},
        [],
        "hello",
        "",
        None,
        datetime(2024, 6, 7, 17, 29, 2, tzinfo=timezone.utc),
        datetime(2024, 6, 7, 17, 29, 2),
    ])
    def test_plain_values(self, adapter, value):
        restored = adapter.restore(adapter.to_json(adapter.savable(value)))
        assert restored == value
        assert type(restored) is type(value)

    def test_single_entity(self, adapter, users):
        restored = adapter.restore(adapter.dumps(users["bob"]))
        assert isinstance(restored, User)
        assert restored.id == 2
        assert restored.name == "bob"

    def test_entity_collection_empty(self, adapter, tags):
        restored = adapter.restore(adapter.dumps(EntityCollection([], model=Tag)))
        assert restored == EntityCollection([], model=Tag)

    def test_entity_collection_empty_without_model(self, adapter):
        restored = adapter.restore(adapter.dumps(EntityCollection()))
        assert isinstance(restored, EntityCollection)
        assert len(restored) == 0

    def test_entity_collection_single(self, adapter, tags):
        restored = adapter.restore(adapter.dumps(EntityCollection([tags[1]])))
        assert [tag.label for tag in restored] == ["green"]
        assert restored.model is Tag

    def test_entity_collection_many_keeps_order(self, adapter, tags):
        restored = adapter.restore(adapter.dumps(EntityCollection([tags[2], tags[0], tags[1]])))
        assert [tag.id for tag in restored] == [3, 1, 2]


class TestRestore:
    """Tests for ValueAdapter.restore error paths and entity loading."""

    def test_accepts_dict(self, adapter):
        assert adapter.restore({"type": "int", "value": "5"}) == 5

    def test_timestamp_with_z_suffix(self, adapter):
        restored = adapter.restore({"type": "timestamp", "value": "2024-06-07T17:29:02Z"})
        assert restored == datetime(2024, 6, 7, 17, 29, 2, tzinfo=timezone.utc)

    def test_invalid_timestamp(self, adapter):
        with pytest.raises(MalformedEnvelope):
            adapter.restore({"type": "timestamp", "value": "yesterday"})

    @pytest.mark.parametrize("payload", [
        {"value": 1},
        {"type": "int"},
        '"just a string"',
        "[1, 2]",
        None,
        {"type": "resource", "value": 1},
    ])
    def test_malformed_envelope(self, adapter, payload):
        with pytest.raises(MalformedEnvelope):
            adapter.restore(payload)

    @pytest.mark.parametrize("payload", [
        '{"type": "int", "value": null}',
        {"type": "int", "value": "abc"},
        {"type": "float", "value": "x"},
        {"type": "float", "value": [1.5]},
    ])
    def test_value_of_wrong_type(self, adapter, payload):
        with pytest.raises(MalformedEnvelope):
            adapter.restore(payload)

    def test_invalid_json(self, adapter):
        with pytest.raises(SerializationError):
            adapter.restore("{not json")

    def test_missing_entity_is_none(self, adapter, users):
        payload = {"type": "entity-ref", "value": {"model": model_name(User), "id": 99}}
        assert adapter.restore(payload) is None

    def test_unknown_entity_type(self, adapter):
        payload = {"type": "entity-ref", "value": {"model": "billing.models.Invoice", "id": 1}}
        with pytest.raises(InvalidEntityType):
            adapter.restore(payload)

    def test_unknown_collection_type(self, adapter):
        payload = {"type": "entity-collection", "value": {"model": "billing.models.Invoice", "ids": [1]}}
        with pytest.raises(InvalidEntityType):
            adapter.restore(payload)

    def test_entity_reference_without_id(self, adapter):
        with pytest.raises(MalformedEnvelope):
            adapter.restore({"type": "entity-ref", "value": {"model": model_name(User)}})

    def test_collection_shrinks_when_members_are_gone(self, adapter, tags, session_factory):
        envelope = adapter.savable(EntityCollection(tags))
        with session_factory.begin() as session:
            session.delete(session.get(Tag, 2))

        restored = adapter.restore(envelope)
        assert [tag.id for tag in restored] == [1, 3]

    def test_strict_collection_raises_for_missing_members(self, registry, tags, session_factory):
        adapter = ValueAdapter(registry=registry, strict_collections=True)
        envelope = adapter.savable(EntityCollection(tags))
        with session_factory.begin() as session:
            session.delete(session.get(Tag, 2))

        with pytest.raises(PartialEntityCollection) as exc_info:
            adapter.restore(envelope)
        assert exc_info.value.missing_ids == [2]


class TestJson:
    """Tests for envelope JSON encoding."""

    def test_to_json(self, adapter):
        assert json.loads(adapter.to_json({"type": "int", "value": 1})) == {"type": "int", "value": 1}

    def test_unserializable_value(self, adapter):
        with pytest.raises(SerializationError):
            adapter.to_json(adapter.savable({"when": datetime(2024, 1, 1)}))

    def test_nan_is_rejected(self, adapter):
        with pytest.raises(SerializationError):
            adapter.to_json(adapter.savable(float("nan")))


class TestTypeTag:
    """Tests for TypeTag values."""

    def test_tags_are_strings(self):
        assert TypeTag.ENTITY_REF == "entity-ref"
        assert {tag.value for tag in TypeTag} == {
            "bool", "int", "float", "array", "string", "timestamp", "entity-ref", "entity-collection",
        }
