"""Conversion between native setting values and stored {type, value} envelopes.

The envelope is what lands in the ``value`` column (as JSON). It records
enough type information to hand back the same kind of value on read:

    {"type": "int", "value": 42}
    {"type": "timestamp", "value": "2024-06-07T17:29:02+00:00"}
    {"type": "entity-ref", "value": {"model": "myapp.models.User", "id": 7}}
    {"type": "entity-collection", "value": {"model": "myapp.models.Tag", "ids": [1, 3]}}
"""

import json
import logging
import uuid
from collections.abc import Mapping, Sequence, Set
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from scoped_settings.entities import EntityCollection, EntityRegistry, entity_registry
from scoped_settings.exceptions import (
    MalformedEnvelope,
    PartialEntityCollection,
    SerializationError,
)

logger = logging.getLogger(__name__)


class TypeTag(str, Enum):
    """Type tags recognised in a value envelope."""
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    ARRAY = "array"
    STRING = "string"
    TIMESTAMP = "timestamp"
    ENTITY_REF = "entity-ref"
    ENTITY_COLLECTION = "entity-collection"


_TAGS = {tag.value: tag for tag in TypeTag}


class ValueAdapter:
    """Bidirectional codec for setting values."""

    def __init__(self, registry: Optional[EntityRegistry] = None, strict_collections: bool = False):
        """
        Initialize value adapter.

        Args:
            registry: Entity registry used for entity references (defaults to the global one)
            strict_collections: Raise PartialEntityCollection instead of dropping
                members that no longer exist
        """
        self.registry = registry if registry is not None else entity_registry
        self.strict_collections = strict_collections

    def savable(self, payload: Any) -> Dict[str, Any]:
        """
        Convert any value into a storable envelope.

        Detection order matters: bool is checked before int because bool is
        an int subclass, and concrete containers before entities.

        Args:
            payload: Native value

        Returns:
            Envelope dict with "type" and "value" keys
        """
        if isinstance(payload, bool):
            return self._envelope(TypeTag.BOOL, payload)

        if isinstance(payload, int):
            return self._envelope(TypeTag.INT, payload)

        if isinstance(payload, float):
            return self._envelope(TypeTag.FLOAT, payload)

        if isinstance(payload, (list, tuple)):
            return self._envelope(TypeTag.ARRAY, list(payload))

        if isinstance(payload, dict):
            return self._envelope(TypeTag.ARRAY, payload)

        if isinstance(payload, (datetime, date)):
            return self._envelope(TypeTag.TIMESTAMP, payload.isoformat())

        entry = self.registry.for_instance(payload)
        if entry is not None:
            return self._envelope(TypeTag.ENTITY_REF, {
                "model": entry.name,
                "id": _plain_id(entry.get_id(payload)),
            })

        if isinstance(payload, EntityCollection):
            return self._envelope(TypeTag.ENTITY_COLLECTION, self._from_entity_collection(payload))

        if isinstance(payload, Mapping):
            return self._envelope(TypeTag.ARRAY, dict(payload))

        if isinstance(payload, (Set, Sequence)) and not isinstance(payload, (str, bytes, bytearray)):
            return self._envelope(TypeTag.ARRAY, list(payload))

        if payload is None or isinstance(payload, str):
            return self._envelope(TypeTag.STRING, payload)

        return self._envelope(TypeTag.STRING, str(payload))

    def restore(self, payload: Union[Dict[str, Any], str, bytes, None]) -> Any:
        """
        Get the native value back from an envelope or its JSON text.

        Raises:
            SerializationError: If JSON text cannot be decoded
            MalformedEnvelope: If the payload is not a {type, value} mapping,
                or the value does not fit its type
            InvalidEntityType: If an entity tag names an unregistered type
            PartialEntityCollection: In strict mode, if collection members are gone
        """
        envelope = self.validate(payload)
        tag = envelope["type"]
        value = envelope["value"]

        if tag is TypeTag.BOOL:
            return bool(value)
        if tag in (TypeTag.INT, TypeTag.FLOAT):
            cast = int if tag is TypeTag.INT else float
            try:
                return cast(value)
            except (TypeError, ValueError) as e:
                raise MalformedEnvelope(f"Invalid {tag.value} value {value!r}") from e
        if tag is TypeTag.TIMESTAMP:
            return _parse_timestamp(value)
        if tag is TypeTag.ENTITY_REF:
            return self._to_entity(value)
        if tag is TypeTag.ENTITY_COLLECTION:
            return self._to_entity_collection(value)
        return value

    def validate(self, payload: Union[Dict[str, Any], str, bytes, None]) -> Dict[str, Any]:
        """
        Make sure the payload has the envelope structure.

        Returns:
            Envelope dict whose "type" is a TypeTag member

        Raises:
            SerializationError: If JSON text cannot be decoded
            MalformedEnvelope: If "type" or "value" is missing or the tag is unknown
        """
        data = self.from_json(payload) if isinstance(payload, (str, bytes)) else payload

        if not isinstance(data, Mapping) or "type" not in data or "value" not in data:
            raise MalformedEnvelope("Invalid structure! The value couldn't be decoded")

        tag = _TAGS.get(data["type"]) if isinstance(data["type"], str) else None
        if tag is None:
            raise MalformedEnvelope(f"Unknown value type {data['type']!r}")

        return {"type": tag, "value": data["value"]}

    def to_json(self, envelope: Dict[str, Any]) -> str:
        """
        Encode an envelope as JSON text.

        Raises:
            SerializationError: If the value is not JSON serializable (NaN and
                infinities included)
        """
        try:
            return json.dumps(envelope, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to encode setting value: {e}") from e

    def from_json(self, text: Union[str, bytes]) -> Any:
        """
        Decode JSON text.

        Raises:
            SerializationError: If the text is not valid JSON
        """
        try:
            return json.loads(text)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to decode setting value: {e}") from e

    def dumps(self, payload: Any) -> str:
        """Shortcut for to_json(savable(payload))."""
        return self.to_json(self.savable(payload))

    @staticmethod
    def _envelope(tag: TypeTag, value: Any) -> Dict[str, Any]:
        return {"type": tag.value, "value": value}

    def _from_entity_collection(self, collection: EntityCollection) -> Dict[str, Any]:
        # Members are assumed homogeneous; the collection model (or its first member) names the type
        entry = self.registry.for_model(collection.model)
        if entry is None:
            if len(collection) == 0:
                return {"model": None, "ids": []}
            raise SerializationError(f"Entity collection of unregistered type {collection.model!r}")

        return {
            "model": entry.name,
            "ids": [_plain_id(entry.get_id(entity)) for entity in collection],
        }

    def _to_entity(self, data: Any) -> Any:
        if not isinstance(data, Mapping) or "model" not in data or "id" not in data:
            raise MalformedEnvelope("Entity reference must have 'model' and 'id' fields")

        entry = self.registry.get(data["model"])
        entity = entry.fetch_one(data["id"])
        if entity is None:
            logger.debug(f"Entity {entry.name}#{data['id']} referenced by a setting no longer exists")
        return entity

    def _to_entity_collection(self, data: Any) -> EntityCollection:
        if not isinstance(data, Mapping) or "model" not in data or "ids" not in data:
            raise MalformedEnvelope("Entity collection must have 'model' and 'ids' fields")

        ids = data["ids"]
        if not isinstance(ids, list):
            raise MalformedEnvelope("Entity collection 'ids' must be an array")

        if data["model"] is None and not ids:
            return EntityCollection()

        entry = self.registry.get(data["model"])
        found = entry.fetch_many(ids)

        # Keep the stored order; ids whose entity is gone drop out
        by_id = {_plain_id(entry.get_id(entity)): entity for entity in found}
        entities = [by_id[_plain_id(entity_id)] for entity_id in ids if _plain_id(entity_id) in by_id]

        if len(entities) != len(ids):
            missing = [entity_id for entity_id in ids if _plain_id(entity_id) not in by_id]
            if self.strict_collections:
                raise PartialEntityCollection(entry.name, missing)
            logger.warning(f"Entity collection of {entry.name} shrank, missing ids: {missing}")

        return EntityCollection(entities, model=entry.model)


def _plain_id(value: Any) -> Any:
    """Identifier as a JSON-friendly scalar."""
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise MalformedEnvelope(f"Invalid timestamp value: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise MalformedEnvelope(f"Invalid timestamp value: {value!r}") from e
