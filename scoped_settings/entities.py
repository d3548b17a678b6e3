"""Registry of domain entity types that may be stored inside setting values.

Entity references are persisted by name and identifier, so every type that
can appear in a setting value has to be registered up front together with
the functions that load it back.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import inspect, select
from sqlalchemy.orm import Mapper

from scoped_settings.exceptions import InvalidEntityType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityType:
    """A registered entity type and its loaders."""
    name: str
    model: type
    fetch_one: Callable[[Any], Optional[Any]]
    fetch_many: Callable[[List[Any]], List[Any]]
    get_id: Callable[[Any], Any]


class EntityCollection(Sequence):
    """Ordered collection of entities of one registered type.

    Plain lists are stored as ``array`` values; wrap entities in an
    EntityCollection to store them by reference instead.
    """

    def __init__(self, items: Iterable[Any] = (), model: Optional[type] = None):
        self._items = list(items)
        if model is None and self._items:
            model = type(self._items[0])
        self.model = model

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, EntityCollection):
            return self.model is other.model and self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        model = self.model.__name__ if self.model else None
        return f"EntityCollection(model={model}, items={self._items!r})"


def model_name(model: type) -> str:
    """Fully-qualified class name used as the stored entity type name."""
    return f"{model.__module__}.{model.__qualname__}"


class EntityRegistry:
    """Maps stable type names to entity loaders."""

    def __init__(self):
        self._by_name: Dict[str, EntityType] = {}

    def register(
        self,
        model: type,
        fetch_one: Callable[[Any], Optional[Any]],
        fetch_many: Callable[[List[Any]], List[Any]],
        get_id: Callable[[Any], Any],
        name: Optional[str] = None,
    ) -> EntityType:
        """
        Register an entity type.

        Args:
            model: Entity class; instances are matched with isinstance
            fetch_one: Load one entity by id, returning None when missing
            fetch_many: Load all entities whose id is in the given list
            get_id: Extract the identifier from an entity
            name: Stored type name (defaults to the fully-qualified class name)

        Returns:
            The registered EntityType
        """
        entry = EntityType(
            name=name or model_name(model),
            model=model,
            fetch_one=fetch_one,
            fetch_many=fetch_many,
            get_id=get_id,
        )
        self._by_name[entry.name] = entry
        logger.debug(f"Registered entity type {entry.name}")
        return entry

    def register_model(self, model: type, session_factory, name: Optional[str] = None) -> EntityType:
        """
        Register a mapped SQLAlchemy model, loading entities through session_factory.

        Raises:
            InvalidEntityType: If model is not a mapped class with a single-column primary key
        """
        mapper = inspect(model, raiseerr=False)
        if not isinstance(mapper, Mapper):
            raise InvalidEntityType(f"Invalid model class {model_name(model)}!")
        if len(mapper.primary_key) != 1:
            raise InvalidEntityType(
                f"Model class {model_name(model)} must have a single-column primary key"
            )

        pk_column = mapper.primary_key[0]
        pk_attr = mapper.get_property_by_column(pk_column).key
        coerce = _id_coercer(pk_column)

        def fetch_one(entity_id):
            with session_factory() as session:
                return session.get(model, coerce(entity_id))

        def fetch_many(entity_ids):
            if not entity_ids:
                return []
            ids = [coerce(entity_id) for entity_id in entity_ids]
            with session_factory() as session:
                result = session.execute(select(model).where(getattr(model, pk_attr).in_(ids)))
                return list(result.scalars().all())

        return self.register(
            model,
            fetch_one=fetch_one,
            fetch_many=fetch_many,
            get_id=lambda entity: getattr(entity, pk_attr),
            name=name,
        )

    def get(self, name: str) -> EntityType:
        """
        Look up a registered type by stored name.

        Raises:
            InvalidEntityType: If nothing is registered under name
        """
        if not isinstance(name, str) or name not in self._by_name:
            raise InvalidEntityType(f"Invalid model class {name}!")
        return self._by_name[name]

    def for_model(self, model: Optional[type]) -> Optional[EntityType]:
        """Entry for a class or one of its registered base classes."""
        if model is None:
            return None
        for entry in self._by_name.values():
            if issubclass(model, entry.model):
                return entry
        return None

    def for_instance(self, value: Any) -> Optional[EntityType]:
        """Entry matching an entity instance, or None if value is not a registered entity."""
        return self.for_model(type(value))

    def clear(self) -> None:
        """Remove all registrations."""
        self._by_name.clear()


def _id_coercer(column) -> Callable[[Any], Any]:
    """Build a converter from stored (JSON) ids to the primary key's Python type."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return lambda value: value

    def coerce(value):
        if value is None or isinstance(value, python_type):
            return value
        return python_type(value)

    return coerce


# Global registry instance
entity_registry = EntityRegistry()
