"""Typed, scoped settings store with transparent caching."""

from scoped_settings.accessor import (
    get_settings_manager,
    reset_settings_manager,
    set_settings_manager,
    settings,
)
from scoped_settings.cache import CacheBackend, MemoryCache, RedisCache
from scoped_settings.contracts import Configurable
from scoped_settings.entities import EntityCollection, EntityRegistry, entity_registry
from scoped_settings.exceptions import (
    InvalidEntityType,
    InvalidSettingKey,
    MalformedEnvelope,
    MissingKeyName,
    PartialEntityCollection,
    SerializationError,
    SettingsException,
)
from scoped_settings.keys import KeyParts, cache_key, parse_key, resolve_key
from scoped_settings.manager import SettingsManager
from scoped_settings.repository import SettingsRepository
from scoped_settings.value_adapter import TypeTag, ValueAdapter

__all__ = [
    "CacheBackend",
    "Configurable",
    "EntityCollection",
    "EntityRegistry",
    "InvalidEntityType",
    "InvalidSettingKey",
    "KeyParts",
    "MalformedEnvelope",
    "MemoryCache",
    "MissingKeyName",
    "PartialEntityCollection",
    "RedisCache",
    "SerializationError",
    "SettingsException",
    "SettingsManager",
    "SettingsRepository",
    "TypeTag",
    "ValueAdapter",
    "cache_key",
    "entity_registry",
    "get_settings_manager",
    "parse_key",
    "reset_settings_manager",
    "resolve_key",
    "set_settings_manager",
    "settings",
]
