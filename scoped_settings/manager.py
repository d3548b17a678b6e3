"""Settings manager: cached, optionally scoped access to stored settings.

Usage:
    manager = SettingsManager(SettingsRepository(SessionLocal), MemoryCache())

    manager.set("mail.driver", "smtp")
    manager.get("mail.driver")                    # "smtp"
    manager.for_(user).set("ui.theme", "dark")    # scoped to one user
    manager.no_cache().get("mail")                # {"mail.driver": "smtp"}

``no_cache()`` and ``for_()`` return a configured copy; the manager they are
called on is left untouched, so one instance can be shared between callers.
"""

import copy
import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from scoped_settings.cache import CacheBackend
from scoped_settings.config import config
from scoped_settings.contracts import Configurable
from scoped_settings.exceptions import MissingKeyName
from scoped_settings.keys import KeyParts, cache_key, join_key, resolve_key
from scoped_settings.repository import SettingsRepository
from scoped_settings.value_adapter import ValueAdapter

logger = logging.getLogger(__name__)


class SettingsManager:
    """Facade over the settings table, the cache and the value adapter."""

    def __init__(
        self,
        repository: SettingsRepository,
        cache: CacheBackend,
        adapter: Optional[ValueAdapter] = None,
        cache_prefix: Optional[str] = None,
    ):
        """
        Initialize settings manager.

        Args:
            repository: Storage for setting rows
            cache: Cache backend for decoded values
            adapter: Value adapter (defaults to one using the global entity registry)
            cache_prefix: Namespace for cache keys (defaults to SETTINGS_CACHE_PREFIX)
        """
        self.repository = repository
        self.cache = cache
        self.adapter = adapter or ValueAdapter(strict_collections=config.SETTINGS_STRICT_ENTITY_COLLECTIONS)
        self.cache_prefix = cache_prefix or config.SETTINGS_CACHE_PREFIX
        self.configurable: Optional[Configurable] = None
        self.cached = True

    def no_cache(self) -> "SettingsManager":
        """Get a copy that reads from and writes to the database only."""
        clone = copy.copy(self)
        clone.cached = False
        return clone

    def for_(self, configurable: Configurable) -> "SettingsManager":
        """Get a copy bound to a configurable scope.

        The bound scope overrides any scope written into the key itself.
        """
        clone = copy.copy(self)
        clone.configurable = configurable
        return clone

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value, or every value of a group when key has no item segment.

        Args:
            key: "group.item[.table.id]" or "group"
            default: Returned (and not cached) when the item does not exist

        Returns:
            Decoded value, a {full_key: value} dict for groups, or default
        """
        parts = self._resolve(key)
        item_cache_key = self._cache_key(parts)

        if self.cached:
            result = self.cache.get(item_cache_key)
            if result is not None:
                logger.debug(f"Settings cache HIT: {item_cache_key}")
                return result if parts.has_key_name else dict(result)
            logger.debug(f"Settings cache MISS: {item_cache_key}")

        if not parts.has_key_name:
            rows = self.repository.fetch_group(parts)
            values: Dict[str, Any] = {
                join_key(row.group_name, row.key_name, row.configurable_table, row.configurable_id):
                    self.adapter.restore(row.value)
                for row in rows
            }
            # Callers get their own dict; the cached snapshot is never handed out
            self._save_to_cache(item_cache_key, values)
            return dict(values)

        row = self.repository.fetch_one(parts)
        if row is None:
            return default

        return self._save_to_cache(item_cache_key, self.adapter.restore(row.value))

    def set(self, key: str, value: Any) -> Any:
        """
        Save a setting value.

        Raises:
            MissingKeyName: If key has no item segment
            SerializationError: If the value cannot be encoded (nothing is written)

        Returns:
            The value as given
        """
        parts = self._resolve(key)
        if not parts.has_key_name:
            raise MissingKeyName(key)

        payload = self.adapter.to_json(self.adapter.savable(value))
        self.repository.upsert(parts, payload)
        logger.info(f"Setting saved: {self._describe(parts)}")

        self._invalidate_related(parts)
        item_cache_key = self._cache_key(parts)
        if self.cached:
            return self._save_to_cache(item_cache_key, value)

        self.cache.forget(item_cache_key)
        return value

    def unset(self, key: str) -> bool:
        """
        Delete a setting value.

        The cache entry is forgotten even when no row matched.

        Raises:
            MissingKeyName: If key has no item segment

        Returns:
            True if at least one row was deleted
        """
        parts = self._resolve(key)
        if not parts.has_key_name:
            raise MissingKeyName(key)

        # An unscoped delete also removes the item from every scope
        scopes = self.repository.fetch_scopes(parts) if parts.scope is None else []
        deleted = self.repository.delete(parts)
        logger.info(f"Setting unset: {self._describe(parts)} ({deleted} row(s) deleted)")

        self.cache.forget(self._cache_key(parts))
        self._invalidate_related(parts)
        for configurable_table, configurable_id in scopes:
            scoped = replace(parts, configurable_table=configurable_table, configurable_id=configurable_id)
            self.cache.forget(self._cache_key(scoped))
            self.cache.forget(self._cache_key(scoped.group()))
        return deleted > 0

    def _resolve(self, key: str) -> KeyParts:
        return resolve_key(key, self.configurable)

    def _cache_key(self, parts: KeyParts) -> str:
        return cache_key(parts, self.cache_prefix)

    def _save_to_cache(self, key: str, value: Any) -> Any:
        if self.cached:
            self.cache.set(key, value)
        return value

    def _invalidate_related(self, parts: KeyParts) -> None:
        # Unscoped reads of the item and of the group can both return a scoped row
        stale_keys = {self._cache_key(parts.unscoped().group())}
        if parts.scope is not None:
            stale_keys.add(self._cache_key(parts.group()))
            stale_keys.add(self._cache_key(parts.unscoped()))
        for stale_key in stale_keys:
            self.cache.forget(stale_key)

    @staticmethod
    def _describe(parts: KeyParts) -> str:
        scope = parts.scope
        name = f"{parts.group_name}.{parts.key_name}"
        return f"{name} [{scope[0]}:{scope[1]}]" if scope else name
