"""Cache backends for decoded setting values."""

import logging
import pickle
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import redis

from scoped_settings.config import config

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Minimal cache interface the settings manager depends on."""

    def get(self, key: str) -> Any:
        """Return cached value or None."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store value under key using the backend's expiry policy."""
        ...

    def forget(self, key: str) -> None:
        """Remove key from cache."""
        ...


@dataclass
class CacheEntry:
    """Cache entry for a setting value."""
    value: Any
    expires_at: Optional[float] = None


class MemoryCache:
    """In-process cache for setting values."""

    def __init__(self, default_ttl: Optional[int] = None):
        """
        Initialize memory cache.

        Args:
            default_ttl: TTL in seconds for every entry (None keeps entries until forgotten)
        """
        self.default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        """
        Get cached value.

        Args:
            key: Cache key

        Returns:
            Cached value if present and not expired, None otherwise
        """
        with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                return None

            if entry.expires_at is not None and time.time() > entry.expires_at:
                del self._cache[key]
                return None

            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Cache a value.

        Args:
            key: Cache key
            value: Native value (stored as-is, not copied)
            ttl: Optional TTL override in seconds
        """
        ttl = ttl if ttl is not None else self.default_ttl
        expires_at = time.time() + ttl if ttl else None

        with self._lock:
            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)

    def forget(self, key: str) -> None:
        """Remove a cache entry if present."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class RedisCache:
    """Redis-backed cache for setting values.

    Values are pickled so datetimes, entities and entity collections come
    back as the same Python objects. Connection errors are not caught.
    """

    def __init__(self, client: redis.Redis, default_ttl: Optional[int] = None):
        self.client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_config(cls) -> "RedisCache":
        """Create a RedisCache using REDIS_* settings."""
        client = redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            db=config.REDIS_DB,
            password=config.REDIS_PASSWORD,
            decode_responses=False,  # Pickled payloads are binary
            socket_connect_timeout=5,
        )
        logger.info(f"Using Redis settings cache at {config.REDIS_HOST}:{config.REDIS_PORT}/{config.REDIS_DB}")
        return cls(client, default_ttl=config.SETTINGS_CACHE_TTL_SECONDS)

    def get(self, key: str) -> Any:
        raw = self.client.get(key)
        if raw is None:
            return None
        return pickle.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        payload = pickle.dumps(value)
        if ttl:
            self.client.setex(key, ttl, payload)
        else:
            self.client.set(key, payload)

    def forget(self, key: str) -> None:
        self.client.delete(key)
