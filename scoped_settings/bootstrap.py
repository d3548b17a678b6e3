"""Wiring of the settings manager from configuration."""

import logging

from scoped_settings.cache import CacheBackend, MemoryCache, RedisCache
from scoped_settings.config import config
from scoped_settings.manager import SettingsManager
from scoped_settings.repository import SettingsRepository
from scoped_settings.value_adapter import ValueAdapter

logger = logging.getLogger(__name__)

LOG_FORMAT = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'


def configure_logging() -> None:
    """Configure root logging with SETTINGS_LOG_LEVEL and the JSON-line format."""
    logging.basicConfig(
        level=getattr(logging, config.SETTINGS_LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_cache() -> CacheBackend:
    """Create the cache backend selected by SETTINGS_CACHE_DRIVER."""
    if config.SETTINGS_CACHE_DRIVER == "redis":
        return RedisCache.from_config()
    return MemoryCache(default_ttl=config.SETTINGS_CACHE_TTL_SECONDS)


def create_manager(session_factory=None, cache: CacheBackend = None) -> SettingsManager:
    """
    Build a SettingsManager from configuration.

    Args:
        session_factory: SQLAlchemy session factory (defaults to db.session.SessionLocal)
        cache: Cache backend (defaults to create_cache())

    Returns:
        Configured SettingsManager
    """
    config.validate()

    if session_factory is None:
        from scoped_settings.db.session import get_session_local
        session_factory = get_session_local()

    manager = SettingsManager(
        repository=SettingsRepository(session_factory),
        cache=cache if cache is not None else create_cache(),
        adapter=ValueAdapter(strict_collections=config.SETTINGS_STRICT_ENTITY_COLLECTIONS),
        cache_prefix=config.SETTINGS_CACHE_PREFIX,
    )
    logger.info(
        f"Settings manager ready (table: {config.SETTINGS_TABLE_NAME}, "
        f"cache: {type(manager.cache).__name__}, prefix: {manager.cache_prefix})"
    )
    return manager
