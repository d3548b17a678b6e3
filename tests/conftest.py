"""Shared fixtures and environment setup for settings store tests."""

import os

# Set environment variables BEFORE any scoped_settings imports
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SETTINGS_TABLE_NAME", "system_settings")
os.environ.setdefault("SETTINGS_CONFIGURABLE_ID_TYPE", "int")
os.environ.setdefault("SETTINGS_CACHE_PREFIX", "system_settings")
os.environ.setdefault("SETTINGS_CACHE_DRIVER", "memory")
os.environ.setdefault("SETTINGS_STRICT_ENTITY_COLLECTIONS", "false")
os.environ.setdefault("SETTINGS_LOG_LEVEL", "WARNING")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")

from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Column, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from scoped_settings.cache import MemoryCache
from scoped_settings.db.models import Base
from scoped_settings.entities import EntityRegistry
from scoped_settings.manager import SettingsManager
from scoped_settings.repository import SettingsRepository
from scoped_settings.value_adapter import ValueAdapter

EntityBase = declarative_base()


class User(EntityBase):
    """Domain entity that can also own settings."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    def get_key(self):
        return self.id

    def get_table(self):
        return self.__tablename__


class Tag(EntityBase):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    label = Column(String(100), nullable=False)


@dataclass
class Scope:
    """Plain configurable used where no ORM entity is needed."""
    table: str
    key: Any

    def get_key(self):
        return self.key

    def get_table(self):
        return self.table


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    EntityBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def users(session_factory) -> dict:
    """Two persisted users keyed by name."""
    with session_factory.begin() as session:
        session.add_all([User(id=1, name="alice"), User(id=2, name="bob")])
    with session_factory() as session:
        return {user.name: user for user in session.query(User).all()}


@pytest.fixture
def tags(session_factory) -> list:
    """Three persisted tags with ids 1, 2, 3."""
    with session_factory.begin() as session:
        session.add_all([Tag(id=1, label="red"), Tag(id=2, label="green"), Tag(id=3, label="blue")])
    with session_factory() as session:
        return session.query(Tag).order_by(Tag.id).all()


@pytest.fixture
def registry(session_factory) -> EntityRegistry:
    """Fresh entity registry with User and Tag registered."""
    registry = EntityRegistry()
    registry.register_model(User, session_factory)
    registry.register_model(Tag, session_factory)
    return registry


@pytest.fixture
def adapter(registry) -> ValueAdapter:
    return ValueAdapter(registry=registry)


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def repository(session_factory) -> SettingsRepository:
    return SettingsRepository(session_factory, id_type="int")


@pytest.fixture
def manager(repository, cache, adapter) -> SettingsManager:
    """SettingsManager over SQLite with an in-memory cache."""
    return SettingsManager(repository, cache, adapter=adapter, cache_prefix="system_settings")


@pytest.fixture
def mock_cache():
    """Cache collaborator that always misses."""
    cache = MagicMock()
    cache.get.return_value = None
    return cache
