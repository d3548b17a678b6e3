"""Database module for the settings store."""

from scoped_settings.db.session import engine, SessionLocal, create_tables, get_session_local
from scoped_settings.db.models import Base, SystemSetting, coerce_configurable_id

__all__ = [
    "engine",
    "SessionLocal",
    "create_tables",
    "get_session_local",
    "Base",
    "SystemSetting",
    "coerce_configurable_id",
]
