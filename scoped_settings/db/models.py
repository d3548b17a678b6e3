"""Database models for the settings store."""

import uuid
from typing import Any, Optional

from sqlalchemy import BigInteger, Column, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import declarative_base

from scoped_settings.config import config

Base = declarative_base()

_CONFIGURABLE_ID_COLUMNS = {
    "int": Integer,
    "bigint": BigInteger,
    "uuid": Uuid,
    "string": lambda: String(255),
}


def configurable_id_column_type(id_type: Optional[str] = None):
    """Get the SQLAlchemy column type for configurable_id.

    Args:
        id_type: One of "int", "bigint", "uuid", "string" (defaults to config)

    Returns:
        SQLAlchemy type instance; unknown names fall back to String(255)
    """
    id_type = id_type or config.configurable_id_type()
    factory = _CONFIGURABLE_ID_COLUMNS.get(id_type, _CONFIGURABLE_ID_COLUMNS["string"])
    return factory()


def coerce_configurable_id(value: Any, id_type: Optional[str] = None) -> Any:
    """
    Convert a configurable identifier to the deployment's id type.

    Identifiers parsed from keys are always strings, and scope objects may
    hand out ints where the column stores strings (or the other way round).

    Args:
        value: Raw identifier (None passes through)
        id_type: One of "int", "bigint", "uuid", "string" (defaults to config)

    Returns:
        Identifier ready to bind against the configurable_id column

    Raises:
        ValueError: If the identifier cannot be converted
    """
    if value is None:
        return None

    id_type = id_type or config.configurable_id_type()
    if id_type in ("int", "bigint"):
        if isinstance(value, bool):
            raise ValueError(f"Invalid configurable id: {value!r}")
        return int(value)
    if id_type == "uuid":
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    return str(value)


class SystemSetting(Base):
    """
    Settings table keyed by group, key name and an optional configurable scope.

    Natural key: (group_name, key_name, configurable_id, configurable_table)
    """
    __tablename__ = config.SETTINGS_TABLE_NAME

    id = Column(Integer, primary_key=True)
    group_name = Column(String(255), nullable=False, index=True)
    key_name = Column(String(255), nullable=False, index=True)
    configurable_id = Column(configurable_id_column_type(), nullable=True, index=True)
    configurable_table = Column(String(255), nullable=True, index=True)
    value = Column(Text, nullable=True)  # JSON-encoded envelope

    __table_args__ = (
        UniqueConstraint(
            'group_name', 'key_name', 'configurable_id', 'configurable_table',
            name=f'uq_{config.SETTINGS_TABLE_NAME}_natural_key',
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SystemSetting {self.group_name}.{self.key_name} "
            f"scope={self.configurable_table}:{self.configurable_id}>"
        )
