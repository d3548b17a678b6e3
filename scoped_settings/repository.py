"""Storage access for setting rows."""

import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy import delete, select

from scoped_settings.db.models import SystemSetting, coerce_configurable_id
from scoped_settings.keys import KeyParts

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Repository for setting rows.

    Attributes:
        session_factory: Callable returning a new SQLAlchemy Session (e.g. SessionLocal)
        id_type: Configurable id type override (defaults to config)
    """

    def __init__(self, session_factory, id_type: Optional[str] = None):
        self.session_factory = session_factory
        self.id_type = id_type

    def fetch_one(self, parts: KeyParts) -> Optional[SystemSetting]:
        """
        Retrieve a single setting row.

        Without a resolvable scope the scope columns are not filtered;
        an unscoped row is preferred over scoped ones in that case.

        Args:
            parts: Resolved key parts with a key name

        Returns:
            SystemSetting instance or None
        """
        stmt = (
            select(SystemSetting)
            .where(*self._conditions(parts))
            .order_by(SystemSetting.configurable_table.is_not(None), SystemSetting.id)
            .limit(1)
        )
        with self.session_factory() as session:
            return session.execute(stmt).scalars().first()

    def fetch_group(self, parts: KeyParts) -> List[SystemSetting]:
        """
        Retrieve every row of a group (scope-filtered when the scope is resolvable).

        Args:
            parts: Resolved key parts; key_name is ignored

        Returns:
            List of SystemSetting instances
        """
        stmt = (
            select(SystemSetting)
            .where(*self._conditions(parts.group()))
            .order_by(SystemSetting.id)
        )
        with self.session_factory() as session:
            return list(session.execute(stmt).scalars().all())

    def upsert(self, parts: KeyParts, value: str) -> SystemSetting:
        """
        Create or update the row matched by the natural key.

        A missing scope matches rows whose scope columns are NULL.

        Args:
            parts: Resolved key parts with a key name
            value: JSON-encoded envelope

        Returns:
            Created or updated SystemSetting instance
        """
        scope = parts.scope
        configurable_table, configurable_id = scope if scope else (None, None)
        configurable_id = self._coerce_id(configurable_id)

        stmt = select(SystemSetting).where(
            SystemSetting.group_name == parts.group_name,
            SystemSetting.key_name == parts.key_name,
            SystemSetting.configurable_id.is_(None) if configurable_id is None
            else SystemSetting.configurable_id == configurable_id,
            SystemSetting.configurable_table.is_(None) if configurable_table is None
            else SystemSetting.configurable_table == configurable_table,
        )

        with self.session_factory.begin() as session:
            existing = session.execute(stmt).scalars().first()

            if existing:
                existing.value = value
                session.flush()
                logger.debug(f"Updated setting row {existing!r}")
                return existing

            setting = SystemSetting(
                group_name=parts.group_name,
                key_name=parts.key_name,
                configurable_id=configurable_id,
                configurable_table=configurable_table,
                value=value,
            )
            session.add(setting)
            session.flush()
            logger.debug(f"Inserted setting row {setting!r}")
            return setting

    def fetch_scopes(self, parts: KeyParts) -> List[Tuple[str, Any]]:
        """
        List the distinct (configurable_table, configurable_id) pairs of the
        scoped rows matching group, key name and (when resolvable) scope.
        """
        stmt = (
            select(SystemSetting.configurable_table, SystemSetting.configurable_id)
            .where(
                *self._conditions(parts),
                SystemSetting.configurable_table.is_not(None),
                SystemSetting.configurable_id.is_not(None),
            )
            .distinct()
        )
        with self.session_factory() as session:
            return [tuple(row) for row in session.execute(stmt).all()]

    def delete(self, parts: KeyParts) -> int:
        """
        Delete the rows matching group, key name and (when resolvable) scope.

        Returns:
            Number of rows deleted
        """
        stmt = delete(SystemSetting).where(*self._conditions(parts))
        with self.session_factory.begin() as session:
            result = session.execute(stmt)
            return result.rowcount

    def _conditions(self, parts: KeyParts) -> list:
        conditions = [SystemSetting.group_name == parts.group_name]
        if parts.has_key_name:
            conditions.append(SystemSetting.key_name == parts.key_name)

        scope = parts.scope
        if scope is not None:
            configurable_table, configurable_id = scope
            conditions.append(SystemSetting.configurable_id == self._coerce_id(configurable_id))
            conditions.append(SystemSetting.configurable_table == configurable_table)
        return conditions

    def _coerce_id(self, value):
        return coerce_configurable_id(value, self.id_type)
