"""Setting key parsing and cache key builders.

A setting key is ``group.item[.scope_table.scope_id]``. Segments are
positional and dots are always structural: group and item names cannot
contain a literal ``.``.
"""

from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from scoped_settings.contracts import Configurable
from scoped_settings.exceptions import InvalidSettingKey

KEY_SEP = "."
MAX_SEGMENTS = 4


@dataclass(frozen=True)
class KeyParts:
    """Components of a setting key, after optional scope resolution."""
    group_name: str
    key_name: Optional[str] = None
    configurable_table: Optional[str] = None
    configurable_id: Optional[Any] = None

    @property
    def has_key_name(self) -> bool:
        return self.key_name is not None

    @property
    def scope(self) -> Optional[Tuple[str, Any]]:
        """(table, id) when both are known, otherwise None."""
        if self.configurable_table is None or self.configurable_id is None:
            return None
        return self.configurable_table, self.configurable_id

    def segments(self) -> List[str]:
        """Present segments in positional order."""
        values = [self.group_name, self.key_name, self.configurable_table, self.configurable_id]
        return [str(value) for value in values if value is not None]

    def group(self) -> "KeyParts":
        """Same scope, without the item segment."""
        return replace(self, key_name=None)

    def unscoped(self) -> "KeyParts":
        return KeyParts(self.group_name, self.key_name)

    def resolved(self) -> "KeyParts":
        """Same key with a partial scope (table or id alone) dropped."""
        if self.scope is None:
            return self.unscoped()
        return self


def parse_key(key: str) -> KeyParts:
    """
    Split a dotted setting key into its positional components.

    Args:
        key: Key like "mail.driver" or "mail.driver.users.42"

    Returns:
        KeyParts with missing trailing segments set to None

    Raises:
        InvalidSettingKey: If the key is empty, has empty segments or more than four segments
    """
    if not isinstance(key, str) or not key:
        raise InvalidSettingKey(f"Setting key must be a non-empty string, got {key!r}")

    parts = key.split(KEY_SEP)
    if len(parts) > MAX_SEGMENTS:
        raise InvalidSettingKey(
            f"Setting key {key!r} has {len(parts)} segments, expected at most {MAX_SEGMENTS}"
        )
    if any(part == "" for part in parts):
        raise InvalidSettingKey(f"Setting key {key!r} contains an empty segment")

    parts += [None] * (MAX_SEGMENTS - len(parts))
    return KeyParts(*parts)


def resolve_key(key: str, configurable: Optional[Configurable] = None) -> KeyParts:
    """
    Parse a key and apply an explicit scope.

    A bound configurable always wins over a scope encoded in the key string.
    A scope missing its table or its id is dropped, so "g.k.users" and
    "g.k" resolve to the same key.
    """
    parts = parse_key(key)
    if configurable is not None:
        parts = replace(
            parts,
            configurable_table=configurable.get_table(),
            configurable_id=configurable.get_key(),
        )
    return parts.resolved()


def join_key(
    group_name: str,
    key_name: Optional[str] = None,
    configurable_table: Optional[str] = None,
    configurable_id: Optional[Any] = None,
) -> str:
    """Rebuild the full dotted key of a stored setting.

    The scope segments are only appended when both of them are set.
    """
    parts = KeyParts(group_name, key_name)
    if configurable_table is not None and configurable_id is not None:
        parts = replace(parts, configurable_table=configurable_table, configurable_id=configurable_id)
    return KEY_SEP.join(parts.segments())


def cache_key(parts: KeyParts, prefix: str) -> str:
    """Cache key for resolved key parts, e.g. "system_settings.mail.driver.users.42"."""
    return KEY_SEP.join([prefix, *parts.resolved().segments()])
