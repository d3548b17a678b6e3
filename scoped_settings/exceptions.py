"""Custom exceptions for the settings store."""

from typing import Any, List


class SettingsException(Exception):
    """Base exception for settings store errors."""
    pass


class InvalidSettingKey(SettingsException, ValueError):
    """Exception for keys that cannot be split into group/item/scope segments."""
    pass


class MissingKeyName(SettingsException, ValueError):
    """Exception for writes or deletes addressed to a whole group."""

    def __init__(self, key: str):
        super().__init__(f"Key name is required: {key!r} has no item segment")
        self.key = key


class MalformedEnvelope(SettingsException, ValueError):
    """Exception for stored values that are not a {type, value} mapping."""
    pass


class SerializationError(SettingsException):
    """Exception for JSON encode/decode failures of a value envelope."""
    pass


class InvalidEntityType(SettingsException, ValueError):
    """Exception for entity type names that are unknown or not persistable."""
    pass


class PartialEntityCollection(SettingsException):
    """Exception for entity collections whose members no longer all exist (strict mode)."""

    def __init__(self, model: str, missing_ids: List[Any]):
        super().__init__(f"Entity collection of {model} is missing ids: {missing_ids}")
        self.model = model
        self.missing_ids = missing_ids
