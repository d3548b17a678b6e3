"""Contracts for objects that can own (scope) a setting."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Configurable(Protocol):
    """An owning entity a setting value can be attached to.

    Typically a user, tenant or organisation record. Only the identifier and
    the storage table name are ever read.
    """

    def get_key(self) -> Any:
        """Return the primary key of the instance."""
        ...

    def get_table(self) -> str:
        """Return the table name of the instance."""
        ...
