"""
Error taxonomy for the repository layer.

Only "not found" and key-metadata failures are raised from here. Storage
engine errors (sqlalchemy.exc.*) pass through the repositories unmodified.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence


class RepositoryError(Exception):
    """Base class for repository-related errors."""


# PUBLIC_INTERFACE
class NotFoundError(RepositoryError):
    """
    Raised when no entity matches a key.

    The message is only formatted when the error is rendered, and depends on
    whether a key was supplied:

      "User not found"
      "User not found with key 'id' using: 42"
    """

    base_message = "{0} not found"

    def __init__(
        self,
        key: Any = None,
        key_name: str = "Id",
        entity_type: str = "Object",
    ) -> None:
        super().__init__(key, key_name, entity_type)
        self.key = key
        self.key_name = key_name
        self.entity_type = entity_type

    @classmethod
    def for_entity(
        cls, entity_type: type, key: Any = None, key_name: str = "Id"
    ) -> "NotFoundError":
        """Build an error naming the given entity class."""
        return cls(key=key, key_name=key_name, entity_type=entity_type.__name__)

    @property
    def message(self) -> str:
        if self.key is None:
            return self.base_message.format(self.entity_type)
        if isinstance(self.key, (list, tuple)):
            keys = describe_keys(self.key)
        else:
            keys = str(self.key)
        return (self.base_message + " with key '{2}' using: {1}").format(
            self.entity_type, keys, self.key_name
        )

    def __str__(self) -> str:
        return self.message


class MissingKeyDescriptorError(RepositoryError):
    """The entity type is not mapped or declares no primary key."""


class MissingKeyValueError(RepositoryError):
    """A live entity has no value for its primary key attribute."""

    def __init__(self, key_name: str, entity: Optional[Any] = None) -> None:
        super().__init__(f"{key_name} has no value")
        self.key_name = key_name
        self.entity = entity


def describe_keys(keys: Sequence[Any]) -> str:
    """Render a key sequence the way NotFoundError does."""
    return ", ".join(str(k) for k in keys)


__all__ = [
    "RepositoryError",
    "NotFoundError",
    "MissingKeyDescriptorError",
    "MissingKeyValueError",
]
