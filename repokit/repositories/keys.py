"""
Primary-key discovery for mapped entity types.

The key of an entity type is read from the SQLAlchemy mapper registry rather
than from the entity's declared attributes, so any mapped class works without
extra configuration.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper

from repokit.exceptions import MissingKeyDescriptorError, MissingKeyValueError


@dataclass(frozen=True)
class KeyField:
    """Name and Python type of an entity's primary key attribute."""

    name: str
    python_type: type = object


def _python_type(sql_type: Any) -> type:
    try:
        return sql_type.python_type
    except (AttributeError, NotImplementedError):
        return object


# PUBLIC_INTERFACE
def resolve_key(entity_type: type) -> KeyField:
    """
    Return the first declared primary key attribute of a mapped class.

    Composite keys are not rejected: the first column wins, which is what the
    key-predicate lookup path expects.

    Raises:
        MissingKeyDescriptorError: the type is not mapped or has no primary key.
    """
    mapper = inspect(entity_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise MissingKeyDescriptorError(
            f"Cannot find entity type for {getattr(entity_type, '__name__', entity_type)}"
        )
    if not mapper.primary_key:
        raise MissingKeyDescriptorError(f"Type {entity_type.__name__} has no primary key")

    column = mapper.primary_key[0]
    prop = mapper.get_property_by_column(column)
    return KeyField(name=prop.key, python_type=_python_type(column.type))


# PUBLIC_INTERFACE
def key_field_from_accessor(accessor: Any) -> KeyField:
    """Describe an explicitly supplied key accessor such as ``User.id``."""
    name = getattr(accessor, "key", None)
    if not name:
        raise MissingKeyDescriptorError(f"{accessor!r} is not a mapped attribute")
    return KeyField(name=name, python_type=_python_type(getattr(accessor, "type", None)))


# PUBLIC_INTERFACE
def get_key_value(entity: Any, key: KeyField) -> Any:
    """
    Read the current key value off a live entity.

    Raises:
        MissingKeyValueError: the key attribute is unset.
    """
    value = getattr(entity, key.name, None)
    if value is None:
        raise MissingKeyValueError(key.name, entity)
    return value
