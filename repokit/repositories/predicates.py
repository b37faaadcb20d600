"""Equality predicates over a key attribute, built at runtime."""
from __future__ import annotations

from typing import Any

from sqlalchemy.sql.elements import ColumnElement

from repokit.exceptions import MissingKeyDescriptorError


# PUBLIC_INTERFACE
def equals_by_key(accessor: Any, value: Any) -> ColumnElement[bool]:
    """
    Return ``accessor == value`` as a SQL expression.

    The expression is built once and can be composed into any number of
    statements. A ``None`` value compiles to ``IS NULL``.
    """
    return accessor == value


# PUBLIC_INTERFACE
def build_equals_predicate(entity_type: type, key_field_name: str, value: Any) -> ColumnElement[bool]:
    """Build ``entity.<key_field_name> == value`` for a class known only at runtime."""
    accessor = getattr(entity_type, key_field_name, None)
    if accessor is None or not hasattr(accessor, "expression"):
        raise MissingKeyDescriptorError(
            f"{entity_type.__name__} has no mapped attribute '{key_field_name}'"
        )
    return equals_by_key(accessor, value)
