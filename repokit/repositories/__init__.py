"""
Repository layer for data access.

ReadRepository and WriteRepository work for any mapped entity type. They own
the AsyncSession they are given and close it when closed themselves.
"""

from .interfaces import IReadRepository, IWriteRepository
from .keys import KeyField, get_key_value, key_field_from_accessor, resolve_key
from .predicates import build_equals_predicate, equals_by_key
from .read import ReadRepository
from .write import WriteRepository

__all__ = [
    "IReadRepository",
    "IWriteRepository",
    "KeyField",
    "get_key_value",
    "key_field_from_accessor",
    "resolve_key",
    "build_equals_predicate",
    "equals_by_key",
    "ReadRepository",
    "WriteRepository",
]
