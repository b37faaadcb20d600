"""
repokit: generic read and write repositories over SQLAlchemy async sessions.

One repository serves one mapped entity type. Repositories can be built
directly, or discovered from a context descriptor and resolved through a
RepositoryRegistry.
"""

from .db.context import DataContext, EntitySet, discover_entity_types
from .exceptions import (
    MissingKeyDescriptorError,
    MissingKeyValueError,
    NotFoundError,
    RepositoryError,
)
from .registry import RepositoryRegistry, RepositoryScope
from .repositories import (
    IReadRepository,
    IWriteRepository,
    KeyField,
    ReadRepository,
    WriteRepository,
    build_equals_predicate,
    equals_by_key,
    resolve_key,
)

__all__ = [
    "DataContext",
    "EntitySet",
    "discover_entity_types",
    "RepositoryError",
    "NotFoundError",
    "MissingKeyDescriptorError",
    "MissingKeyValueError",
    "RepositoryRegistry",
    "RepositoryScope",
    "IReadRepository",
    "IWriteRepository",
    "ReadRepository",
    "WriteRepository",
    "KeyField",
    "resolve_key",
    "build_equals_predicate",
    "equals_by_key",
]
