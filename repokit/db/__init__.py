"""
Database package exposing the declarative base, engine/session management
and context descriptors.
"""

from .base import Base, IntPkMixin
from .context import DataContext, EntitySet, discover_entity_types, entity_sets
from .session import (
    dispose_engine,
    get_async_session,
    get_engine,
    get_session_maker,
    session_scope,
)

__all__ = [
    "Base",
    "IntPkMixin",
    "DataContext",
    "EntitySet",
    "discover_entity_types",
    "entity_sets",
    "dispose_engine",
    "get_async_session",
    "get_engine",
    "get_session_maker",
    "session_scope",
]
