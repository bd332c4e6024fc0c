"""
Schema module - reflection of SQLAlchemy models.
"""

from __future__ import annotations

from .reflector import (
    ColumnInfo,
    ColumnKind,
    EntitySchema,
    OwnedMany,
    OwnedOne,
    ParentRef,
    Relationship,
    SharedMany,
    columns,
    reflect,
    relationships,
)

__all__ = [
    "ColumnInfo",
    "ColumnKind",
    "EntitySchema",
    "OwnedMany",
    "OwnedOne",
    "ParentRef",
    "Relationship",
    "SharedMany",
    "columns",
    "reflect",
    "relationships",
]
