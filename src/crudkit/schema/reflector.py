"""
Schema reflector - describes a SQLAlchemy model for the engine.

Given a mapped class, returns its columns (attribute key + simplified
kind) and its relationships as a closed tagged union:

    ParentRef   - many-to-one, backed by a foreign key on this entity
    OwnedMany   - one-to-many, foreign key lives on the related entity
    OwnedOne    - one-to-one, foreign key lives on the related entity
    SharedMany  - many-to-many through an association table

Everything the query builder accepts from the outside world is checked
against the names collected here.

Usage:
    schema = reflect(Book)
    schema.column_names        # ("id", "title", "isbn", "author_id", ...)
    schema.parent_ref_for("author_id").target   # Author
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Optional, Union

from sqlalchemy import Column, inspect, types as sa_types
from sqlalchemy.ext.hybrid import HybridExtensionType
from sqlalchemy.orm import Mapper, RelationshipDirection

from ..core.errors import ReflectionError
from ..core.utils import humanize


logger = logging.getLogger(__name__)


# =============================================================================
# Columns
# =============================================================================


class ColumnKind(str, Enum):
    """Simplified column type used for search, filter and render dispatch."""
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    ENUM = "enum"
    JSON = "json"
    OTHER = "other"

    @property
    def is_textual(self) -> bool:
        return self in (ColumnKind.STRING, ColumnKind.TEXT)

    @property
    def is_temporal(self) -> bool:
        return self in (ColumnKind.DATE, ColumnKind.DATETIME)

    @property
    def is_numeric(self) -> bool:
        return self in (ColumnKind.INTEGER, ColumnKind.NUMERIC)


@dataclass(frozen=True)
class ColumnInfo:
    """One mapped column, keyed by its ORM attribute name."""
    name: str
    kind: ColumnKind
    primary_key: bool = False
    nullable: bool = True
    foreign_key: bool = False
    enum_values: Optional[tuple[str, ...]] = None


def get_column_type(column) -> tuple[ColumnKind, Optional[tuple[str, ...]]]:
    """
    Map a SQLAlchemy column type to a ColumnKind.

    Returns:
        Tuple of (kind, enum_values or None)
    """
    col_type = column.type

    # Enum subclasses String, Text subclasses String: order matters
    if isinstance(col_type, sa_types.Enum):
        # Persisted strings: member names unless values_callable says otherwise
        return ColumnKind.ENUM, tuple(col_type.enums)
    if isinstance(col_type, sa_types.Boolean):
        return ColumnKind.BOOLEAN, None
    if isinstance(col_type, sa_types.Text):
        return ColumnKind.TEXT, None
    if isinstance(col_type, sa_types.String):
        return ColumnKind.STRING, None
    if isinstance(col_type, sa_types.Integer):
        return ColumnKind.INTEGER, None
    if isinstance(col_type, sa_types.Numeric):
        return ColumnKind.NUMERIC, None
    if isinstance(col_type, sa_types.DateTime):
        return ColumnKind.DATETIME, None
    if isinstance(col_type, sa_types.Date):
        return ColumnKind.DATE, None
    if isinstance(col_type, sa_types.Time):
        return ColumnKind.TIME, None
    if isinstance(col_type, sa_types.JSON):
        return ColumnKind.JSON, None
    return ColumnKind.OTHER, None


# =============================================================================
# Relationships
# =============================================================================


@dataclass(frozen=True)
class ParentRef:
    """This entity references exactly one instance of ``target``."""
    name: str
    target: type
    foreign_key: str
    target_key: str = "id"
    title: str = ""


@dataclass(frozen=True)
class OwnedMany:
    """``target`` rows reference this entity through ``remote_key``."""
    name: str
    target: type
    remote_key: str
    title: str = ""


@dataclass(frozen=True)
class OwnedOne:
    """At most one ``target`` row references this entity through ``remote_key``."""
    name: str
    target: type
    remote_key: str
    title: str = ""


@dataclass(frozen=True)
class SharedMany:
    """Many-to-many through ``association_table``; no key on either side."""
    name: str
    target: type
    association_table: str
    local_key: str = ""
    remote_key: str = ""
    title: str = ""


Relationship = Union[ParentRef, OwnedMany, OwnedOne, SharedMany]


# =============================================================================
# Entity schema
# =============================================================================


@dataclass(frozen=True)
class EntitySchema:
    """Immutable description of one mapped entity."""
    model: type
    name: str
    columns: tuple[ColumnInfo, ...]
    primary_key: tuple[str, ...]
    relationships: tuple[Relationship, ...] = ()
    # Non-column attributes usable in ORDER BY (column_property, hybrid_property)
    attributes: frozenset[str] = field(default_factory=frozenset)

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @property
    def primary_key_name(self) -> str:
        return self.primary_key[0] if self.primary_key else "id"

    def has_column(self, name: object) -> bool:
        return isinstance(name, str) and any(c.name == name for c in self.columns)

    def column(self, name: str) -> Optional[ColumnInfo]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def is_sortable(self, name: object) -> bool:
        return isinstance(name, str) and (self.has_column(name) or name in self.attributes)

    def relationship(self, name: str) -> Optional[Relationship]:
        for rel in self.relationships:
            if rel.name == name:
                return rel
        return None

    def parent_refs(self) -> list[ParentRef]:
        return [r for r in self.relationships if isinstance(r, ParentRef)]

    def parent_ref_for(self, foreign_key: object) -> Optional[ParentRef]:
        """ParentRef whose foreign key attribute is ``foreign_key``."""
        if not isinstance(foreign_key, str):
            return None
        for rel in self.parent_refs():
            if rel.foreign_key == foreign_key:
                return rel
        return None


def _mapper_for(model: type) -> Mapper:
    insp = inspect(model, raiseerr=False)
    if not isinstance(insp, Mapper):
        name = getattr(model, "__name__", repr(model))
        raise ReflectionError(f"'{name}' is not a mapped SQLAlchemy class")
    return insp


def _columns(mapper: Mapper) -> tuple[list[ColumnInfo], set[str]]:
    """Collect table columns and expression attributes (column_property)."""
    columns: list[ColumnInfo] = []
    expressions: set[str] = set()
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if not isinstance(column, Column):
            expressions.add(prop.key)
            continue

        kind, enum_values = get_column_type(column)
        columns.append(ColumnInfo(
            name=prop.key,
            kind=kind,
            primary_key=bool(column.primary_key),
            nullable=bool(column.nullable) and not column.primary_key,
            foreign_key=bool(column.foreign_keys),
            enum_values=enum_values,
        ))

    return columns, expressions


def _hybrid_attributes(mapper: Mapper) -> set[str]:
    return {
        key
        for key, descriptor in mapper.all_orm_descriptors.items()
        if getattr(descriptor, "extension_type", None) is HybridExtensionType.HYBRID_PROPERTY
    }


def _relationships(mapper: Mapper) -> list[Relationship]:
    result: list[Relationship] = []

    for rel in mapper.relationships:
        target_mapper = rel.mapper
        target = target_mapper.class_
        title = humanize(rel.key)

        # Many-to-many first: its direction is MANYTOMANY but the pairs
        # point into the association table
        if rel.secondary is not None:
            local_key = rel.synchronize_pairs[0][1].name if rel.synchronize_pairs else ""
            remote_key = (
                rel.secondary_synchronize_pairs[0][1].name
                if rel.secondary_synchronize_pairs else ""
            )
            result.append(SharedMany(
                name=rel.key,
                target=target,
                association_table=rel.secondary.name,
                local_key=local_key,
                remote_key=remote_key,
                title=title,
            ))
            continue

        # Only the first key pair is used for composite keys
        local_col, remote_col = rel.local_remote_pairs[0]

        if rel.direction is RelationshipDirection.MANYTOONE:
            result.append(ParentRef(
                name=rel.key,
                target=target,
                foreign_key=mapper.get_property_by_column(local_col).key,
                target_key=target_mapper.get_property_by_column(remote_col).key,
                title=title,
            ))
        elif rel.direction is RelationshipDirection.ONETOMANY:
            remote_key = target_mapper.get_property_by_column(remote_col).key
            if rel.uselist:
                result.append(OwnedMany(rel.key, target, remote_key, title))
            else:
                result.append(OwnedOne(rel.key, target, remote_key, title))
        else:
            logger.debug(f"Skipping relationship {mapper.class_.__name__}.{rel.key} ({rel.direction})")

    return result


@lru_cache(maxsize=None)
def reflect(model: type) -> EntitySchema:
    """
    Introspect a mapped class.

    Deterministic and cached per class; schema changes at runtime are
    not picked up.

    Raises:
        ReflectionError: if ``model`` is not a mapped class
    """
    mapper = _mapper_for(model)
    columns, expressions = _columns(mapper)
    primary_key = tuple(mapper.get_property_by_column(c).key for c in mapper.primary_key)

    schema = EntitySchema(
        model=model,
        name=model.__name__,
        columns=tuple(columns),
        primary_key=primary_key,
        relationships=tuple(_relationships(mapper)),
        attributes=frozenset(expressions | _hybrid_attributes(mapper)),
    )
    logger.debug(
        f"Reflected {schema.name}: {len(schema.columns)} columns, "
        f"{len(schema.relationships)} relationships"
    )
    return schema


def columns(model: type) -> list[tuple[str, ColumnKind]]:
    """Column (name, kind) pairs in mapper order."""
    return [(c.name, c.kind) for c in reflect(model).columns]


def relationships(model: type) -> list[Relationship]:
    """Declared relationships of ``model``."""
    return list(reflect(model).relationships)
