"""
Option sources for select filters and dropdowns.

    configured options   FieldSpec(options=[...])
    related rows         ParentRef / SharedMany bindings, scope applied
    distinct values      everything else
"""

from __future__ import annotations

import logging
from typing import Any, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.registry import EntityConfig
from ..schema.reflector import reflect
from ..viewsets.display import record_label
from ..viewsets.fields import FilterKind, ParentRefBinding, SharedManyBinding


logger = logging.getLogger(__name__)


Choice = tuple[str, Any]

BOOLEAN_CHOICES: list[Choice] = [("Yes", "true"), ("No", "false")]


def related_choices(
    session: Session,
    binding: Union[ParentRefBinding, SharedManyBinding],
) -> list[Choice]:
    """
    (label, key) pairs for every selectable related record.

    Rows are ordered by the display field when it is a column, and
    narrowed by the binding's scope.
    """
    target_schema = reflect(binding.target)
    stmt = select(binding.target)
    if binding.scope is not None:
        stmt = binding.scope(stmt)
    if isinstance(binding.display_field, str) and target_schema.has_column(binding.display_field):
        stmt = stmt.order_by(getattr(binding.target, binding.display_field))

    return [
        (record_label(record, binding.display_field), getattr(record, binding.target_key))
        for record in session.scalars(stmt).all()
    ]


def distinct_values(session: Session, config: EntityConfig, name: str) -> list[Choice]:
    attr = getattr(config.model, name)
    stmt = select(attr).where(attr.is_not(None)).distinct().order_by(attr)
    return [(str(value), value) for value in session.scalars(stmt).all()]


def filter_options(session: Session, config: EntityConfig, name: str) -> list[Choice]:
    """
    Options offered by the filter control of ``name``.

    Store errors are logged and yield no options.
    """
    if not config.is_filterable(name):
        return []

    spec = config.get(name)
    if spec is not None and spec.has_options:
        return list(spec.options)

    kind = config.filter_kind(name)
    if kind is FilterKind.BOOLEAN:
        return list(BOOLEAN_CHOICES)
    if kind in (FilterKind.TEXT, FilterKind.DATE_RANGE):
        return []

    column = config.schema.column(name)
    if column is not None and column.enum_values:
        return [(value, value) for value in column.enum_values]

    try:
        if spec is not None and isinstance(spec.relationship, ParentRefBinding):
            return related_choices(session, spec.relationship)
        return distinct_values(session, config, name)
    except SQLAlchemyError as e:
        logger.error(f"Error getting filter options for {config.name}.{name}: {e}", exc_info=True)
        return []
