"""
Display-field heuristic: which column labels a record of a given type.
"""

from __future__ import annotations

from typing import Optional

from ..core.utils import to_camel_case
from ..schema.reflector import reflect


# Common field names for display, in order of preference
DISPLAY_CANDIDATES = ("name", "title", "display_name", "full_name", "label", "description")

# Never used as a label even though they may be string typed
AUDIT_COLUMNS = frozenset({"created_at", "updated_at", "createdAt", "updatedAt"})


def best_display_field(model: type, audit_suffixes: tuple[str, ...] = ("_at",)) -> str:
    """
    Pick the best label field for ``model``.

    1. first of DISPLAY_CANDIDATES that is a column (snake_case or camelCase)
    2. first string/text column that is not a key or audit timestamp
    3. the primary key
    """
    schema = reflect(model)

    for candidate in DISPLAY_CANDIDATES:
        for spelling in (candidate, to_camel_case(candidate)):
            if schema.has_column(spelling):
                return spelling

    fallback: Optional[str] = next(
        (
            col.name
            for col in schema.columns
            if col.kind.is_textual
            and not col.primary_key
            and col.name not in AUDIT_COLUMNS
            and not any(col.name.endswith(suffix) for suffix in audit_suffixes)
        ),
        None,
    )
    return fallback or schema.primary_key_name


def record_label(record, display_field) -> str:
    """Label for a related record using an attribute name or a callable."""
    if record is None:
        return ""
    if callable(display_field):
        value = display_field(record)
    else:
        value = getattr(record, display_field, None)
    return "" if value is None else str(value)
