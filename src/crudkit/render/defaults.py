"""
Type-based display and edit defaults.
"""

from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional

from ..core.config import Settings
from ..schema.reflector import ColumnInfo, ColumnKind
from .widgets import DisplayKind, DisplayValue, EditWidget, ValueSource, WidgetKind


ELLIPSIS = "..."

WIDGET_BY_KIND = {
    ColumnKind.STRING: WidgetKind.TEXT,
    ColumnKind.TEXT: WidgetKind.TEXTAREA,
    ColumnKind.INTEGER: WidgetKind.NUMBER,
    ColumnKind.NUMERIC: WidgetKind.NUMBER,
    ColumnKind.BOOLEAN: WidgetKind.CHECKBOX,
    ColumnKind.DATE: WidgetKind.DATE,
    ColumnKind.DATETIME: WidgetKind.DATETIME,
    ColumnKind.TIME: WidgetKind.TIME,
    ColumnKind.ENUM: WidgetKind.SELECT,
}


def truncate(text: str, length: int) -> str:
    """Cap ``text`` at ``length`` characters, ellipsis included."""
    if len(text) <= length:
        return text
    return text[: max(length - len(ELLIPSIS), 0)] + ELLIPSIS


def format_value(value: Any, settings: Settings) -> tuple[str, DisplayKind]:
    if value is None:
        return settings.null_placeholder, DisplayKind.EMPTY
    if value is True:
        return settings.true_glyph, DisplayKind.BOOLEAN
    if value is False:
        return settings.false_glyph, DisplayKind.BOOLEAN
    # datetime is a date subclass
    if isinstance(value, (datetime, date)):
        return value.strftime(settings.date_format), DisplayKind.TEXT
    if isinstance(value, time):
        return value.strftime(settings.time_format), DisplayKind.TEXT
    if isinstance(value, Enum):
        value = value.value
    return truncate(str(value), settings.truncate_length), DisplayKind.TEXT


def default_display(value: Any, settings: Settings, source: ValueSource = ValueSource.COLUMN) -> DisplayValue:
    text, kind = format_value(value, settings)
    return DisplayValue(value=text, source=source, kind=kind)


def _input_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.name
    return value


def default_widget(name: str, column: Optional[ColumnInfo], value: Any) -> EditWidget:
    """Input chosen by column type; unknown types get a text input."""
    if column is None:
        return EditWidget(name=name, kind=WidgetKind.TEXT, value=value)

    kind = WIDGET_BY_KIND.get(column.kind, WidgetKind.TEXT)
    if kind is WidgetKind.CHECKBOX:
        return EditWidget(name=name, kind=kind, value=bool(value))
    if kind is WidgetKind.SELECT:
        options = tuple((v, v) for v in column.enum_values or ())
        current = _input_value(value)
        return EditWidget(
            name=name,
            kind=kind,
            value=current,
            options=options,
            selected=current,
            include_blank=column.nullable,
        )
    return EditWidget(name=name, kind=kind, value=_input_value(value))
