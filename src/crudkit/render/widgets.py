"""
Rendering results: what a cell displays and which input a form shows.

Both are plain data; turning them into HTML (or JSON) is left to the
caller's templating layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlencode


class ValueSource(str, Enum):
    """Where a displayed value comes from."""
    RELATIONSHIP = "relationship"
    COLUMN = "column"
    COMPUTED = "computed"


class DisplayKind(str, Enum):
    TEXT = "text"
    EMPTY = "empty"
    BOOLEAN = "boolean"
    RELATIONSHIP = "relationship"
    NOT_FOUND = "not_found"
    CUSTOM = "custom"
    ERROR = "error"


class WidgetKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    DISPLAY_ONLY = "display_only"
    CUSTOM = "custom"
    ERROR = "error"


@dataclass(frozen=True)
class ListingLink:
    """Listing of ``entity`` nested under a parent record."""
    entity: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def query_string(self) -> str:
        """Parent filter in the query-string shape the request parser reads."""
        return urlencode({f"parent[{key}]": value for key, value in self.params.items()})


@dataclass(frozen=True)
class DisplayValue:
    """Rendered cell."""
    value: Any
    source: ValueSource
    kind: DisplayKind = DisplayKind.TEXT
    link: Optional[ListingLink] = None
    preview: tuple[str, ...] = ()

    def __str__(self) -> str:
        return "" if self.value is None else str(self.value)


@dataclass(frozen=True)
class EditWidget:
    """Form input for one field."""
    name: str
    kind: WidgetKind
    value: Any = None
    options: tuple[tuple[str, Any], ...] = ()
    # Single value for SELECT, list for MULTI_SELECT
    selected: Any = None
    placeholder: Optional[str] = None
    include_blank: bool = False
    display: Optional[DisplayValue] = None

    @property
    def is_error(self) -> bool:
        return self.kind is WidgetKind.ERROR
