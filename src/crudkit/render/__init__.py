"""
Render module - display and edit strategy dispatch.
"""

from __future__ import annotations

from .dispatcher import RenderingDispatcher
from .widgets import (
    DisplayKind,
    DisplayValue,
    EditWidget,
    ListingLink,
    ValueSource,
    WidgetKind,
)

__all__ = [
    "RenderingDispatcher",
    "DisplayKind",
    "DisplayValue",
    "EditWidget",
    "ListingLink",
    "ValueSource",
    "WidgetKind",
]
