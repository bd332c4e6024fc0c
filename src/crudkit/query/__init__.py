"""
Query module - list query construction and filter options.
"""

from __future__ import annotations

from .builder import (
    ParentContext,
    QueryBuilder,
    QueryResult,
    build_query,
    escape_like,
    next_sort,
    toggle_direction,
)
from .options import filter_options, related_choices

__all__ = [
    "QueryBuilder",
    "QueryResult",
    "ParentContext",
    "build_query",
    "escape_like",
    "next_sort",
    "toggle_direction",
    "filter_options",
    "related_choices",
]
