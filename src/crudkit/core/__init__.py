"""
Core module - settings, errors, registry and request types.
"""

from __future__ import annotations

from .config import Settings, get_settings, load_settings
from .errors import (
    ConfigurationError,
    CrudkitError,
    ReflectionError,
    RenderError,
)
from .query_types import (
    FilterCriteria,
    ListResponse,
    PageSpec,
    ResolvedPage,
    ResolvedSort,
    SortSpec,
)
from .registry import (
    EntityConfig,
    EntityRegistry,
    FilterField,
    register_entity,
)
from .request_parser import (
    ParsedListRequest,
    parse_list_request,
    parse_nested_params,
)
from .utils import humanize, to_camel_case, to_snake_case

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "load_settings",
    # Errors
    "CrudkitError",
    "ConfigurationError",
    "ReflectionError",
    "RenderError",
    # Request types
    "FilterCriteria",
    "SortSpec",
    "PageSpec",
    "ResolvedSort",
    "ResolvedPage",
    "ListResponse",
    # Registry
    "EntityConfig",
    "EntityRegistry",
    "FilterField",
    "register_entity",
    # Request parser
    "ParsedListRequest",
    "parse_list_request",
    "parse_nested_params",
    # Utils
    "humanize",
    "to_camel_case",
    "to_snake_case",
]
