"""
crudkit - field configuration and dynamic query engine for CRUD admin screens.

Declare an entity (a SQLAlchemy model) and a few per-field overrides;
crudkit discovers relationships, decides which fields are shown,
searched and filtered, builds injection-safe list queries from raw
request parameters, and picks a display/edit strategy for every cell.

Usage:
    from crudkit import EntityRegistry, ModelViewSet, FieldSpec, build_query

    class BookViewSet(ModelViewSet):
        model = Book
        default_sort = ("title", "asc")
        fields = {"price": FieldSpec(title="Price", display="currency")}
        callbacks = {"currency": lambda value, record: f"${value:,.2f}"}

    books = EntityRegistry().register(BookViewSet)
    result = build_query(session, books, params, params, params)
"""

from __future__ import annotations

from .api import create_list_router, create_router
from .core import (
    ConfigurationError,
    CrudkitError,
    EntityConfig,
    EntityRegistry,
    FilterCriteria,
    FilterField,
    PageSpec,
    ReflectionError,
    RenderError,
    Settings,
    SortSpec,
    get_settings,
    load_settings,
    parse_list_request,
    parse_nested_params,
    register_entity,
)
from .query import (
    ParentContext,
    QueryBuilder,
    QueryResult,
    build_query,
    filter_options,
    toggle_direction,
)
from .render import (
    DisplayValue,
    EditWidget,
    ListingLink,
    RenderingDispatcher,
    ValueSource,
    WidgetKind,
)
from .schema import (
    ColumnKind,
    EntitySchema,
    OwnedMany,
    OwnedOne,
    ParentRef,
    SharedMany,
    reflect,
)
from .viewsets import (
    FieldSpec,
    FilterKind,
    ModelViewSet,
    OwnedManyBinding,
    OwnedOneBinding,
    ParentRefBinding,
    RenderContext,
    SharedManyBinding,
    Visibility,
    best_display_field,
)

__version__ = "0.1.0"

__all__ = [
    # Registration
    "EntityConfig",
    "EntityRegistry",
    "ModelViewSet",
    "register_entity",
    # Field configuration
    "FieldSpec",
    "FilterField",
    "FilterKind",
    "RenderContext",
    "Visibility",
    "ParentRefBinding",
    "OwnedManyBinding",
    "OwnedOneBinding",
    "SharedManyBinding",
    "best_display_field",
    # Schema
    "reflect",
    "ColumnKind",
    "EntitySchema",
    "ParentRef",
    "OwnedMany",
    "OwnedOne",
    "SharedMany",
    # Query
    "FilterCriteria",
    "SortSpec",
    "PageSpec",
    "QueryBuilder",
    "QueryResult",
    "ParentContext",
    "build_query",
    "filter_options",
    "toggle_direction",
    "parse_list_request",
    "parse_nested_params",
    # Rendering
    "RenderingDispatcher",
    "DisplayValue",
    "EditWidget",
    "ListingLink",
    "ValueSource",
    "WidgetKind",
    # API
    "create_list_router",
    "create_router",
    # Settings
    "Settings",
    "get_settings",
    "load_settings",
    # Errors
    "CrudkitError",
    "ConfigurationError",
    "ReflectionError",
    "RenderError",
]
