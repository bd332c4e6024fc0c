"""
ViewSet base class for crudkit - DRF-style configuration.

Models stay pure ORM. All browse/edit configuration lives here and is
read exactly once, when the viewset is registered, into an immutable
EntityConfig.

Usage:
    class BookViewSet(ModelViewSet):
        model = Book
        default_sort = ("title", "asc")

        fields = {
            "price": FieldSpec(title="Price", display="currency"),
            "available": FieldSpec(title="Availability"),
        }
        fields_exclude = ["ebook_url"]

        callbacks = {
            "currency": lambda value, record: f"${value:,.2f}" if value is not None else "",
        }

    registry = EntityRegistry()
    config = registry.register(BookViewSet)
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from sqlalchemy.orm import DeclarativeBase

from .fields import FieldSpec, Visibility


class ModelViewSet:
    """
    Base viewset for entity models.

    Override attributes to customize behavior. Fields not mentioned in
    ``fields`` keep their auto-discovered configuration.
    """

    # Required
    model: type[DeclarativeBase]

    # Optional - defaults to the model class name
    name: Optional[str] = None

    # Explicit per-field configuration (explicit always wins over auto-discovery)
    fields: Optional[dict[str, FieldSpec]] = None

    # Shorthand for FieldSpec(visible=Visibility.HIDDEN)
    fields_exclude: Optional[list[str]] = None

    # (column, "asc"|"desc"); None = primary key ascending
    default_sort: Optional[tuple[str, str]] = None

    # Named display/edit callbacks referenced by FieldSpec.display / FieldSpec.edit
    callbacks: Optional[dict[str, Callable[..., Any]]] = None

    @classmethod
    def get_entity_name(cls) -> str:
        """Get entity name (model class name unless overridden)."""
        if cls.name is not None:
            return cls.name
        return cls.model.__name__

    @classmethod
    def get_fields(cls) -> dict[str, FieldSpec]:
        """Explicit field specs, with ``fields_exclude`` folded in."""
        result = dict(cls.fields or {})
        for field_name in cls.fields_exclude or []:
            spec = result.get(field_name)
            if spec is None:
                result[field_name] = FieldSpec(visible=Visibility.HIDDEN)
            else:
                result[field_name] = spec.with_changes(visible=Visibility.HIDDEN)
        return result

    @classmethod
    def get_default_sort(cls) -> Optional[tuple[str, str]]:
        return cls.default_sort

    @classmethod
    def get_callbacks(cls) -> dict[str, Callable[..., Any]]:
        return dict(cls.callbacks or {})
