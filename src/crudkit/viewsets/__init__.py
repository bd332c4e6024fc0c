"""
ViewSets - DRF-style configuration for crudkit entities.

Models stay pure ORM. All browse/edit configuration lives in viewsets.
"""

from __future__ import annotations

from .autoconfig import auto_configure
from .base import ModelViewSet
from .display import best_display_field, record_label
from .fields import (
    FieldSpec,
    FilterKind,
    OwnedManyBinding,
    OwnedOneBinding,
    ParentRefBinding,
    RenderContext,
    SharedManyBinding,
    Visibility,
)

__all__ = [
    "ModelViewSet",
    "FieldSpec",
    "FilterKind",
    "RenderContext",
    "Visibility",
    "ParentRefBinding",
    "OwnedManyBinding",
    "OwnedOneBinding",
    "SharedManyBinding",
    "auto_configure",
    "best_display_field",
    "record_label",
]
