"""
Field configuration dataclasses.

A FieldSpec describes how one field of an entity is titled, shown,
searched, filtered, displayed and edited. FieldSpecs are created at
registration time (by relationship auto-discovery or explicitly) and
are frozen afterwards.

Usage:
    class MemberViewSet(ModelViewSet):
        model = Member
        fields = {
            "membership_type": FieldSpec(
                title="Membership Type",
                options=["Standard", "Premium", "Student", "Senior"],
            ),
            "joined_at": FieldSpec(title="Member Since", visible=Visibility.SHOWN),
            "email": FieldSpec(display="mailto"),   # resolved from callbacks
        }
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional, Union

from sqlalchemy import Select

from ..core.errors import ConfigurationError


# =============================================================================
# Enums
# =============================================================================


class Visibility(str, Enum):
    """Tri-state visibility: SHOWN and HIDDEN override naming conventions."""
    SHOWN = "shown"
    HIDDEN = "hidden"
    DEFAULT = "default"


class FilterKind(str, Enum):
    """Kind of filter control offered for a field."""
    TEXT = "text"
    BOOLEAN = "boolean"
    SELECT = "select"
    DATE_RANGE = "date_range"


class RenderContext(str, Enum):
    """Where a field list is rendered."""
    LIST = "list"
    DETAIL = "detail"
    FORM = "form"


# Display callbacks take (value, record); edit callbacks take
# (value, record, form_context). A string names an entry of the
# entity's callback registry.
DisplayCallback = Callable[[Any, Any], Any]
EditCallback = Callable[[Any, Any, Any], Any]
DisplayStrategy = Union[str, DisplayCallback, None]
EditStrategy = Union[str, EditCallback, None]

# Narrows the statement used to list related rows for a dropdown
ScopeFn = Callable[[Select], Select]
# Label for a related record: attribute name or callable(record) -> str
LabelSource = Union[str, Callable[[Any], Any]]


# =============================================================================
# Relationship bindings
# =============================================================================


@dataclass(frozen=True)
class ParentRefBinding:
    """Foreign-key dropdown bound to ``target``."""
    target: type
    display_field: LabelSource = "id"
    relationship: Optional[str] = None  # ORM attribute holding the related record
    target_key: str = "id"
    placeholder: str = "Select..."
    scope: Optional[ScopeFn] = None


@dataclass(frozen=True)
class OwnedManyBinding:
    """Read-only count + preview of the owned collection."""
    target: type
    relationship: str
    remote_key: str
    display_field: LabelSource = "id"
    show_count: bool = True
    max_preview_items: int = 3


@dataclass(frozen=True)
class OwnedOneBinding:
    """Read-only label of the single owned record."""
    target: type
    relationship: str
    remote_key: str
    display_field: LabelSource = "id"


@dataclass(frozen=True)
class SharedManyBinding:
    """Comma-joined labels in display, multi-select in forms."""
    target: type
    relationship: str
    display_field: LabelSource = "id"
    target_key: str = "id"
    scope: Optional[ScopeFn] = None


RelationshipBinding = Union[ParentRefBinding, OwnedManyBinding, OwnedOneBinding, SharedManyBinding]


# =============================================================================
# FieldSpec
# =============================================================================


Options = tuple[tuple[str, Any], ...]


def normalize_options(options: Any) -> Optional[Options]:
    """
    Normalize an options declaration into ordered (label, value) pairs.

    Accepts:
        ["Standard", "Premium"]            -> (("Standard", "Standard"), ...)
        {"Yes": True, "No": False}         -> (("Yes", True), ("No", False))
        [("Standard", "std"), ...]         -> unchanged
    """
    if options is None:
        return None
    if isinstance(options, dict):
        return tuple((str(label), value) for label, value in options.items())
    if isinstance(options, (str, bytes)):
        raise ConfigurationError(f"options must be a list or dict, got {type(options).__name__}")

    pairs: list[tuple[str, Any]] = []
    for item in options:
        if isinstance(item, (tuple, list)) and len(item) == 2:
            pairs.append((str(item[0]), item[1]))
        else:
            pairs.append((str(item), item))
    return tuple(pairs)


def _to_enum(enum_cls: type[Enum], value: Any, attr: str) -> Enum:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(f"{attr} must be one of {allowed}, got {value!r}") from None


@dataclass(frozen=True)
class FieldSpec:
    """Configuration of a single field."""
    title: Optional[str] = None
    description: Optional[str] = None
    read_only: bool = False
    visible: Visibility = Visibility.DEFAULT

    # None = decided by column type
    searchable: Optional[bool] = None
    filterable: Optional[bool] = None
    filter_kind: Optional[FilterKind] = None

    options: Optional[Options] = None

    display: DisplayStrategy = None
    edit: EditStrategy = None

    relationship: Optional[RelationshipBinding] = None

    # Static value or zero-argument callable, applied to new records
    default: Any = None

    # True when synthesized by relationship auto-discovery
    auto: bool = field(default=False, compare=False)

    def __post_init__(self):
        if self.options is not None:
            object.__setattr__(self, "options", normalize_options(self.options))
        if isinstance(self.visible, bool):
            object.__setattr__(self, "visible", Visibility.SHOWN if self.visible else Visibility.HIDDEN)
        elif not isinstance(self.visible, Visibility):
            object.__setattr__(self, "visible", _to_enum(Visibility, self.visible, "visible"))
        if self.filter_kind is not None and not isinstance(self.filter_kind, FilterKind):
            object.__setattr__(self, "filter_kind", _to_enum(FilterKind, self.filter_kind, "filter_kind"))

    @property
    def has_options(self) -> bool:
        return bool(self.options)

    @property
    def has_custom_display(self) -> bool:
        return self.display is not None

    @property
    def has_custom_edit(self) -> bool:
        return self.edit is not None

    @property
    def is_parent_ref(self) -> bool:
        return isinstance(self.relationship, ParentRefBinding)

    def with_changes(self, **changes: Any) -> "FieldSpec":
        """Copy with the given attributes replaced."""
        return replace(self, **changes)
