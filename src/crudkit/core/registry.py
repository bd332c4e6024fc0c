"""
Entity registry - collects field configuration for each entity.

Registration reads a model (and optionally a ModelViewSet) once and
produces an EntityConfig: the reflected schema plus one FieldSpec per
configured field. The EntityConfig is frozen before it is handed to the
query builder and the rendering dispatcher, so request handling only
ever reads it.

Usage:
    from crudkit import EntityRegistry, register_entity

    registry = EntityRegistry(settings)
    books = registry.register(BookViewSet)

    # or without a viewset
    authors = register_entity(Author, fields={"bio": FieldSpec(searchable=False)})

    books.visible_fields(RenderContext.LIST)   # ["id", "title", "isbn", ...]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..schema.reflector import ColumnKind, EntitySchema, OwnedMany, OwnedOne, ParentRef, SharedMany, reflect
from ..viewsets.autoconfig import auto_configure, binding_for, relationship_for_field
from ..viewsets.base import ModelViewSet
from ..viewsets.fields import (
    FieldSpec,
    FilterKind,
    OwnedManyBinding,
    OwnedOneBinding,
    ParentRefBinding,
    RenderContext,
    SharedManyBinding,
    Visibility,
)
from .config import Settings
from .errors import ConfigurationError
from .utils import humanize


logger = logging.getLogger(__name__)


SORT_DIRECTIONS = ("asc", "desc")

# Binding class accepted for each reflected relationship kind
_BINDING_FOR_KIND = {
    ParentRef: ParentRefBinding,
    OwnedMany: OwnedManyBinding,
    OwnedOne: OwnedOneBinding,
    SharedMany: SharedManyBinding,
}


@dataclass(frozen=True)
class FilterField:
    """Filter control metadata for one field."""
    name: str
    title: str
    kind: FilterKind


# =============================================================================
# EntityConfig
# =============================================================================


class EntityConfig:
    """
    Field metadata registry for one entity.

    Mutable only until ``freeze()``; lookups by field name afterwards.
    """

    def __init__(
        self,
        schema: EntitySchema,
        settings: Optional[Settings] = None,
        callbacks: Optional[dict[str, Callable[..., Any]]] = None,
        name: Optional[str] = None,
    ):
        self.schema = schema
        self.settings = settings or Settings()
        self.name = name or schema.name
        self.callbacks: dict[str, Callable[..., Any]] = dict(callbacks or {})
        self.default_sort: tuple[str, str] = (schema.primary_key_name, "asc")
        self._specs: dict[str, FieldSpec] = {}
        self._frozen = False

        for cb_name, fn in self.callbacks.items():
            if not callable(fn):
                raise ConfigurationError(f"callback '{cb_name}' is not callable", self.name)

    @property
    def model(self) -> type:
        return self.schema.model

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, name: str, spec: FieldSpec) -> FieldSpec:
        """
        Register an explicit FieldSpec, replacing any auto-discovered one.

        Raises:
            ConfigurationError: unknown field, conflicting options or an
                unresolvable callback name
        """
        self._check_mutable()
        resolved = self._validate(name, spec)
        self._specs[name] = resolved
        return resolved

    def register_auto(self, name: str, spec: FieldSpec) -> bool:
        """Register an auto-discovered FieldSpec unless ``name`` is configured."""
        self._check_mutable()
        if name in self._specs:
            return False
        self._specs[name] = spec
        return True

    def set_default_sort(self, column: str, direction: str = "asc") -> None:
        self._check_mutable()
        if not self.schema.is_sortable(column):
            raise ConfigurationError(f"default sort column '{column}' is not a sortable attribute", self.name)
        if direction not in SORT_DIRECTIONS:
            raise ConfigurationError(f"default sort direction must be one of {SORT_DIRECTIONS}", self.name)
        self.default_sort = (column, direction)

    def freeze(self) -> "EntityConfig":
        self._frozen = True
        return self

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ConfigurationError("configuration is frozen after registration", self.name)

    def _resolve_callback(self, name: str, strategy: Any, role: str) -> Any:
        if strategy is None or callable(strategy):
            return strategy
        if isinstance(strategy, str):
            fn = self.callbacks.get(strategy)
            if fn is None:
                raise ConfigurationError(
                    f"{role} callback '{strategy}' is not registered "
                    f"(available: {sorted(self.callbacks)})",
                    self.name, name,
                )
            return fn
        raise ConfigurationError(
            f"{role} strategy must be a callback name or a callable, got {type(strategy).__name__}",
            self.name, name,
        )

    def _validate(self, name: str, spec: FieldSpec) -> FieldSpec:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"field name must be a non-empty string, got {name!r}", self.name)
        if not isinstance(spec, FieldSpec):
            raise ConfigurationError(f"expected FieldSpec, got {type(spec).__name__}", self.name, name)

        relation = relationship_for_field(self.schema, name)
        is_column = self.schema.has_column(name)

        if not is_column and relation is None and spec.display is None and spec.relationship is None:
            raise ConfigurationError(
                "unknown field: not a column or relationship, and no display strategy "
                "for a computed field",
                self.name, name,
            )

        # Relationship fields keep their binding unless a static options list replaces it
        if spec.relationship is None and relation is not None and not spec.has_options:
            spec = spec.with_changes(relationship=binding_for(relation, self.settings))
        elif spec.relationship is not None and relation is not None:
            self._check_binding(name, spec.relationship, relation)

        if isinstance(spec.relationship, ParentRefBinding) and spec.has_options:
            raise ConfigurationError(
                "a foreign-key dropdown and a static options list are mutually exclusive",
                self.name, name,
            )

        return spec.with_changes(
            display=self._resolve_callback(name, spec.display, "display"),
            edit=self._resolve_callback(name, spec.edit, "edit"),
            auto=False,
        )

    def _check_binding(self, name: str, binding: Any, relation: Any) -> None:
        expected = _BINDING_FOR_KIND[type(relation)]
        if not isinstance(binding, expected):
            raise ConfigurationError(
                f"{type(binding).__name__} does not match the reflected "
                f"{type(relation).__name__} relationship (expected {expected.__name__})",
                self.name, name,
            )
        if binding.target is not relation.target:
            raise ConfigurationError(
                f"binding target {binding.target.__name__} does not match the "
                f"relationship target {relation.target.__name__}",
                self.name, name,
            )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get(self, name: str) -> Optional[FieldSpec]:
        return self._specs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    @property
    def configured_fields(self) -> list[str]:
        return list(self._specs)

    @property
    def virtual_fields(self) -> list[str]:
        """Configured fields without a backing column, in registration order."""
        return [name for name in self._specs if not self.schema.has_column(name)]

    def title(self, name: str) -> str:
        spec = self.get(name)
        return spec.title if spec and spec.title else humanize(name)

    def description(self, name: str) -> Optional[str]:
        spec = self.get(name)
        return spec.description if spec else None

    def is_read_only(self, name: str) -> bool:
        spec = self.get(name)
        if spec is None:
            return False
        return spec.read_only or isinstance(spec.relationship, (OwnedManyBinding, OwnedOneBinding))

    # -------------------------------------------------------------------------
    # Column selection
    # -------------------------------------------------------------------------

    def visible_fields(self, context: RenderContext = RenderContext.LIST) -> list[str]:
        """
        Ordered field names to render: columns first, then virtual fields.

        HIDDEN is always excluded and SHOWN always included; otherwise
        audit-suffixed columns are hidden (and primary keys in forms).
        """
        result: list[str] = []
        for name in list(self.schema.column_names) + self.virtual_fields:
            spec = self.get(name)
            visibility = spec.visible if spec else Visibility.DEFAULT

            if visibility is Visibility.HIDDEN:
                continue
            if visibility is Visibility.SHOWN:
                result.append(name)
                continue

            column = self.schema.column(name)
            if column is None:
                # Virtual fields only reach here when they have a FieldSpec
                result.append(name)
            elif self.settings.is_audit_column(name):
                continue
            elif context is RenderContext.FORM and column.primary_key:
                continue
            else:
                result.append(name)
        return result

    def editable_fields(self) -> list[str]:
        """Form fields that render as inputs."""
        return [name for name in self.visible_fields(RenderContext.FORM) if not self.is_read_only(name)]

    # -------------------------------------------------------------------------
    # Search / filter eligibility
    # -------------------------------------------------------------------------

    def searchable_fields(self) -> list[str]:
        """Columns included in free-text search."""
        result: list[str] = []
        for column in self.schema.columns:
            spec = self.get(column.name)
            if spec is not None and spec.searchable is not None:
                if spec.searchable:
                    result.append(column.name)
                continue
            if not column.kind.is_textual:
                continue
            if self.settings.is_audit_column(column.name):
                continue
            if spec is not None and spec.visible is Visibility.HIDDEN:
                continue
            result.append(column.name)
        return result

    def is_filterable(self, name: str) -> bool:
        column = self.schema.column(name)
        if column is None:
            return False
        spec = self.get(name)
        if spec is not None and spec.filterable is not None:
            return spec.filterable
        if column.primary_key or column.kind in (ColumnKind.JSON, ColumnKind.OTHER):
            return False
        visibility = spec.visible if spec else Visibility.DEFAULT
        if visibility is Visibility.HIDDEN:
            return False
        if self.settings.is_audit_column(name) and visibility is not Visibility.SHOWN:
            return False
        return True

    def filter_kind(self, name: str) -> FilterKind:
        spec = self.get(name)
        if spec is not None and spec.filter_kind is not None:
            return spec.filter_kind

        column = self.schema.column(name)
        if column is None:
            return FilterKind.TEXT
        if column.kind is ColumnKind.BOOLEAN:
            return FilterKind.BOOLEAN
        if column.kind.is_temporal:
            return FilterKind.DATE_RANGE
        if (
            column.kind is ColumnKind.ENUM
            or (spec is not None and (spec.has_options or spec.is_parent_ref))
            or self.schema.parent_ref_for(name) is not None
        ):
            return FilterKind.SELECT
        return FilterKind.TEXT

    def filterable_fields(self) -> list[FilterField]:
        return [
            FilterField(name=name, title=self.title(name), kind=self.filter_kind(name))
            for name in self.schema.column_names
            if self.is_filterable(name)
        ]

    def date_range_fields(self) -> list[str]:
        return [
            column.name
            for column in self.schema.columns
            if column.kind.is_temporal and self.is_filterable(column.name)
        ]

    # -------------------------------------------------------------------------
    # Defaults
    # -------------------------------------------------------------------------

    def resolve_default(self, name: str) -> Any:
        spec = self.get(name)
        if spec is None or spec.default is None:
            return None
        return spec.default() if callable(spec.default) else spec.default

    def apply_defaults(self, record: Any) -> Any:
        """Set configured defaults on unset column attributes of ``record``."""
        for name, spec in self._specs.items():
            if spec.default is None or not self.schema.has_column(name):
                continue
            if getattr(record, name, None) is None:
                setattr(record, name, self.resolve_default(name))
        return record

    # -------------------------------------------------------------------------
    # Debugging
    # -------------------------------------------------------------------------

    def describe(self) -> dict[str, Any]:
        """Plain-data dump of the configuration."""
        fields: dict[str, Any] = {}
        for name in list(self.schema.column_names) + self.virtual_fields:
            spec = self.get(name)
            column = self.schema.column(name)
            entry: dict[str, Any] = {
                "title": self.title(name),
                "type": column.kind.value if column else "virtual",
                "read_only": self.is_read_only(name),
                "visible": (spec.visible if spec else Visibility.DEFAULT).value,
                "searchable": name in self.searchable_fields(),
                "filterable": self.is_filterable(name),
            }
            if spec is not None:
                entry["auto"] = spec.auto
                if spec.relationship is not None:
                    entry["relationship"] = {
                        "kind": type(spec.relationship).__name__.replace("Binding", ""),
                        "target": spec.relationship.target.__name__,
                        "display_field": (
                            spec.relationship.display_field
                            if isinstance(spec.relationship.display_field, str) else "<callable>"
                        ),
                    }
                if spec.options:
                    entry["options"] = [label for label, _ in spec.options]
                if spec.display is not None:
                    entry["display"] = getattr(spec.display, "__name__", "<callable>")
                if spec.edit is not None:
                    entry["edit"] = getattr(spec.edit, "__name__", "<callable>")
            fields[name] = entry

        return {
            "entity": self.name,
            "model": f"{self.model.__module__}.{self.model.__name__}",
            "default_sort": list(self.default_sort),
            "visible": {ctx.value: self.visible_fields(ctx) for ctx in RenderContext},
            "fields": fields,
        }


# =============================================================================
# Registration entry points
# =============================================================================


def register_entity(
    model: type,
    fields: Optional[dict[str, FieldSpec]] = None,
    *,
    default_sort: Optional[tuple[str, str]] = None,
    callbacks: Optional[dict[str, Callable[..., Any]]] = None,
    settings: Optional[Settings] = None,
    name: Optional[str] = None,
) -> EntityConfig:
    """
    Build and freeze the EntityConfig for ``model``.

    Explicit ``fields`` are registered first; relationship auto-discovery
    then fills in every relationship field that is still unconfigured.

    Raises:
        ConfigurationError: on any invalid declaration
    """
    schema = reflect(model)
    config = EntityConfig(schema, settings=settings, callbacks=callbacks, name=name)

    for field_name, spec in (fields or {}).items():
        config.register(field_name, spec)

    auto_configure(config)

    if default_sort is not None:
        column, *rest = default_sort
        config.set_default_sort(column, rest[0] if rest else "asc")

    logger.info(f"Registered entity {config.name} ({len(config.configured_fields)} configured fields)")
    return config.freeze()


class EntityRegistry:
    """
    Collects EntityConfigs from ViewSets.

    Example:
        registry = EntityRegistry()
        registry.register(BookViewSet)
        registry.register(AuthorViewSet)
        registry.get("Book").visible_fields()
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self._entities: dict[str, EntityConfig] = {}

    def register(self, viewset: type[ModelViewSet]) -> EntityConfig:
        """Register a viewset class and return its frozen EntityConfig."""
        if not isinstance(viewset, type) or not issubclass(viewset, ModelViewSet):
            raise ConfigurationError(f"Expected ModelViewSet subclass, got {viewset!r}")
        if getattr(viewset, "model", None) is None:
            raise ConfigurationError(f"{viewset.__name__} does not declare a model")

        entity_name = viewset.get_entity_name()
        if entity_name in self._entities:
            raise ConfigurationError("entity is already registered", entity_name)

        config = register_entity(
            viewset.model,
            viewset.get_fields(),
            default_sort=viewset.get_default_sort(),
            callbacks=viewset.get_callbacks(),
            settings=self.settings,
            name=entity_name,
        )
        self._entities[entity_name] = config
        return config

    def register_all(self, viewsets: Iterable[type[ModelViewSet]]) -> list[EntityConfig]:
        return [self.register(vs) for vs in viewsets]

    def get(self, entity: str | type) -> Optional[EntityConfig]:
        """Look up by entity name or model class."""
        if isinstance(entity, str):
            return self._entities.get(entity)
        for config in self._entities.values():
            if config.model is entity:
                return config
        return None

    def __getitem__(self, entity: str) -> EntityConfig:
        config = self._entities.get(entity)
        if config is None:
            raise KeyError(entity)
        return config

    def __contains__(self, entity: object) -> bool:
        return entity in self._entities

    @property
    def entities(self) -> dict[str, EntityConfig]:
        return dict(self._entities)
