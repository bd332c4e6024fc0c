"""
Relationship auto-configuration.

Turns the reflected relationships of an entity into default FieldSpecs:

    ParentRef   -> dropdown on the foreign key column ("Select Author")
    OwnedMany   -> read-only "<n> items" + preview of related labels
    OwnedOne    -> read-only label of the related record
    SharedMany  -> read-only comma-joined labels (multi-select in forms)

Auto-discovery is skip-if-present: a field that already has a FieldSpec
is never touched.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..core.config import Settings
from ..schema.reflector import (
    EntitySchema,
    OwnedMany,
    OwnedOne,
    ParentRef,
    Relationship,
    SharedMany,
)
from .display import best_display_field
from .fields import (
    FieldSpec,
    OwnedManyBinding,
    OwnedOneBinding,
    ParentRefBinding,
    RelationshipBinding,
    SharedManyBinding,
)


logger = logging.getLogger(__name__)


class SupportsAutoRegistration(Protocol):
    schema: EntitySchema
    settings: Settings

    def register_auto(self, name: str, spec: FieldSpec) -> bool: ...


def field_name_for(rel: Relationship) -> str:
    """Name of the field a relationship is configured under."""
    if isinstance(rel, ParentRef):
        return rel.foreign_key
    return rel.name


def binding_for(rel: Relationship, settings: Settings) -> RelationshipBinding:
    """Default binding for one relationship."""
    display_field = best_display_field(rel.target, settings.audit_suffixes)

    if isinstance(rel, ParentRef):
        return ParentRefBinding(
            target=rel.target,
            display_field=display_field,
            relationship=rel.name,
            target_key=rel.target_key,
            placeholder=f"Select {rel.title or rel.name}",
        )
    if isinstance(rel, OwnedMany):
        return OwnedManyBinding(
            target=rel.target,
            relationship=rel.name,
            remote_key=rel.remote_key,
            display_field=display_field,
            max_preview_items=settings.preview_items,
        )
    if isinstance(rel, OwnedOne):
        return OwnedOneBinding(
            target=rel.target,
            relationship=rel.name,
            remote_key=rel.remote_key,
            display_field=display_field,
        )
    if isinstance(rel, SharedMany):
        return SharedManyBinding(
            target=rel.target,
            relationship=rel.name,
            display_field=display_field,
        )
    raise TypeError(f"Unknown relationship kind: {type(rel).__name__}")


def relationship_for_field(schema: EntitySchema, name: str) -> Optional[Relationship]:
    """Relationship configured under field ``name`` (FK column or relation name)."""
    return schema.parent_ref_for(name) or schema.relationship(name)


def auto_field_spec(rel: Relationship, settings: Settings) -> FieldSpec:
    """Synthesize the default FieldSpec for one relationship."""
    binding = binding_for(rel, settings)
    # Owned relationships are display-only
    read_only = isinstance(rel, (OwnedMany, OwnedOne))
    return FieldSpec(
        title=rel.title or None,
        read_only=read_only,
        relationship=binding,
        auto=True,
    )


def auto_configure(registry: SupportsAutoRegistration) -> list[str]:
    """
    Register default FieldSpecs for every relationship of the entity.

    Returns:
        Names of the fields that were added (already configured fields
        are skipped)
    """
    added: list[str] = []
    for rel in registry.schema.relationships:
        name = field_name_for(rel)
        if registry.register_auto(name, auto_field_spec(rel, registry.settings)):
            added.append(name)

    if added:
        logger.debug(f"Auto-configured {registry.schema.name} fields: {added}")
    return added
