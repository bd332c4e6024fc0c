"""
Rendering dispatcher - picks the display/edit strategy per (field, record).

Display order:
    1. custom display callback(raw_value, record)
    2. OwnedMany / OwnedOne / SharedMany binding -> relationship renderer
    3. ParentRef binding -> label of the related record
    4. type default

Edit order:
    1. read-only -> display-only widget
    2. SharedMany -> multi-select of related rows
    3. custom edit callback(value, record, form_context)
    4. static options -> select
    5. ParentRef -> select of related rows
    6. type default

Exceptions raised by custom callbacks are caught here and logged. Outside
production the cell shows "Error: <message>"; in production it degrades
to the raw value (display) or a plain text input (edit).

Usage:
    dispatcher = RenderingDispatcher(books, session=session)
    for record in result.items:
        cells = {name: dispatcher.render_display(record, name)
                 for name in books.visible_fields()}
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.errors import RenderError
from ..core.registry import EntityConfig
from ..query.options import related_choices
from ..viewsets.display import record_label
from ..viewsets.fields import (
    OwnedManyBinding,
    OwnedOneBinding,
    ParentRefBinding,
    RenderContext,
    SharedManyBinding,
)
from .defaults import default_display, default_widget
from .widgets import (
    DisplayKind,
    DisplayValue,
    EditWidget,
    ListingLink,
    ValueSource,
    WidgetKind,
)


logger = logging.getLogger(__name__)


DEFAULT_SELECT_PLACEHOLDER = "Select..."


class RenderingDispatcher:
    """
    Per-request renderer for one entity.

    ``session`` is only needed for ParentRef lookups without a loaded
    relationship attribute and for dropdown choices.
    """

    def __init__(
        self,
        config: EntityConfig,
        session: Optional[Session] = None,
        settings: Optional[Settings] = None,
    ):
        self.config = config
        self.schema = config.schema
        self.session = session
        self.settings = settings or config.settings

    # -------------------------------------------------------------------------
    # Value access
    # -------------------------------------------------------------------------

    def value_source(self, name: str) -> ValueSource:
        spec = self.config.get(name)
        if spec is not None and spec.relationship is not None:
            return ValueSource.RELATIONSHIP
        if self.schema.has_column(name) or name in self.schema.attributes:
            return ValueSource.COLUMN
        if self.schema.relationship(name) is not None:
            return ValueSource.RELATIONSHIP
        return ValueSource.COMPUTED

    def raw_value(self, record: Any, name: str) -> Any:
        """Attribute value, or None for computed fields."""
        if (
            self.schema.has_column(name)
            or name in self.schema.attributes
            or self.schema.relationship(name) is not None
        ):
            return getattr(record, name, None)
        return None

    def _call(self, name: str, callback: Callable[..., Any], *args: Any) -> Any:
        try:
            return callback(*args)
        except Exception as e:
            error = RenderError(name, e)
            logger.error(f"{self.config.name}: {error}", exc_info=True)
            raise error from e

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def render_display(self, record: Any, name: str) -> DisplayValue:
        spec = self.config.get(name)
        source = self.value_source(name)
        binding = spec.relationship if spec else None

        if spec is not None and spec.display is not None:
            raw = self.raw_value(record, name)
            try:
                value = self._call(name, spec.display, raw, record)
            except RenderError as e:
                return self._display_error(e, raw, source)
            return DisplayValue(value=value, source=source, kind=DisplayKind.CUSTOM)

        if isinstance(binding, OwnedManyBinding):
            return self._display_owned_many(record, binding)
        if isinstance(binding, OwnedOneBinding):
            return self._display_owned_one(record, binding)
        if isinstance(binding, SharedManyBinding):
            return self._display_shared_many(record, binding)
        if isinstance(binding, ParentRefBinding):
            return self._display_parent_ref(record, name, binding)

        return default_display(self.raw_value(record, name), self.settings, source)

    def _display_error(self, error: RenderError, raw: Any, source: ValueSource) -> DisplayValue:
        if self.settings.is_production:
            return DisplayValue(value="" if raw is None else str(raw), source=source)
        return DisplayValue(value=f"Error: {error.original}", source=source, kind=DisplayKind.ERROR)

    def _display_owned_many(self, record: Any, binding: OwnedManyBinding) -> DisplayValue:
        related = list(getattr(record, binding.relationship, None) or [])
        count = len(related)
        preview = tuple(
            record_label(item, binding.display_field)
            for item in related[: binding.max_preview_items]
        )

        parts: list[str] = []
        if binding.show_count:
            parts.append(f"{count} item" if count == 1 else f"{count} items")
        if preview:
            joined = ", ".join(preview)
            if count > len(preview):
                joined += ", ..."
            parts.append(joined)

        pk = getattr(record, self.schema.primary_key_name, None)
        return DisplayValue(
            value=": ".join(parts),
            source=ValueSource.RELATIONSHIP,
            kind=DisplayKind.RELATIONSHIP,
            link=ListingLink(entity=binding.target.__name__, params={binding.remote_key: pk}),
            preview=preview,
        )

    def _display_owned_one(self, record: Any, binding: OwnedOneBinding) -> DisplayValue:
        related = getattr(record, binding.relationship, None)
        if related is None:
            return DisplayValue(
                value=self.settings.null_placeholder,
                source=ValueSource.RELATIONSHIP,
                kind=DisplayKind.EMPTY,
            )
        return DisplayValue(
            value=record_label(related, binding.display_field),
            source=ValueSource.RELATIONSHIP,
            kind=DisplayKind.RELATIONSHIP,
        )

    def _display_shared_many(self, record: Any, binding: SharedManyBinding) -> DisplayValue:
        related = list(getattr(record, binding.relationship, None) or [])
        if not related:
            return DisplayValue(
                value=self.settings.null_placeholder,
                source=ValueSource.RELATIONSHIP,
                kind=DisplayKind.EMPTY,
            )
        labels = [record_label(item, binding.display_field) for item in related]
        return DisplayValue(
            value=", ".join(labels),
            source=ValueSource.RELATIONSHIP,
            kind=DisplayKind.RELATIONSHIP,
        )

    def related_record(self, record: Any, name: str, binding: ParentRefBinding) -> Any:
        """Parent record for the FK field ``name``, or None."""
        fk_value = getattr(record, name, None)
        if fk_value is None:
            return None
        if binding.relationship:
            related = getattr(record, binding.relationship, None)
            if related is not None:
                return related
        if self.session is not None:
            return self.session.get(binding.target, fk_value)
        return None

    def _display_parent_ref(self, record: Any, name: str, binding: ParentRefBinding) -> DisplayValue:
        fk_value = getattr(record, name, None)
        if fk_value is None:
            return DisplayValue(
                value=self.settings.null_placeholder,
                source=ValueSource.RELATIONSHIP,
                kind=DisplayKind.EMPTY,
            )

        related = self.related_record(record, name, binding)
        if related is None:
            return DisplayValue(
                value=self.settings.not_found_text,
                source=ValueSource.RELATIONSHIP,
                kind=DisplayKind.NOT_FOUND,
            )
        return DisplayValue(
            value=record_label(related, binding.display_field),
            source=ValueSource.RELATIONSHIP,
            kind=DisplayKind.RELATIONSHIP,
        )

    # -------------------------------------------------------------------------
    # Edit
    # -------------------------------------------------------------------------

    def render_edit(self, record: Any, name: str, form_context: Any = None) -> EditWidget:
        spec = self.config.get(name)
        binding = spec.relationship if spec else None
        column = self.schema.column(name)
        value = self.raw_value(record, name)

        if self.config.is_read_only(name):
            return self._display_only(record, name)

        if isinstance(binding, SharedManyBinding):
            return self._multi_select(record, name, binding)

        if spec is not None and spec.edit is not None:
            try:
                rendered = self._call(name, spec.edit, value, record, form_context)
            except RenderError as e:
                return self._edit_error(name, e, value)
            return EditWidget(name=name, kind=WidgetKind.CUSTOM, value=rendered)

        if spec is not None and spec.has_options:
            return EditWidget(
                name=name,
                kind=WidgetKind.SELECT,
                value=value,
                options=spec.options,
                selected=value,
                placeholder=DEFAULT_SELECT_PLACEHOLDER,
                include_blank=True,
            )

        if isinstance(binding, ParentRefBinding):
            return self._parent_select(name, binding, value)

        if column is None:
            # Computed fields have nothing to edit
            return self._display_only(record, name)

        return default_widget(name, column, value)

    def _display_only(self, record: Any, name: str) -> EditWidget:
        display = self.render_display(record, name)
        return EditWidget(name=name, kind=WidgetKind.DISPLAY_ONLY, value=display.value, display=display)

    def _edit_error(self, name: str, error: RenderError, value: Any) -> EditWidget:
        if self.settings.is_production:
            return EditWidget(name=name, kind=WidgetKind.TEXT, value="" if value is None else str(value))
        return EditWidget(name=name, kind=WidgetKind.ERROR, value=f"Error: {error.original}")

    def _choices(self, binding: ParentRefBinding | SharedManyBinding) -> tuple[tuple[str, Any], ...]:
        if self.session is None:
            logger.debug(f"{self.config.name}: no session, dropdown for {binding.target.__name__} left empty")
            return ()
        return tuple(related_choices(self.session, binding))

    def _parent_select(self, name: str, binding: ParentRefBinding, value: Any) -> EditWidget:
        return EditWidget(
            name=name,
            kind=WidgetKind.SELECT,
            value=value,
            options=self._choices(binding),
            selected=value,
            placeholder=binding.placeholder,
            include_blank=True,
        )

    def _multi_select(self, record: Any, name: str, binding: SharedManyBinding) -> EditWidget:
        related = list(getattr(record, binding.relationship, None) or [])
        selected = [getattr(item, binding.target_key) for item in related]
        return EditWidget(
            name=name,
            kind=WidgetKind.MULTI_SELECT,
            value=selected,
            options=self._choices(binding),
            selected=selected,
        )

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def render_row(self, record: Any, fields: list[str]) -> dict[str, DisplayValue]:
        return {name: self.render_display(record, name) for name in fields}

    def render_form(self, record: Any, form_context: Any = None) -> dict[str, EditWidget]:
        return {
            name: self.render_edit(record, name, form_context)
            for name in self.config.visible_fields(RenderContext.FORM)
        }
