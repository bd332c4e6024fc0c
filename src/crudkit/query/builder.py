"""
Query builder for entity listings.

Composes one SELECT per request from an EntityConfig and normalized
request values. Stages run in a fixed order:

    1. parent-context filter     ?parent[author_id]=3
    2. free-text search          ?search=gatsby
    3. field filters             ?filter[available]=true
    4. date ranges               ?filter[published_onFrom]=2020-01-01
    5. sort                      ?sort=title&direction=desc
    6. pagination                ?page=2&per_page=10

Field names from the request are only ever used as keys into the
reflected schema; the mapped attribute found there is what enters the
statement, and every value is a bound parameter. Bad input never
raises: it is dropped, logged at DEBUG, and defaults apply.

Usage:
    builder = QueryBuilder(config, preferences=request.session)
    result = builder.build_query(
        session,
        criteria=FilterCriteria(query="gatsby"),
        sort=SortSpec(column="title", direction="desc"),
        page=PageSpec(page=1),
    )
    result.items, result.total
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, MutableMapping, Optional

from sqlalchemy import Select, String, and_, cast, func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..core.config import Settings
from ..core.query_types import (
    FilterCriteria,
    PageSpec,
    ResolvedPage,
    ResolvedSort,
    SortSpec,
)
from ..core.registry import SORT_DIRECTIONS, EntityConfig
from ..core.request_parser import parse_list_request
from ..core.utils import is_blank, to_camel_case
from ..schema.reflector import ColumnInfo, ColumnKind, ParentRef
from ..viewsets.fields import RenderContext
from .coercion import (
    INT64_MAX,
    coerce_bool,
    coerce_for_kind,
    parse_temporal,
    range_bound,
)
from .options import filter_options


logger = logging.getLogger(__name__)


LIKE_ESCAPE = "\\"

# Keys of a {from, to} filter value
RANGE_FROM_KEYS = ("from", "start", "gte")
RANGE_TO_KEYS = ("to", "end", "lte")


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def toggle_direction(direction: Optional[str]) -> str:
    """Opposite sort direction; anything but "asc" toggles to "asc"."""
    return "desc" if direction == "asc" else "asc"


def next_sort(current: ResolvedSort, column: str) -> SortSpec:
    """Sort requested by clicking ``column``: same column toggles, new column starts ascending."""
    if current.column == column:
        return SortSpec(column=column, direction=toggle_direction(current.direction))
    return SortSpec(column=column, direction="asc")


# =============================================================================
# Results
# =============================================================================


@dataclass
class ParentContext:
    """Resolved parent of a nested listing."""
    foreign_key: str
    value: Any
    target: type
    record: Any = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.record is not None


@dataclass
class QueryResult:
    """One page of records plus the values that produced it."""
    items: list[Any]
    total: int
    page: ResolvedPage
    sort: ResolvedSort
    parent_context: Optional[ParentContext] = None
    parent_filters: dict[str, Any] = field(default_factory=dict)

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 1
        return (self.total + self.page.per_page - 1) // self.page.per_page

    @property
    def has_next(self) -> bool:
        return self.page.page < self.pages


# =============================================================================
# QueryBuilder
# =============================================================================


class QueryBuilder:
    """
    Builds list queries for one entity.

    Holds no mutable state besides the caller-owned ``preferences``
    mapping (page-size preference, e.g. a web session).
    """

    def __init__(
        self,
        config: EntityConfig,
        settings: Optional[Settings] = None,
        preferences: Optional[MutableMapping[str, Any]] = None,
    ):
        self.config = config
        self.schema = config.schema
        self.model = config.model
        self.settings = settings or config.settings
        self.preferences = preferences

    @property
    def preference_key(self) -> str:
        return f"{self.config.name}.per_page"

    def _attribute(self, name: str):
        # Only called with names taken from the reflected schema
        return getattr(self.model, name)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def build_statement(
        self,
        base: Optional[Select] = None,
        criteria: Optional[FilterCriteria] = None,
        sort: Optional[SortSpec] = None,
        parent: Optional[Mapping[str, Any]] = None,
    ) -> Select:
        """Filtered and ordered statement, without pagination."""
        stmt, _ = self._filtered(base, criteria, parent)
        return self._apply_sort(stmt, self.resolve_sort(sort))

    def build_query(
        self,
        session: Session,
        base: Optional[Select] = None,
        criteria: Optional[FilterCriteria] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[PageSpec] = None,
        parent: Optional[Mapping[str, Any]] = None,
    ) -> QueryResult:
        """
        Execute the listing query: one COUNT round trip, one page round trip.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: store errors propagate unchanged
        """
        stmt, parent_filters = self._filtered(base, criteria, parent)

        total = self.count(session, stmt)

        resolved_sort = self.resolve_sort(sort)
        resolved_page = self.resolve_page(page)

        stmt = self._apply_sort(stmt, resolved_sort)
        stmt = self._apply_eager_loading(stmt)
        stmt = stmt.offset(resolved_page.offset).limit(resolved_page.per_page)

        items = list(session.scalars(stmt).all())

        return QueryResult(
            items=items,
            total=total,
            page=resolved_page,
            sort=resolved_sort,
            parent_context=self.resolve_parent(session, parent_filters),
            parent_filters=parent_filters,
        )

    def total_unfiltered(
        self,
        session: Session,
        base: Optional[Select] = None,
        parent: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Row count with only the parent-context filter applied."""
        stmt = base if base is not None else select(self.model)
        stmt, _ = self._apply_parent(stmt, parent)
        return self.count(session, stmt)

    def filter_options(self, session: Session, name: str) -> list[tuple[str, Any]]:
        """Choices for the filter control of ``name``."""
        return filter_options(session, self.config, name)

    @staticmethod
    def count(session: Session, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        return session.execute(count_stmt).scalar() or 0

    # -------------------------------------------------------------------------
    # Stages 1-4
    # -------------------------------------------------------------------------

    def _filtered(
        self,
        base: Optional[Select],
        criteria: Optional[FilterCriteria],
        parent: Optional[Mapping[str, Any]],
    ) -> tuple[Select, dict[str, Any]]:
        criteria = criteria or FilterCriteria()
        stmt = base if base is not None else select(self.model)

        stmt, parent_filters = self._apply_parent(stmt, parent)
        stmt = self._apply_search(stmt, criteria.query)
        stmt = self._apply_filters(stmt, criteria.filters)
        stmt = self._apply_date_ranges(stmt, criteria.filters)
        return stmt, parent_filters

    def _apply_parent(
        self,
        stmt: Select,
        parent: Optional[Mapping[str, Any]],
    ) -> tuple[Select, dict[str, Any]]:
        applied: dict[str, Any] = {}
        for foreign_key, raw_value in (parent or {}).items():
            ref = self.schema.parent_ref_for(foreign_key)
            if ref is None:
                logger.debug(f"{self.config.name}: ignoring parent filter on non-parent key {foreign_key!r}")
                continue

            column = self.schema.column(ref.foreign_key)
            value = coerce_for_kind(column.kind, raw_value) if column else None
            if value is None:
                logger.debug(f"{self.config.name}: ignoring uncoercible parent id {raw_value!r}")
                continue

            stmt = stmt.where(self._attribute(ref.foreign_key) == value)
            applied[ref.foreign_key] = value
        return stmt, applied

    def _apply_search(self, stmt: Select, query: str) -> Select:
        term = (query or "").strip()
        if not term:
            return stmt

        names = self.config.searchable_fields()
        if not names:
            return stmt

        pattern = f"%{escape_like(term)}%"
        clauses = []
        for name in names:
            attr = self._attribute(name)
            if not self.schema.column(name).kind.is_textual:
                attr = cast(attr, String)
            clauses.append(attr.ilike(pattern, escape=LIKE_ESCAPE))
        return stmt.where(or_(*clauses))

    def _apply_filters(self, stmt: Select, filters: Mapping[str, Any]) -> Select:
        for name, value in filters.items():
            column = self.schema.column(name) if isinstance(name, str) else None
            if column is None:
                # Unknown names include date-range companion keys
                continue
            if is_blank(value):
                continue
            spec = self.config.get(name)
            if spec is not None and spec.filterable is False:
                logger.debug(f"{self.config.name}: {name} is not filterable")
                continue

            clause = self._filter_clause(column, value)
            if clause is None:
                logger.debug(f"{self.config.name}: ignoring filter {name}={value!r}")
                continue
            stmt = stmt.where(clause)
        return stmt

    def _filter_clause(self, column: ColumnInfo, value: Any):
        attr = self._attribute(column.name)
        kind = column.kind
        spec = self.config.get(column.name)

        if kind.is_temporal:
            return self._temporal_clause(column, value)

        if isinstance(value, Mapping):
            return None

        if kind is ColumnKind.BOOLEAN:
            flag = coerce_bool(value[-1] if isinstance(value, list) and value else value)
            return None if flag is None else attr == flag

        if kind.is_textual and not (spec is not None and spec.has_options):
            if isinstance(value, list):
                terms = [str(v) for v in value if not is_blank(v)]
                if not terms:
                    return None
                return or_(*[attr.ilike(f"%{escape_like(t)}%", escape=LIKE_ESCAPE) for t in terms])
            return attr.ilike(f"%{escape_like(str(value))}%", escape=LIKE_ESCAPE)

        if isinstance(value, list):
            coerced = [c for c in (coerce_for_kind(kind, v) for v in value) if c is not None]
            return attr.in_(coerced) if coerced else None

        coerced = coerce_for_kind(kind, value)
        return None if coerced is None else attr == coerced

    def _temporal_clause(self, column: ColumnInfo, value: Any):
        attr = self._attribute(column.name)
        kind = column.kind

        if isinstance(value, Mapping):
            lower = next((value[k] for k in RANGE_FROM_KEYS if not is_blank(value.get(k))), None)
            upper = next((value[k] for k in RANGE_TO_KEYS if not is_blank(value.get(k))), None)
            return self._range_clause(attr, kind, lower, upper)

        if isinstance(value, list):
            return None

        parsed, date_only = parse_temporal(value)
        if parsed is None:
            return None
        if kind is ColumnKind.DATETIME and date_only:
            # A calendar day on a timestamp column
            return self._range_clause(attr, kind, parsed, parsed)
        return attr == range_bound(value, kind, upper=False)

    @staticmethod
    def _range_clause(attr, kind: ColumnKind, lower: Any, upper: Any):
        clauses = []
        if lower is not None:
            bound = range_bound(lower, kind, upper=False)
            if bound is not None:
                clauses.append(attr >= bound)
        if upper is not None:
            bound = range_bound(upper, kind, upper=True)
            if bound is not None:
                clauses.append(attr <= bound)
        if not clauses:
            return None
        return and_(*clauses)

    @staticmethod
    def range_keys(name: str) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Accepted companion filter keys for a date range on ``name``."""
        camel = to_camel_case(name)
        from_keys = tuple(dict.fromkeys((f"{name}From", f"{camel}From", f"{name}_from")))
        to_keys = tuple(dict.fromkeys((f"{name}To", f"{camel}To", f"{name}_to")))
        return from_keys, to_keys

    def _apply_date_ranges(self, stmt: Select, filters: Mapping[str, Any]) -> Select:
        for name in self.config.date_range_fields():
            from_keys, to_keys = self.range_keys(name)
            lower = next((filters[k] for k in from_keys if not is_blank(filters.get(k))), None)
            upper = next((filters[k] for k in to_keys if not is_blank(filters.get(k))), None)
            if lower is None and upper is None:
                continue

            clause = self._range_clause(self._attribute(name), self.schema.column(name).kind, lower, upper)
            if clause is None:
                logger.debug(f"{self.config.name}: ignoring malformed date range on {name}")
                continue
            stmt = stmt.where(clause)
        return stmt

    # -------------------------------------------------------------------------
    # Stage 5: sort
    # -------------------------------------------------------------------------

    def resolve_sort(self, sort: Optional[SortSpec]) -> ResolvedSort:
        """
        Validate a requested sort against the schema.

        Unknown column -> entity default (column and direction);
        unknown direction -> default direction.
        """
        default_column, default_direction = self.config.default_sort
        if sort is None:
            return ResolvedSort(column=default_column, direction=default_direction)

        if self.schema.is_sortable(sort.column):
            column = sort.column
        else:
            if sort.column is not None:
                logger.debug(f"{self.config.name}: invalid sort column {sort.column!r}, using default")
            return ResolvedSort(column=default_column, direction=default_direction)

        direction = sort.direction.lower() if isinstance(sort.direction, str) else None
        if direction not in SORT_DIRECTIONS:
            if sort.direction is not None:
                logger.debug(f"{self.config.name}: invalid sort direction {sort.direction!r}, using default")
            direction = default_direction

        return ResolvedSort(column=column, direction=direction)

    def _apply_sort(self, stmt: Select, sort: ResolvedSort) -> Select:
        attr = self._attribute(sort.column)
        return stmt.order_by(attr.desc() if sort.direction == "desc" else attr.asc())

    # -------------------------------------------------------------------------
    # Stage 6: pagination
    # -------------------------------------------------------------------------

    def resolve_page(self, page: Optional[PageSpec]) -> ResolvedPage:
        """
        per_page: request value (stored as the new preference), else the
        stored preference, else the configured default; capped at the
        configured maximum.
        """
        page = page or PageSpec()
        number = page.page if isinstance(page.page, int) and page.page >= 1 else 1

        per_page = page.per_page if isinstance(page.per_page, int) and page.per_page >= 1 else None
        if per_page is not None:
            if self.preferences is not None:
                self.preferences[self.preference_key] = per_page
        elif self.preferences is not None:
            stored = self.preferences.get(self.preference_key)
            if isinstance(stored, int) and not isinstance(stored, bool) and stored >= 1:
                per_page = stored

        if per_page is None:
            per_page = self.settings.default_per_page
        per_page = min(per_page, self.settings.max_per_page)

        # Offset must stay within the signed 64-bit range
        number = min(number, INT64_MAX // per_page)

        return ResolvedPage(page=number, per_page=per_page)

    # -------------------------------------------------------------------------
    # Eager loading and parent context
    # -------------------------------------------------------------------------

    def eager_relationships(self) -> list[str]:
        """Relationship attributes rendered in the list context."""
        names: list[str] = []
        for name in self.config.visible_fields(RenderContext.LIST):
            spec = self.config.get(name)
            binding = spec.relationship if spec else None
            rel_name = getattr(binding, "relationship", None)
            if rel_name and self.schema.relationship(rel_name) is not None and rel_name not in names:
                names.append(rel_name)
        return names

    def _apply_eager_loading(self, stmt: Select) -> Select:
        names = self.eager_relationships()
        if not names:
            return stmt
        return stmt.options(*[selectinload(self._attribute(name)) for name in names])

    def resolve_parent(self, session: Session, parent_filters: Mapping[str, Any]) -> Optional[ParentContext]:
        """Load the parent record of the first applied parent filter."""
        for foreign_key, value in parent_filters.items():
            ref: ParentRef = self.schema.parent_ref_for(foreign_key)
            record = session.get(ref.target, value)
            context = ParentContext(foreign_key=foreign_key, value=value, target=ref.target, record=record)
            if record is None:
                context.error = f"{ref.target.__name__} with ID {value} not found"
                logger.debug(f"{self.config.name}: {context.error}")
            return context
        return None


# =============================================================================
# Convenience wrapper over raw parameters
# =============================================================================


def build_query(
    session: Session,
    config: EntityConfig,
    raw_filter_params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
    raw_sort_params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
    raw_page_params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
    *,
    base: Optional[Select] = None,
    parent: Optional[Mapping[str, Any]] = None,
    preferences: Optional[MutableMapping[str, Any]] = None,
) -> QueryResult:
    """
    Run a listing query from raw, untyped request parameters.

    Each raw argument is in query-string shape and may be the same
    mapping, e.g. ``build_query(session, books, params, params, params)``.
    A ``parent`` key inside the filter params is used when ``parent`` is
    not given.
    """
    filter_request = parse_list_request(raw_filter_params)
    sort_request = parse_list_request(raw_sort_params)
    page_request = parse_list_request(raw_page_params)

    builder = QueryBuilder(config, preferences=preferences)
    return builder.build_query(
        session,
        base=base,
        criteria=filter_request.criteria,
        sort=sort_request.sort,
        page=page_request.page,
        parent=parent if parent is not None else filter_request.parent,
    )
