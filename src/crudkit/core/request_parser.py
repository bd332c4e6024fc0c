"""
Request parser for list requests.

Turns raw, untyped request parameters into normalized request values.
Two raw shapes are accepted:

1. Nested mapping (JSON body or already-decoded query string):
   {"search": "gatsby",
    "filter": {"available": "true", "published_on": {"from": "2020-01-01"}},
    "sort": "title", "direction": "desc",
    "page": "2", "per_page": "10",
    "parent": {"author_id": "3"}}

2. Flat query-string pairs, decoded by ``parse_nested_params``:
   [("filter[available]", "true"), ("filter[author_id][]", "1"), ...]

Nothing here raises on bad input: unusable values are dropped (and
logged at DEBUG) and the query builder falls back to defaults.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .query_types import FilterCriteria, PageSpec, SortSpec
from .utils import is_blank


logger = logging.getLogger(__name__)


# Accepted spellings of each top-level key, first match wins
SEARCH_KEYS = ("search", "q", "query")
FILTER_KEYS = ("filter", "filters")
SORT_KEYS = ("sort", "sort_by", "order")
DIRECTION_KEYS = ("direction", "dir", "sort_direction")
PAGE_KEYS = ("page",)
PER_PAGE_KEYS = ("per_page", "perPage", "page_size")
PARENT_KEYS = ("parent",)

# Largest value a store accepts as a bound integer (signed 64-bit)
MAX_INT = 2 ** 63 - 1

_BRACKET_PATTERN = re.compile(r"\[([^\[\]]*)\]")


@dataclass
class ParsedListRequest:
    """Normalized list request."""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    sort: SortSpec = field(default_factory=SortSpec)
    page: PageSpec = field(default_factory=PageSpec)
    parent: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Query-string decoding
# =============================================================================


def _split_key(key: str) -> list[str]:
    """
    "filter[published_on][from]" -> ["filter", "published_on", "from"]
    "filter[author_id][]"        -> ["filter", "author_id", ""]
    """
    head, _, rest = key.partition("[")
    if not rest:
        return [key]
    return [head] + _BRACKET_PATTERN.findall("[" + rest)


def _assign(target: dict[str, Any], parts: list[str], value: Any) -> None:
    node = target
    for i, part in enumerate(parts[:-1]):
        following = parts[i + 1]
        existing = node.get(part)

        if following == "":
            # key[] -> list of values
            if not isinstance(existing, list):
                existing = [] if existing is None else [existing]
                node[part] = existing
            existing.append(value)
            return

        if not isinstance(existing, dict):
            existing = {}
            node[part] = existing
        node = existing

    last = parts[-1]
    if last == "":
        return
    current = node.get(last)
    if current is None:
        node[last] = value
    elif isinstance(current, list):
        current.append(value)
    else:
        # Repeated plain key: collect into a list
        node[last] = [current, value]


def parse_nested_params(pairs: Iterable[tuple[str, Any]] | Mapping[str, Any]) -> dict[str, Any]:
    """
    Decode bracketed query-string keys into a nested dict.

    Example:
        parse_nested_params([
            ("search", "gatsby"),
            ("filter[published_on][from]", "2020-01-01"),
            ("filter[author_id][]", "1"),
            ("filter[author_id][]", "2"),
        ])
        ->
        {"search": "gatsby",
         "filter": {"published_on": {"from": "2020-01-01"}, "author_id": ["1", "2"]}}
    """
    if isinstance(pairs, Mapping):
        multi_items = getattr(pairs, "multi_items", None)
        items = multi_items() if callable(multi_items) else pairs.items()
    else:
        items = pairs

    result: dict[str, Any] = {}
    for key, value in items:
        if not isinstance(key, str) or not key:
            continue
        _assign(result, _split_key(key), value)
    return result


# =============================================================================
# Normalization
# =============================================================================


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _scalar(value: Any) -> Any:
    """Last element of a repeated parameter, the value itself otherwise."""
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def _positive_int(value: Any) -> Optional[int]:
    value = _scalar(value)
    if isinstance(value, bool):
        return None
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if 1 <= number <= MAX_INT else None


def parse_criteria(raw: Mapping[str, Any]) -> FilterCriteria:
    search = _scalar(_first(raw, SEARCH_KEYS))
    query = search.strip() if isinstance(search, str) else ""

    filters: dict[str, Any] = {}
    raw_filters = _first(raw, FILTER_KEYS)
    if isinstance(raw_filters, Mapping):
        for name, value in raw_filters.items():
            if not isinstance(name, str) or is_blank(value):
                continue
            filters[name] = value
    elif raw_filters is not None:
        logger.debug(f"Ignoring non-mapping filter parameter: {raw_filters!r}")

    return FilterCriteria(query=query, filters=filters)


def parse_sort(raw: Mapping[str, Any]) -> SortSpec:
    column = _scalar(_first(raw, SORT_KEYS))
    direction = _scalar(_first(raw, DIRECTION_KEYS))

    # "-title" shorthand for descending
    if isinstance(column, str) and column.startswith("-") and direction is None:
        column, direction = column[1:], "desc"

    return SortSpec(
        column=column if isinstance(column, str) and column else None,
        direction=direction.lower() if isinstance(direction, str) and direction else None,
    )


def parse_page(raw: Mapping[str, Any]) -> PageSpec:
    page = _positive_int(_first(raw, PAGE_KEYS))
    per_page = _positive_int(_first(raw, PER_PAGE_KEYS))
    return PageSpec(page=page or 1, per_page=per_page)


def parse_parent(raw: Mapping[str, Any]) -> dict[str, Any]:
    parent = _first(raw, PARENT_KEYS)
    if not isinstance(parent, Mapping):
        return {}
    return {
        key: _scalar(value)
        for key, value in parent.items()
        if isinstance(key, str) and not is_blank(value)
    }


def parse_list_request(raw: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> ParsedListRequest:
    """
    Parse raw list parameters.

    Args:
        raw: nested mapping, or flat query-string pairs

    Returns:
        ParsedListRequest; never raises on malformed input
    """
    if raw is None:
        return ParsedListRequest()
    if not isinstance(raw, Mapping) or any(isinstance(k, str) and "[" in k for k in raw):
        raw = parse_nested_params(raw)

    return ParsedListRequest(
        criteria=parse_criteria(raw),
        sort=parse_sort(raw),
        page=parse_page(raw),
        parent=parse_parent(raw),
    )
