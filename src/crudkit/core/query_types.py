"""
Pydantic models for list requests.

Raw request parameters are untrusted; the request parser turns them into
these normalized, request-scoped values before the query builder sees
them.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


Direction = Literal["asc", "desc"]


# --- Normalized types (internal representation after parsing) ---

class FilterCriteria(BaseModel):
    """
    Search term plus per-field filters.

    Input: ?search=gatsby&filter[available]=true&filter[published_on][from]=2020-01-01
    Normalized: FilterCriteria(query="gatsby",
                               filters={"available": "true",
                                        "published_on": {"from": "2020-01-01"}})
    """
    query: str = ""
    filters: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_search(self) -> bool:
        return bool(self.query.strip())


class SortSpec(BaseModel):
    """
    Requested ordering. Column names are validated by the query builder,
    which substitutes the entity default for anything it does not know.
    """
    column: Optional[str] = None
    direction: Optional[str] = None


class PageSpec(BaseModel):
    """
    Requested page; ``per_page`` None means "stored preference or default".
    """
    page: int = 1
    per_page: Optional[int] = None


# --- Resolved values (after the query builder applied defaults) ---

class ResolvedSort(BaseModel):
    column: str
    direction: Direction


class ResolvedPage(BaseModel):
    page: int = Field(ge=1)
    per_page: int = Field(ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


# --- HTTP response types ---

class FieldHeader(BaseModel):
    name: str
    title: str


class Cell(BaseModel):
    value: Any = None
    source: str
    link: Optional[dict[str, Any]] = None


class Row(BaseModel):
    id: Any
    cells: dict[str, Cell]


class ListResponse(BaseModel):
    """
    Response format of the list endpoint.

    Always returns rows + total for pagination.
    """
    entity: str
    fields: list[FieldHeader]
    rows: list[Row]
    total: int
    total_unfiltered: Optional[int] = None
    page: int
    per_page: int
    sort: str
    direction: Direction
    parent_error: Optional[str] = None


class FilterOption(BaseModel):
    label: str
    value: Any


class FilterFieldInfo(BaseModel):
    name: str
    title: str
    kind: str
    options: list[FilterOption] = Field(default_factory=list)


class FiltersResponse(BaseModel):
    entity: str
    search_fields: list[str]
    filters: list[FilterFieldInfo]
