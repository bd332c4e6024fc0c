"""
FastAPI routers exposing entity listings.

The routers only decode the query string and serialize results; all
search/filter/sort/pagination logic lives in the query builder.

Endpoints (single entity, ``create_list_router``):
- GET /          - one page of rendered rows
- GET /filters   - filter controls with their options

Endpoints (whole registry, ``create_router``):
- GET /entity/{entity}
- GET /entity/{entity}/filters

Query string:
    ?search=gatsby
    &filter[available]=true
    &filter[published_on][from]=2020-01-01
    &filter[author_id][]=1&filter[author_id][]=2
    &parent[author_id]=3
    &sort=title&direction=desc
    &page=2&per_page=10

Usage:
    from crudkit.api import create_list_router

    # Sessions default to crudkit.service.database ($DATABASE_URL)
    app.include_router(create_list_router(books), prefix="/books")
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..core.query_types import (
    Cell,
    FieldHeader,
    FilterFieldInfo,
    FilterOption,
    FiltersResponse,
    ListResponse,
    Row,
)
from ..core.registry import EntityConfig, EntityRegistry
from ..core.request_parser import parse_list_request, parse_nested_params
from ..query.builder import QueryBuilder
from ..render.dispatcher import RenderingDispatcher
from ..service.database import get_session as default_session
from ..viewsets.fields import RenderContext


SessionDependency = Callable[[], Iterator[Session]]


def list_entity(config: EntityConfig, session: Session, params: dict[str, Any]) -> ListResponse:
    """Run one listing request and render its rows."""
    request = parse_list_request(params)
    builder = QueryBuilder(config)
    result = builder.build_query(
        session,
        criteria=request.criteria,
        sort=request.sort,
        page=request.page,
        parent=request.parent,
    )

    dispatcher = RenderingDispatcher(config, session=session)
    fields = config.visible_fields(RenderContext.LIST)
    pk_name = config.schema.primary_key_name

    rows = []
    for record in result.items:
        cells = {}
        for name, display in dispatcher.render_row(record, fields).items():
            link = None
            if display.link is not None:
                link = {"entity": display.link.entity, "params": display.link.params}
            cells[name] = Cell(value=display.value, source=display.source.value, link=link)
        rows.append(Row(id=getattr(record, pk_name), cells=cells))

    parent = result.parent_context
    return ListResponse(
        entity=config.name,
        fields=[FieldHeader(name=name, title=config.title(name)) for name in fields],
        rows=rows,
        total=result.total,
        total_unfiltered=builder.total_unfiltered(session, parent=result.parent_filters),
        page=result.page.page,
        per_page=result.page.per_page,
        sort=result.sort.column,
        direction=result.sort.direction,
        parent_error=parent.error if parent is not None else None,
    )


def entity_filters(config: EntityConfig, session: Session) -> FiltersResponse:
    """Filter controls of an entity."""
    builder = QueryBuilder(config)
    return FiltersResponse(
        entity=config.name,
        search_fields=config.searchable_fields(),
        filters=[
            FilterFieldInfo(
                name=f.name,
                title=f.title,
                kind=f.kind.value,
                options=[
                    FilterOption(label=label, value=value)
                    for label, value in builder.filter_options(session, f.name)
                ],
            )
            for f in config.filterable_fields()
        ],
    )


def _query_params(request: Request) -> dict[str, Any]:
    return parse_nested_params(request.query_params.multi_items())


def create_list_router(config: EntityConfig, get_session: SessionDependency = default_session) -> APIRouter:
    """Router for a single entity."""
    router = APIRouter()

    @router.get("/", response_model=ListResponse)
    def list_records(request: Request, session: Session = Depends(get_session)) -> ListResponse:
        return list_entity(config, session, _query_params(request))

    @router.get("/filters", response_model=FiltersResponse)
    def list_filters(session: Session = Depends(get_session)) -> FiltersResponse:
        return entity_filters(config, session)

    return router


def create_router(registry: EntityRegistry, get_session: SessionDependency = default_session) -> APIRouter:
    """Router for every entity of ``registry``, addressed by entity name."""
    router = APIRouter()

    def get_config(entity: str) -> EntityConfig:
        config = registry.get(entity)
        if config is None:
            raise HTTPException(status_code=404, detail={"error": f"Entity '{entity}' not found"})
        return config

    @router.get("/entity/{entity}", response_model=ListResponse)
    def rest_list(
        request: Request,
        config: EntityConfig = Depends(get_config),
        session: Session = Depends(get_session),
    ) -> ListResponse:
        return list_entity(config, session, _query_params(request))

    @router.get("/entity/{entity}/filters", response_model=FiltersResponse)
    def rest_filters(
        config: EntityConfig = Depends(get_config),
        session: Session = Depends(get_session),
    ) -> FiltersResponse:
        return entity_filters(config, session)

    return router
