"""
API module - FastAPI routers over the query engine.
"""

from __future__ import annotations

from .router import create_list_router, create_router, entity_filters, list_entity

__all__ = ["create_list_router", "create_router", "entity_filters", "list_entity"]
