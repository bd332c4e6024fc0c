"""
Service module - engine and session helpers for crudkit routers.
"""

from __future__ import annotations

from .database import close_db, get_engine, get_session, get_session_maker

__all__ = [
    "get_session",
    "get_session_maker",
    "get_engine",
    "close_db",
]
