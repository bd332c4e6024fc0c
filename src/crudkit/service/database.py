"""
Engine and session helpers backing the default router dependency.

The database is read from ``DATABASE_URL``; models and their tables
belong to the host application.
"""

from __future__ import annotations

import os
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


DEFAULT_DATABASE_URL = "sqlite:///./crudkit.db"

_engine: Engine | None = None
_session_maker: sessionmaker | None = None


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def get_engine() -> Engine:
    """Engine for ``DATABASE_URL``, created on first use (``SQL_ECHO=true`` logs SQL)."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            get_database_url(),
            echo=os.getenv("SQL_ECHO", "").lower() == "true",
        )
    return _engine


def get_session_maker() -> sessionmaker:
    global _session_maker
    if _session_maker is None:
        _session_maker = sessionmaker(get_engine(), class_=Session, expire_on_commit=False)
    return _session_maker


def get_session() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    with get_session_maker()() as session:
        yield session


def close_db() -> None:
    """Dispose of the engine; the next call to ``get_engine`` reconnects."""
    global _engine, _session_maker
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_maker = None
