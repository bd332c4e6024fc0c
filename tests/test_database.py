"""Tests for the default engine/session helpers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from crudkit import create_list_router, register_entity
from crudkit.service import database

from .models import Author, Base


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'app.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    database.close_db()
    yield url
    database.close_db()


class TestDatabase:
    def test_default_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert database.get_database_url() == "sqlite:///./crudkit.db"

    def test_engine_is_cached(self, database_url):
        engine = database.get_engine()
        assert str(engine.url) == database_url
        assert database.get_engine() is engine

    def test_close_resets_engine(self, database_url):
        engine = database.get_engine()
        database.close_db()
        assert database.get_engine() is not engine

    def test_get_session_yields_session(self, database_url):
        sessions = database.get_session()
        session = next(sessions)
        assert isinstance(session, Session)
        sessions.close()

    def test_router_uses_default_session(self, database_url):
        Base.metadata.create_all(database.get_engine())
        with database.get_session_maker()() as session:
            session.add_all([Author(id=1, name="Jane Austen"), Author(id=2, name="James Joyce")])
            session.commit()

        app = FastAPI()
        app.include_router(create_list_router(register_entity(Author)), prefix="/authors")
        body = TestClient(app).get("/authors/", params={"search": "joyce"}).json()
        assert body["total"] == 1
        assert body["rows"][0]["cells"]["name"]["value"] == "James Joyce"
