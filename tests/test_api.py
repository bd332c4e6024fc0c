"""Tests for the FastAPI listing routers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from crudkit import EntityRegistry, FieldSpec, ModelViewSet, create_list_router, create_router

from .models import Author, Book


class BookViewSet(ModelViewSet):
    model = Book
    default_sort = ("title", "asc")
    fields = {"isbn": FieldSpec(title="ISBN")}


class AuthorViewSet(ModelViewSet):
    model = Author


@pytest.fixture
def client(session_factory, data, books):
    def get_session():
        with session_factory() as session:
            yield session

    registry = EntityRegistry()
    registry.register_all([BookViewSet, AuthorViewSet])

    app = FastAPI()
    app.include_router(create_list_router(books, get_session), prefix="/books")
    app.include_router(create_router(registry, get_session), prefix="/api")
    return TestClient(app)


class TestListRouter:
    def test_search(self, client):
        response = client.get("/books/", params={"search": "gatsby"})
        assert response.status_code == 200
        body = response.json()
        assert body["entity"] == "Book"
        assert body["total"] == 1
        cells = body["rows"][0]["cells"]
        assert cells["title"]["value"] == "The Great Gatsby"
        assert cells["author_id"]["value"] == "F. Scott Fitzgerald"
        assert cells["author_id"]["source"] == "relationship"

    def test_defaults(self, client):
        body = client.get("/books/").json()
        assert body["total"] == 6
        assert body["total_unfiltered"] == 6
        assert body["page"] == 1
        assert body["per_page"] == 25
        assert body["sort"] == "title"
        assert body["direction"] == "asc"
        assert body["fields"][0] == {"name": "id", "title": "Id"}
        assert body["parent_error"] is None

    def test_bracketed_filters_sort_and_pagination(self, client):
        response = client.get(
            "/books/?filter[author_id][]=1&filter[author_id][]=3&sort=title&direction=desc&per_page=2"
        )
        body = response.json()
        assert body["total"] == 4
        assert body["per_page"] == 2
        assert [row["cells"]["title"]["value"] for row in body["rows"]] == ["Ulysses", "Pride and Prejudice"]

    def test_invalid_sort_falls_back(self, client):
        body = client.get("/books/", params={"sort": "title; DROP TABLE books", "direction": "up"}).json()
        assert body["sort"] == "title"
        assert body["direction"] == "asc"
        assert body["total"] == 6

    def test_missing_parent(self, client):
        body = client.get("/books/?parent[author_id]=99").json()
        assert body["total"] == 0
        assert body["rows"] == []
        assert body["parent_error"] == "Author with ID 99 not found"

    def test_filters_endpoint(self, client):
        body = client.get("/books/filters").json()
        assert body["search_fields"] == ["title", "isbn", "description"]
        filters = {f["name"]: f for f in body["filters"]}
        assert filters["available"]["kind"] == "boolean"
        assert filters["available"]["options"] == [
            {"label": "Yes", "value": "true"},
            {"label": "No", "value": "false"},
        ]
        assert [o["label"] for o in filters["author_id"]["options"]] == [
            "F. Scott Fitzgerald", "James Joyce", "Jane Austen",
        ]
        assert filters["published_on"]["kind"] == "date_range"


class TestRegistryRouter:
    def test_list_by_entity_name(self, client):
        body = client.get("/api/entity/Book", params={"q": "emma"}).json()
        assert body["total"] == 1
        assert {"name": "isbn", "title": "ISBN"} in body["fields"]

    def test_owned_many_link(self, client):
        body = client.get("/api/entity/Author", params={"sort": "id"}).json()
        books = body["rows"][0]["cells"]["books"]
        assert books["value"].startswith("2 items: ")
        assert books["link"] == {"entity": "Book", "params": {"author_id": 1}}

    def test_unknown_entity(self, client):
        response = client.get("/api/entity/Unknown")
        assert response.status_code == 404
        assert response.json() == {"detail": {"error": "Entity 'Unknown' not found"}}

    def test_unknown_entity_filters(self, client):
        assert client.get("/api/entity/Unknown/filters").status_code == 404
