"""Tests for model reflection."""

import pytest

from crudkit import ColumnKind, ConfigurationError, OwnedMany, OwnedOne, ParentRef, SharedMany, reflect
from crudkit.core.errors import ReflectionError
from crudkit.schema import columns, relationships

from .models import Author, Book, BookCopy, Librarian, Member, NotMapped


class TestColumns:
    """Column names and kinds."""

    def test_columns_in_mapper_order(self):
        names = [name for name, _ in columns(Book)]
        assert names[:3] == ["id", "title", "isbn"]
        assert "author_id" in names

    def test_column_kinds(self):
        kinds = dict(columns(Book))
        assert kinds["title"] is ColumnKind.STRING
        assert kinds["description"] is ColumnKind.TEXT
        assert kinds["pages"] is ColumnKind.INTEGER
        assert kinds["price"] is ColumnKind.NUMERIC
        assert kinds["available"] is ColumnKind.BOOLEAN
        assert kinds["published_on"] is ColumnKind.DATE
        assert kinds["created_at"] is ColumnKind.DATETIME
        assert kinds["metadata_json"] is ColumnKind.JSON
        assert dict(columns(Librarian))["shift_start"] is ColumnKind.TIME

    def test_enum_values(self):
        schema = reflect(BookCopy)
        condition = schema.column("condition")
        assert condition.kind is ColumnKind.ENUM
        assert condition.enum_values == ("new", "good", "worn")

    def test_primary_and_foreign_keys(self):
        schema = reflect(Book)
        assert schema.primary_key == ("id",)
        assert schema.column("id").primary_key
        assert schema.column("author_id").foreign_key
        assert not schema.column("title").foreign_key

    def test_hybrid_property_is_sortable(self):
        schema = reflect(Book)
        assert "title_length" in schema.attributes
        assert schema.is_sortable("title_length")
        assert not schema.has_column("title_length")
        assert not schema.is_sortable("title; DROP TABLE books")


class TestRelationships:
    """Relationship classification."""

    def test_parent_ref(self):
        ref = reflect(Book).parent_ref_for("author_id")
        assert isinstance(ref, ParentRef)
        assert ref.name == "author"
        assert ref.target is Author
        assert ref.target_key == "id"
        assert ref.title == "Author"

    def test_owned_many(self):
        rel = reflect(Author).relationship("books")
        assert isinstance(rel, OwnedMany)
        assert rel.remote_key == "author_id"

    def test_owned_one(self):
        rel = reflect(Member).relationship("profile")
        assert isinstance(rel, OwnedOne)
        assert rel.remote_key == "member_id"

    def test_shared_many(self):
        rel = reflect(Book).relationship("tags")
        assert isinstance(rel, SharedMany)
        assert rel.association_table == "books_tags"
        assert rel.local_key == "book_id"
        assert rel.remote_key == "tag_id"

    def test_all_kinds_listed(self):
        kinds = {type(rel) for rel in relationships(Book)}
        assert kinds == {ParentRef, SharedMany, OwnedMany}


class TestReflectionErrors:
    def test_unmapped_class_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            reflect(NotMapped)

    def test_reflection_error_is_configuration_error(self):
        with pytest.raises(ReflectionError, match="NotMapped"):
            reflect(NotMapped)

    def test_reflection_is_cached(self):
        assert reflect(Book) is reflect(Book)
