"""Tests for display/edit strategy dispatch."""

import logging
from datetime import date, datetime, time

import pytest

from crudkit import (
    FieldSpec,
    ParentRefBinding,
    RenderingDispatcher,
    Settings,
    ValueSource,
    WidgetKind,
    register_entity,
)
from crudkit.render import DisplayKind
from crudkit.render.defaults import format_value, truncate
from sqlalchemy import select

from .models import Author, Book, BookCopy, Essay, Librarian, Loan, Member


def boom(*args):
    raise ValueError("boom")


class TestTypeDefaults:
    """Display defaults by value type."""

    @pytest.mark.parametrize("value,expected", [
        (None, "—"),
        (True, "✓"),
        (False, "✗"),
        (date(2024, 3, 5), "03/05/2024"),
        (datetime(2024, 3, 5, 14, 30), "03/05/2024"),
        (time(9, 5), "09:05"),
        (42, "42"),
    ])
    def test_format_value(self, value, expected):
        text, _ = format_value(value, Settings())
        assert text == expected

    def test_long_text_truncated(self):
        text, _ = format_value("x" * 80, Settings())
        assert len(text) == 50
        assert text.endswith("...")

    def test_truncate_keeps_short_text(self):
        assert truncate("short", 50) == "short"


class TestDisplay:
    def test_column_display(self, session, data, books):
        dispatcher = RenderingDispatcher(books, session=session)
        cell = dispatcher.render_display(data.pride, "title")
        assert cell.value == "Pride and Prejudice"
        assert cell.source is ValueSource.COLUMN

    def test_boolean_and_date_defaults(self, session, data, books):
        dispatcher = RenderingDispatcher(books, session=session)
        assert dispatcher.render_display(data.emma, "available").value == "✗"
        assert dispatcher.render_display(data.gatsby, "published_on").value == "04/10/1925"
        assert dispatcher.render_display(data.wildcard, "isbn").value == "—"

    def test_parent_ref_label(self, session, data, books):
        cell = RenderingDispatcher(books, session=session).render_display(data.pride, "author_id")
        assert cell.value == "Jane Austen"
        assert cell.source is ValueSource.RELATIONSHIP
        assert cell.kind is DisplayKind.RELATIONSHIP

    def test_parent_ref_null(self, session, data, books):
        cell = RenderingDispatcher(books, session=session).render_display(data.wildcard, "author_id")
        assert cell.value == "—"
        assert cell.kind is DisplayKind.EMPTY

    def test_parent_ref_not_found(self, session, data):
        essays = register_entity(Essay)
        dispatcher = RenderingDispatcher(essays, session=session)
        assert dispatcher.render_display(data.walking, "author_id").value == "Essayist from Ohio"
        missing = dispatcher.render_display(data.orphan, "author_id")
        assert missing.value == "Not found"
        assert missing.kind is DisplayKind.NOT_FOUND
        assert dispatcher.render_display(data.untitled, "author_id").kind is DisplayKind.EMPTY

    def test_parent_ref_with_callable_label(self, session, data):
        binding = ParentRefBinding(
            target=Author,
            display_field=lambda author: f"{author.name} ({author.birth_year})",
            relationship="author",
        )
        config = register_entity(Book, {"author_id": FieldSpec(relationship=binding)})
        cell = RenderingDispatcher(config, session=session).render_display(data.emma, "author_id")
        assert cell.value == "Jane Austen (1775)"

    def test_owned_many_count_and_preview(self, session, data):
        authors = register_entity(Author)
        dispatcher = RenderingDispatcher(authors, session=session)
        cell = dispatcher.render_display(data.joyce, "books")
        assert cell.value.startswith("2 items: ")
        assert set(cell.preview) == {"Ulysses", "Dubliners"}
        assert cell.link.entity == "Book"
        assert cell.link.params == {"author_id": 3}
        assert cell.link.query_string == "parent%5Bauthor_id%5D=3"

    def test_owned_many_singular_and_truncated_preview(self, session, data, books):
        dispatcher = RenderingDispatcher(books, session=session)
        assert dispatcher.render_display(data.gatsby, "copies").value == "1 item: C-5"

        many = dispatcher.render_display(data.pride, "copies")
        assert many.value.startswith("4 items: ")
        assert many.value.endswith(", ...")
        assert len(many.preview) == 3

    def test_owned_many_empty(self, session, data, books):
        cell = RenderingDispatcher(books, session=session).render_display(data.emma, "copies")
        assert cell.value == "0 items"
        assert cell.preview == ()

    def test_owned_one(self, session, data, members):
        dispatcher = RenderingDispatcher(members, session=session)
        assert dispatcher.render_display(data.alice, "profile").value == "Reads a lot"
        assert dispatcher.render_display(data.bob, "profile").value == "—"

    def test_shared_many(self, session, data, books):
        dispatcher = RenderingDispatcher(books, session=session)
        assert dispatcher.render_display(data.ulysses, "tags").value == "classic, modernist"
        assert dispatcher.render_display(data.emma, "tags").value == "—"

    def test_custom_display_receives_value_and_record(self, session, data):
        config = register_entity(
            Book,
            {"price": FieldSpec(display="currency")},
            callbacks={"currency": lambda value, record: f"${value:,.2f} for {record.title}"},
        )
        cell = RenderingDispatcher(config, session=session).render_display(data.gatsby, "price")
        assert cell.value == "$10.00 for The Great Gatsby"
        assert cell.kind is DisplayKind.CUSTOM
        assert cell.source is ValueSource.COLUMN

    def test_computed_field_gets_none(self, session, data):
        seen = []

        def summary(value, record):
            seen.append(value)
            return f"{record.title} ({record.pages} pages)"

        config = register_entity(Book, {"summary": FieldSpec(display=summary)})
        cell = RenderingDispatcher(config, session=session).render_display(data.emma, "summary")
        assert cell.value == "Emma (474 pages)"
        assert cell.source is ValueSource.COMPUTED
        assert seen == [None]

    def test_custom_display_wins_over_relationship_renderer(self, session, data):
        config = register_entity(
            Author,
            {"books": FieldSpec(display=lambda value, record: f"{len(value)} books")},
        )
        cell = RenderingDispatcher(config, session=session).render_display(data.austen, "books")
        assert cell.value == "2 books"
        assert cell.source is ValueSource.RELATIONSHIP


class TestCallbackErrors:
    def test_error_shown_outside_production(self, session, data, caplog):
        config = register_entity(Book, {"price": FieldSpec(display=boom)})
        with caplog.at_level(logging.ERROR, logger="crudkit.render.dispatcher"):
            cell = RenderingDispatcher(config, session=session).render_display(data.gatsby, "price")
        assert cell.kind is DisplayKind.ERROR
        assert cell.value == "Error: boom"
        assert "Rendering 'price' failed" in caplog.text

    def test_production_falls_back_to_raw_value(self, session, data, production_settings):
        config = register_entity(Book, {"pages": FieldSpec(display=boom)}, settings=production_settings)
        cell = RenderingDispatcher(config, session=session).render_display(data.gatsby, "pages")
        assert cell.value == "180"
        assert cell.kind is DisplayKind.TEXT

    def test_edit_error_outside_production(self, session, data):
        config = register_entity(Book, {"title": FieldSpec(edit=boom)})
        widget = RenderingDispatcher(config, session=session).render_edit(data.emma, "title")
        assert widget.kind is WidgetKind.ERROR
        assert widget.value == "Error: boom"

    def test_edit_error_in_production(self, session, data, production_settings):
        config = register_entity(Book, {"title": FieldSpec(edit=boom)}, settings=production_settings)
        widget = RenderingDispatcher(config, session=session).render_edit(data.emma, "title")
        assert widget.kind is WidgetKind.TEXT
        assert widget.value == "Emma"


class TestEdit:
    def test_read_only_renders_display(self, session, data):
        config = register_entity(Book, {"isbn": FieldSpec(read_only=True)})
        widget = RenderingDispatcher(config, session=session).render_edit(data.emma, "isbn")
        assert widget.kind is WidgetKind.DISPLAY_ONLY
        assert widget.value == "9780141439587"

    def test_owned_many_is_display_only(self, session, data):
        authors = register_entity(Author)
        widget = RenderingDispatcher(authors, session=session).render_edit(data.austen, "books")
        assert widget.kind is WidgetKind.DISPLAY_ONLY
        assert widget.display.value.startswith("2 items")

    def test_shared_many_multi_select(self, session, data, books):
        widget = RenderingDispatcher(books, session=session).render_edit(data.ulysses, "tags")
        assert widget.kind is WidgetKind.MULTI_SELECT
        assert sorted(widget.selected) == [1, 2]
        assert widget.options == (("classic", 1), ("modernist", 2))

    def test_custom_edit_receives_form_context(self, session, data):
        calls = []

        def stars(value, record, form_context):
            calls.append((value, record.title, form_context))
            return f"<stars value={value}>"

        config = register_entity(Book, {"pages": FieldSpec(edit=stars)})
        widget = RenderingDispatcher(config, session=session).render_edit(data.emma, "pages", form_context="form-1")
        assert widget.kind is WidgetKind.CUSTOM
        assert widget.value == "<stars value=474>"
        assert calls == [(474, "Emma", "form-1")]

    def test_options_select(self, session, data):
        config = register_entity(Member, {"membership_type": FieldSpec(options=["Standard", "Premium"])})
        widget = RenderingDispatcher(config, session=session).render_edit(data.alice, "membership_type")
        assert widget.kind is WidgetKind.SELECT
        assert widget.options == (("Standard", "Standard"), ("Premium", "Premium"))
        assert widget.selected == "Premium"
        assert widget.placeholder == "Select..."
        assert widget.include_blank

    def test_parent_ref_select(self, session, data, books):
        widget = RenderingDispatcher(books, session=session).render_edit(data.gatsby, "author_id")
        assert widget.kind is WidgetKind.SELECT
        assert widget.selected == 2
        assert widget.placeholder == "Select Author"
        assert widget.options == (("F. Scott Fitzgerald", 2), ("James Joyce", 3), ("Jane Austen", 1))

    def test_parent_ref_scope(self, session, data):
        binding = ParentRefBinding(
            target=Author,
            display_field="name",
            relationship="author",
            scope=lambda stmt: stmt.where(Author.birth_year > 1800),
        )
        config = register_entity(Book, {"author_id": FieldSpec(relationship=binding)})
        widget = RenderingDispatcher(config, session=session).render_edit(data.gatsby, "author_id")
        assert [label for label, _ in widget.options] == ["F. Scott Fitzgerald", "James Joyce"]

    def test_parent_ref_without_session(self, data, books):
        widget = RenderingDispatcher(books).render_edit(data.gatsby, "author_id")
        assert widget.kind is WidgetKind.SELECT
        assert widget.options == ()

    @pytest.mark.parametrize("name,kind", [
        ("title", WidgetKind.TEXT),
        ("description", WidgetKind.TEXTAREA),
        ("pages", WidgetKind.NUMBER),
        ("price", WidgetKind.NUMBER),
        ("available", WidgetKind.CHECKBOX),
        ("published_on", WidgetKind.DATE),
        ("created_at", WidgetKind.DATETIME),
    ])
    def test_type_defaults(self, session, data, books, name, kind):
        widget = RenderingDispatcher(books, session=session).render_edit(data.pride, name)
        assert widget.kind is kind

    def test_date_and_time_values(self, session, data):
        config = register_entity(Librarian)
        dispatcher = RenderingDispatcher(config, session=session)
        assert dispatcher.render_edit(data.marian, "hire_date").value == "2020-01-15"
        shift = dispatcher.render_edit(data.marian, "shift_start")
        assert shift.kind is WidgetKind.TIME
        assert shift.value == "09:30:00"

    def test_enum_select(self, session, data):
        copies = register_entity(BookCopy)
        copy = session.scalars(select(BookCopy).where(BookCopy.id == 5)).one()
        widget = RenderingDispatcher(copies, session=session).render_edit(copy, "condition")
        assert widget.kind is WidgetKind.SELECT
        assert widget.selected == "new"
        assert [value for _, value in widget.options] == ["new", "good", "worn"]

    def test_render_form(self, session, data, books):
        widgets = RenderingDispatcher(books, session=session).render_form(data.emma)
        assert "id" not in widgets
        assert widgets["copies"].kind is WidgetKind.DISPLAY_ONLY
        assert widgets["author_id"].kind is WidgetKind.SELECT

    def test_loan_parent_refs(self, session, data):
        loans = register_entity(Loan)
        loan = session.get(Loan, 1)
        dispatcher = RenderingDispatcher(loans, session=session)
        assert dispatcher.render_display(loan, "member_id").value == "Alice"
        assert dispatcher.render_display(loan, "book_id").value == "Pride and Prejudice"
