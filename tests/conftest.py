"""Shared fixtures: in-memory SQLite library database."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crudkit import Settings, register_entity

from .models import (
    Author,
    Base,
    Book,
    BookCopy,
    Essay,
    Librarian,
    Library,
    Loan,
    Member,
    Profile,
    Tag,
    Writer,
)


@pytest.fixture
def engine():
    """Fresh in-memory database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def data(session):
    """Seed the library and return the created records."""
    austen = Author(id=1, name="Jane Austen", birth_year=1775)
    fitzgerald = Author(id=2, name="F. Scott Fitzgerald", birth_year=1896)
    joyce = Author(id=3, name="James Joyce", birth_year=1882)

    classic = Tag(id=1, name="classic")
    modernist = Tag(id=2, name="modernist")

    pride = Book(
        id=1, title="Pride and Prejudice", isbn="9780141439518", author=austen,
        available=True, published_on=date(1813, 1, 28), price=Decimal("9.99"), pages=432,
        tags=[classic],
    )
    emma = Book(
        id=2, title="Emma", isbn="9780141439587", author=austen,
        available=False, published_on=date(1815, 12, 23), price=Decimal("7.50"), pages=474,
    )
    gatsby = Book(
        id=3, title="The Great Gatsby", isbn="9780743273565", author=fitzgerald,
        available=True, published_on=date(1925, 4, 10), price=Decimal("10.00"), pages=180,
    )
    ulysses = Book(
        id=4, title="Ulysses", isbn="9780199535675", author=joyce,
        available=True, published_on=date(1922, 2, 2), price=Decimal("15.00"), pages=730,
        tags=[classic, modernist],
    )
    dubliners = Book(
        id=5, title="Dubliners", isbn="9780140186475", author=joyce,
        available=False, published_on=date(1914, 6, 15), price=Decimal("8.00"), pages=224,
    )
    wildcard = Book(id=6, title="100% Pure_Fiction", available=True)

    copies = [BookCopy(id=i, barcode=f"C-{i}", book=pride, condition="good") for i in range(1, 5)]
    copies.append(BookCopy(id=5, barcode="C-5", book=gatsby, condition="new"))

    alice = Member(id=1, name="Alice", email="alice@example.com", membership_type="Premium",
                   joined_at=datetime(2023, 5, 1, 9, 0))
    bob = Member(id=2, name="Bob", email="bob@example.com", membership_type="Standard")
    profile = Profile(id=1, member=alice, bio="Reads a lot", favorite_genre="Classics")

    loans = [
        Loan(id=1, member=alice, book=pride, loaned_at=datetime(2024, 3, 1, 10, 0), due_on=date(2024, 3, 15)),
        Loan(id=2, member=alice, book=gatsby, loaned_at=datetime(2024, 3, 15, 18, 30), due_on=date(2024, 3, 29)),
        Loan(id=3, member=bob, book=ulysses, loaned_at=datetime(2024, 3, 16, 8, 0), due_on=date(2024, 3, 30)),
    ]

    central = Library(id=1, name="Central", city="Springfield")
    marian = Librarian(id=1, name="Marian", hire_date=date(2020, 1, 15), shift_start=time(9, 30), library=central)
    rupert = Librarian(id=2, name="Rupert", hire_date=date(2021, 6, 30))

    writer = Writer(id=1, bio="Essayist from Ohio")
    walking = Essay(id=1, heading="On Walking", author_id=1)
    # Dangling reference: SQLite does not enforce foreign keys by default
    orphan = Essay(id=2, heading="Orphan", author_id=99)
    untitled = Essay(id=3, heading="Untitled", author_id=None)

    session.add_all([
        austen, fitzgerald, joyce, classic, modernist,
        pride, emma, gatsby, ulysses, dubliners, wildcard,
        *copies, alice, bob, profile, *loans,
        central, marian, rupert, writer, walking, orphan, untitled,
    ])
    session.commit()

    return SimpleNamespace(
        austen=austen, fitzgerald=fitzgerald, joyce=joyce,
        classic=classic, modernist=modernist,
        pride=pride, emma=emma, gatsby=gatsby, ulysses=ulysses, dubliners=dubliners, wildcard=wildcard,
        alice=alice, bob=bob, profile=profile,
        central=central, marian=marian, rupert=rupert,
        writer=writer, walking=walking, orphan=orphan, untitled=untitled,
    )


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def production_settings():
    return Settings(environment="production")


@pytest.fixture
def books(settings):
    return register_entity(Book, default_sort=("title", "asc"), settings=settings)


@pytest.fixture
def members(settings):
    return register_entity(Member, settings=settings)
