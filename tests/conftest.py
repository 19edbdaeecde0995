"""
This file contains shared fixtures for the test suite.
"""

import itertools
from decimal import Decimal

import pytest
import pytest_asyncio

from lightbnb.db import Database, PropertyRepository, UserRepository
from lightbnb.db.models import NewProperty, NewUser


@pytest_asyncio.fixture
async def db():
    """Open an in-memory database with the schema applied."""
    database = Database(":memory:", pool_size=3, timeout=1.0)
    await database.open()
    await database.initialize_schema()
    yield database
    await database.close()


@pytest.fixture
def user_repo(db):
    return UserRepository(db)


@pytest.fixture
def property_repo(db):
    return PropertyRepository(db)


@pytest.fixture
def make_user(user_repo):
    """Factory that registers users with unique emails."""
    counter = itertools.count(1)

    async def factory(name=None, email=None, password="password"):
        n = next(counter)
        return await user_repo.add(
            NewUser(
                name=name or f"Guest {n}",
                email=email or f"guest{n}@example.com",
                password=password,
            )
        )

    return factory


def new_property(owner_id: int, **overrides) -> NewProperty:
    fields = dict(
        owner_id=owner_id,
        title="Speed lamp",
        description="description",
        thumbnail_photo_url="https://images.example.com/thumb.jpg",
        cover_photo_url="https://images.example.com/cover.jpg",
        cost_per_night=Decimal("100"),
        street="536 Namsub Highway",
        city="Sotboske",
        province="Quebec",
        post_code="28142",
        country="Canada",
        parking_spaces=3,
        number_of_bathrooms=1,
        number_of_bedrooms=2,
    )
    fields.update(overrides)
    return NewProperty(**fields)


@pytest.fixture
def make_property(property_repo):
    """Factory that stores a property for the given owner."""

    async def factory(owner_id: int, **overrides):
        return await property_repo.add(new_property(owner_id, **overrides))

    return factory


@pytest.fixture
def add_review(db):
    """Insert a review row directly; the DAL exposes no review writes."""

    async def factory(guest_id: int, property_id: int, rating: int, message: str = "ok"):
        async with db.connection() as conn:
            await conn.execute(
                """
                INSERT INTO property_reviews (guest_id, property_id, rating, message)
                VALUES (?, ?, ?, ?)
                """,
                (guest_id, property_id, rating, message),
            )
            await conn.commit()

    return factory


@pytest.fixture
def add_reservation(db):
    """Insert a reservation row directly; the DAL exposes no reservation writes."""

    async def factory(guest_id: int, property_id: int, start_date: str, end_date: str) -> int:
        async with db.connection() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO reservations (guest_id, property_id, start_date, end_date)
                VALUES (?, ?, ?, ?)
                """,
                (guest_id, property_id, start_date, end_date),
            )
            await conn.commit()
            return cursor.lastrowid

    return factory


@pytest.fixture
def build_property():
    """Return the NewProperty builder without storing anything."""
    return new_property
