"""SQLite repository implementations using aiosqlite."""

from __future__ import annotations

import logging
from decimal import ROUND_CEILING, ROUND_FLOOR
from typing import Any, List, Optional, Tuple

from ..utils.formatters import format_amount, to_cents
from .connection import Database
from .errors import NotFoundError, StoreError
from .models import (
    NewProperty,
    NewUser,
    PastReservation,
    Property as PropertyModel,
    PropertyListing,
    PropertySearchFilters,
    User as UserModel,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def _check_limit(limit: int) -> None:
    if limit < 0:
        raise ValueError("Limit must not be negative")


class _Repository:
    def __init__(self, db: Database) -> None:
        self.db = db


class UserRepository(_Repository):
    """SQLite implementation of user repository."""

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        """Retrieve a user by their email (exact, case-sensitive match)."""
        try:
            async with self.db.connection() as conn:
                cursor = await conn.execute(
                    "SELECT * FROM users WHERE email = ?",
                    (email,),
                )
                row = await cursor.fetchone()
                if row:
                    return UserModel(**dict(row))
                return None
        except StoreError as e:
            logger.exception("Failed to get user by email %s: %s", email, e)
            raise

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        """Retrieve a user by their ID."""
        try:
            async with self.db.connection() as conn:
                cursor = await conn.execute(
                    "SELECT * FROM users WHERE id = ?",
                    (user_id,),
                )
                row = await cursor.fetchone()
                if row:
                    return UserModel(**dict(row))
                return None
        except StoreError as e:
            logger.exception("Failed to get user by id %s: %s", user_id, e)
            raise

    async def add(self, user: NewUser) -> UserModel:
        """
        Add a new user.
        A duplicate email surfaces as ConstraintViolationError.
        """
        try:
            async with self.db.connection() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO users (name, email, password)
                    VALUES (?, ?, ?)
                    """,
                    (user.name, user.email, user.password),
                )
                await conn.commit()
                user_id = cursor.lastrowid
                cursor = await conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
                row = await cursor.fetchone()
                if row is None:
                    raise NotFoundError(f"User {user_id} not found after insertion")
                return UserModel(**dict(row))
        except StoreError as e:
            logger.exception("Failed to add user %s: %s", user.email, e)
            raise


class ReservationRepository(_Repository):
    """SQLite implementation of reservation repository."""

    async def list_past_for_guest(
        self, guest_id: int, limit: int = DEFAULT_LIMIT
    ) -> List[PastReservation]:
        """
        List a guest's completed stays, oldest first.

        Only properties with at least one review are included, because the
        average rating comes from an inner join on property_reviews.
        """
        _check_limit(limit)
        try:
            async with self.db.connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT
                        reservations.*,
                        properties.title,
                        properties.thumbnail_photo_url,
                        properties.cover_photo_url,
                        properties.cost_per_night,
                        properties.number_of_bedrooms,
                        properties.number_of_bathrooms,
                        properties.parking_spaces,
                        AVG(property_reviews.rating) AS average_rating
                    FROM reservations
                    JOIN properties ON reservations.property_id = properties.id
                    JOIN property_reviews ON properties.id = property_reviews.property_id
                    WHERE reservations.guest_id = ?
                      AND reservations.end_date < date('now')
                    GROUP BY reservations.id,
                             properties.title,
                             properties.cost_per_night,
                             properties.number_of_bedrooms,
                             properties.number_of_bathrooms,
                             properties.parking_spaces,
                             properties.thumbnail_photo_url,
                             properties.cover_photo_url
                    ORDER BY reservations.start_date ASC
                    LIMIT ?
                    """,
                    (guest_id, limit),
                )
                rows = await cursor.fetchall()
                return [PastReservation(**dict(row)) for row in rows]
        except StoreError as e:
            logger.exception("Failed to list past reservations for guest %s: %s", guest_id, e)
            raise


def build_search_query(
    filters: Optional[PropertySearchFilters] = None, limit: int = DEFAULT_LIMIT
) -> Tuple[str, List[Any]]:
    """Return the SQL text and parameters for a property search."""
    _check_limit(limit)
    filters = filters or PropertySearchFilters()
    params: List[Any] = []
    clauses: List[str] = []

    if filters.city is not None:
        # instr() keeps the match case-sensitive; LIKE is not on SQLite
        params.append(filters.city)
        clauses.append("instr(properties.city, ?) > 0")
    if filters.owner_id is not None:
        params.append(filters.owner_id)
        clauses.append("properties.owner_id = ?")
    if filters.minimum_price_per_night is not None:
        # cost_per_night is whole cents, so a sub-cent bound moves inward
        params.append(to_cents(filters.minimum_price_per_night, rounding=ROUND_CEILING))
        clauses.append("properties.cost_per_night >= ?")
    if filters.maximum_price_per_night is not None:
        params.append(to_cents(filters.maximum_price_per_night, rounding=ROUND_FLOOR))
        clauses.append("properties.cost_per_night <= ?")

    query = """
        SELECT
            properties.*,
            AVG(property_reviews.rating) AS average_rating
        FROM properties
        JOIN property_reviews ON property_reviews.property_id = properties.id
    """
    if clauses:
        query += "WHERE " + "\n          AND ".join(clauses) + "\n"
    query += "GROUP BY properties.id\n"
    if filters.minimum_rating is not None:
        params.append(filters.minimum_rating)
        query += "HAVING AVG(property_reviews.rating) >= ?\n"
    params.append(limit)
    query += "ORDER BY properties.cost_per_night ASC, properties.id ASC\nLIMIT ?"
    return query, params


class PropertyRepository(_Repository):
    """SQLite implementation of property repository."""

    async def search(
        self,
        filters: Optional[PropertySearchFilters] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[PropertyListing]:
        """
        Search reviewed properties, cheapest first.
        Properties without reviews never match.
        """
        query, params = build_search_query(filters, limit)
        try:
            async with self.db.connection() as conn:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
                return [PropertyListing(**dict(row)) for row in rows]
        except StoreError as e:
            logger.exception("Failed to search properties with %s: %s", filters, e)
            raise

    async def add(self, prop: NewProperty) -> PropertyModel:
        """Create a new property; cost_per_night is given in major units."""
        cost_in_cents = to_cents(prop.cost_per_night)
        try:
            async with self.db.connection() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO properties (
                        owner_id, title, description, thumbnail_photo_url,
                        cover_photo_url, cost_per_night, street, city, province,
                        post_code, country, parking_spaces, number_of_bathrooms,
                        number_of_bedrooms
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        prop.owner_id,
                        prop.title,
                        prop.description,
                        prop.thumbnail_photo_url,
                        prop.cover_photo_url,
                        cost_in_cents,
                        prop.street,
                        prop.city,
                        prop.province,
                        prop.post_code,
                        prop.country,
                        prop.parking_spaces,
                        prop.number_of_bathrooms,
                        prop.number_of_bedrooms,
                    ),
                )
                await conn.commit()
                property_id = cursor.lastrowid
                cursor = await conn.execute(
                    "SELECT * FROM properties WHERE id = ?",
                    (property_id,),
                )
                row = await cursor.fetchone()
                if row is None:
                    raise NotFoundError(f"Property {property_id} not found after insertion")
                logger.info(
                    "Added property %d for owner %d at %s per night",
                    property_id,
                    prop.owner_id,
                    format_amount(cost_in_cents),
                )
                return PropertyModel(**dict(row))
        except StoreError as e:
            logger.exception("Failed to add property for owner %s: %s", prop.owner_id, e)
            raise
