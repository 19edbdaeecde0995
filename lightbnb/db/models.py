import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class NewUser(BaseModel):
    """Data needed to register a user."""

    name: str
    email: str
    password: str


class User(NewUser):
    """Represents a user in the system."""

    id: int


class PropertyReview(BaseModel):
    """A guest's review of a property."""

    id: int
    property_id: int
    guest_id: int
    rating: int
    message: Optional[str] = None


class _PropertyFields(BaseModel):
    owner_id: int
    title: str
    description: str = ""
    thumbnail_photo_url: str
    cover_photo_url: str
    street: str
    city: str
    province: str
    post_code: str
    country: str
    parking_spaces: int = 0
    number_of_bathrooms: int = 0
    number_of_bedrooms: int = 0


class NewProperty(_PropertyFields):
    """A property listing as submitted by its owner."""

    cost_per_night: Decimal  # major units, e.g. 150.00

    @field_validator("cost_per_night")
    def cost_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Cost per night must not be negative")
        return v


class Property(_PropertyFields):
    """Represents a stored property listing."""

    id: int
    description: Optional[str] = None
    cost_per_night: int  # in cents


class PropertyListing(Property):
    """A property together with the average rating of its reviews."""

    average_rating: float


class Reservation(BaseModel):
    """Represents a reservation record."""

    id: int
    guest_id: int
    property_id: int
    start_date: datetime.date
    end_date: datetime.date


class PastReservation(Reservation):
    """A completed stay with a summary of the reserved property."""

    title: str
    thumbnail_photo_url: str
    cover_photo_url: str
    cost_per_night: int  # in cents
    number_of_bedrooms: int
    number_of_bathrooms: int
    parking_spaces: int
    average_rating: float


class PropertySearchFilters(BaseModel):
    """Optional filters for a property search.

    Prices are in major units. Every field left as ``None`` is ignored.
    """

    city: Optional[str] = None
    owner_id: Optional[int] = None
    minimum_price_per_night: Optional[Decimal] = Field(None, ge=0)
    maximum_price_per_night: Optional[Decimal] = Field(None, ge=0)
    minimum_rating: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
