"""Booking domain models."""

from datetime import datetime

from pydantic import BaseModel, Field

# Non-negative decimal with at most two fractional digits, ASCII digits only.
AMOUNT_PATTERN = r"^[0-9]+(\.[0-9]{1,2})?$"


class BookingCreate(BaseModel):
    """Unit details required to book a lead."""

    lead_id: int
    property_id: int | str
    flat_number: str = Field(..., min_length=1, max_length=50)
    floor_number: str = Field(..., min_length=1, max_length=50)
    block_number: str = Field(..., min_length=1, max_length=50)
    asset: str = Field(..., min_length=1, max_length=100)
    sqft: str = Field(..., min_length=1, max_length=10, pattern=AMOUNT_PATTERN)
    budget: str = Field(..., min_length=1, max_length=20, pattern=AMOUNT_PATTERN)

    model_config = {"str_strip_whitespace": True}


class BookingDetails(BaseModel):
    """Booking fields stamped on a booked lead."""

    booking_id: int
    property_id: int | str
    flat_number: str
    floor_number: str
    block_number: str
    asset: str
    booked_at: datetime

    model_config = {"from_attributes": True}


class BookingRecord(BaseModel):
    """Result of a successful booking."""

    booking_id: int
    lead_id: int
    property_id: int | str
    flat_number: str
    floor_number: str
    block_number: str
    asset: str
    sqft: str
    budget: str
    booked_at: datetime
