"""Lead domain models."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator

from core.models.booking import BookingDetails


class LeadPriority(str, Enum):
    """Priority set on a lead when it is assigned."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class LeadCreate(BaseModel):
    """Data required to create a lead."""

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone_number: str = Field(..., pattern=r"^[0-9]{10}$")
    customer_email: EmailStr
    interested_project_id: int
    interested_project_name: str = Field(..., min_length=1, max_length=255)
    lead_source_id: int
    sqft: str | None = Field(None, max_length=10)
    budget: str | None = Field(None, max_length=20)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    channel_partner_id: int | None = None

    @field_validator("customer_name", "interested_project_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class Lead(BaseModel):
    """Full lead entity as stored."""

    lead_id: int
    customer_name: str
    customer_phone_number: str
    customer_email: str
    interested_project_id: int | None = None
    interested_project_name: str | None = None
    lead_source_id: int | None = None
    lead_added_user_type: int
    lead_added_user_id: int
    assigned_user_type: int | None = None
    assigned_id: int | None = None
    assigned_name: str | None = None
    assigned_emp_number: str | None = None
    assigned_priority: LeadPriority | None = None
    assigned_at: datetime | None = None
    status_id: int
    status_name: str | None = None
    follow_up_feedback: str | None = None
    next_action: str | None = None
    sqft: str | None = None
    budget: str | None = None
    city: str | None = None
    state: str | None = None
    referred_by_user_type: int | None = None
    referred_by_user_id: int | None = None
    booked: bool = False
    booking: BookingDetails | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("sqft", "budget", mode="before")
    @classmethod
    def _numeric_as_text(cls, value):
        if value is None:
            return None
        return str(value)

    @property
    def is_assigned(self) -> bool:
        return self.assigned_id is not None


class LeadFilter(BaseModel):
    """
    Filter for listing active leads. Every supplied field must match.

    Date bounds are inclusive and compared as calendar dates.
    """

    owner_type: int
    owner_id: int
    assigned_user_type: int | None = None
    assigned_id: int | None = None
    status_id: int | None = None
    search: str | None = None
    city: str | None = None
    created_from: date | None = None
    created_to: date | None = None
    updated_from: date | None = None
    updated_to: date | None = None
