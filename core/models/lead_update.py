"""Ledger entry models for lead status history."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class LeadUpdateCreate(BaseModel):
    """
    A validated status change waiting to be appended to the ledger.

    Exactly one of followup_date / action_date is set, depending on the
    class of the target status.
    """

    lead_id: int
    status_id: int
    feedback: str = Field(..., min_length=1)
    next_action: str = Field(..., min_length=1)
    followup_date: date | None = None
    action_date: date | None = None
    updated_by_emp_type: int
    updated_by_emp_id: int
    updated_by_emp_name: str
    updated_emp_phone: str = ""

    @model_validator(mode="after")
    def _one_date(self):
        if (self.followup_date is None) == (self.action_date is None):
            raise ValueError("exactly one of followup_date or action_date is required")
        return self


class LeadUpdate(BaseModel):
    """A ledger entry as stored. Never mutated after creation."""

    update_id: int
    lead_id: int
    status_id: int
    status_name: str | None = None
    feedback: str
    next_action: str
    followup_date: date | None = None
    action_date: date | None = None
    updated_by_emp_type: int
    updated_by_emp_id: int
    updated_by_emp_name: str
    updated_emp_phone: str | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class TimelineMarker(str, Enum):
    """Derived display state of a ledger entry."""

    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"


class TimelineEntry(BaseModel):
    """Ledger entry with its derived marker relative to the lead's status."""

    update: LeadUpdate
    marker: TimelineMarker
