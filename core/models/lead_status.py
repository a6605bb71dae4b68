"""Status catalog entry models."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


# Legacy conventions used when the store does not send explicit properties.
LEGACY_FOLLOWUP_STATUS_IDS = frozenset({2, 3})
TERMINAL_STATUS_NAMES = frozenset({"won", "lost", "revoked", "booked"})
BOOKED_STATUS_NAME = "booked"


class StatusClass(str, Enum):
    """Lifecycle class of a status, which decides the transition rules."""

    UNASSIGNED = "unassigned"
    FOLLOW_UP = "follow_up"
    ACTION = "action"
    TERMINAL = "terminal"


class LeadStatus(BaseModel):
    """
    One entry of the status catalog.

    requires_followup_date, is_terminal and rank are explicit properties of
    a status. Stores that only send id/name/is_default get them filled in
    from the legacy conventions: ids 2 and 3 are follow-up statuses, Won,
    Lost, Revoked and Booked are terminal, and rank is the status id.
    """

    status_id: int
    status_name: str = Field(..., min_length=1)
    is_default: bool = False
    requires_followup_date: bool | None = None
    is_terminal: bool | None = None
    rank: int | None = None

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _fill_legacy_properties(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        status_id = data.get("status_id")
        name = str(data.get("status_name", "")).strip().lower()
        if data.get("requires_followup_date") is None:
            data["requires_followup_date"] = status_id in LEGACY_FOLLOWUP_STATUS_IDS
        if data.get("is_terminal") is None:
            data["is_terminal"] = name in TERMINAL_STATUS_NAMES
        if data.get("rank") is None:
            data["rank"] = status_id
        return data

    @property
    def is_booking_status(self) -> bool:
        return self.status_name.strip().lower() == BOOKED_STATUS_NAME

    @property
    def status_class(self) -> StatusClass:
        if self.is_default:
            return StatusClass.UNASSIGNED
        if self.is_terminal:
            return StatusClass.TERMINAL
        if self.requires_followup_date:
            return StatusClass.FOLLOW_UP
        return StatusClass.ACTION
