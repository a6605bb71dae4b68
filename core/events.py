"""
Domain events for the lead lifecycle.

Immutable event objects published after a lead operation has been
committed to the lead store. Handlers react (notifications, counters)
without the engine knowing who is listening.

Events carry the full domain objects so handlers don't need to re-fetch
state from the remote store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class LeadEvent:
    """Base class for all lead domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    lead: Any = None  # Lead, typed Any to avoid circular import
    actor: Any = None  # Actor that performed the operation


@dataclass(frozen=True, kw_only=True)
class LeadCreated(LeadEvent):
    """A new lead was created in the initial status."""

    @classmethod
    def create(cls, lead: Any, actor: Any) -> "LeadCreated":
        return cls(lead=lead, actor=actor)


@dataclass(frozen=True, kw_only=True)
class LeadAssigned(LeadEvent):
    """A lead got a new assignee (first assignment or re-assignment)."""
    previous_assigned_user_type: int | None = None
    previous_assigned_id: int | None = None

    @classmethod
    def create(cls, lead: Any, actor: Any, previous_type: int | None, previous_id: int | None) -> "LeadAssigned":
        return cls(
            lead=lead,
            actor=actor,
            previous_assigned_user_type=previous_type,
            previous_assigned_id=previous_id,
        )

    @property
    def is_first_assignment(self) -> bool:
        return self.previous_assigned_id is None


@dataclass(frozen=True, kw_only=True)
class LeadStatusChanged(LeadEvent):
    """A ledger entry was appended and the lead moved to its status."""
    previous_status_id: int | None = None
    update: Any = None  # LeadUpdate

    @classmethod
    def create(cls, lead: Any, actor: Any, previous_status_id: int, update: Any) -> "LeadStatusChanged":
        return cls(lead=lead, actor=actor, previous_status_id=previous_status_id, update=update)


@dataclass(frozen=True, kw_only=True)
class LeadBooked(LeadEvent):
    """A lead was converted into a booking. Terminal."""
    booking: Any = None  # BookingRecord

    @classmethod
    def create(cls, lead: Any, actor: Any, booking: Any) -> "LeadBooked":
        return cls(lead=lead, actor=actor, booking=booking)
