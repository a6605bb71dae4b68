"""
Lead Store collaborator interface.

The engine never talks to persistence directly. A LeadStore performs the
remote reads and writes and returns typed results. Each write method is a
single remote call that the store applies atomically: update_status moves
the lead's status and appends the ledger entry together, assign_lead does
the same for an assignment with an optional status change.

Implementations raise core.exceptions errors: UnauthorizedError for a
missing or expired credential, TransientError for network/server failures.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from core.models import Assignee, Lead, LeadStatus, LeadUpdate


class StoreAck(BaseModel):
    """Acknowledgement of a store write."""

    status: str = "success"
    message: str = ""


class AssignAck(StoreAck):
    """Acknowledgement of an assignment, with the updated lead."""

    lead: Lead | None = None


class BookingAck(StoreAck):
    """Acknowledgement of a booking."""

    lead_id: int
    booking_id: int


class LeadStore(ABC):
    """Remote lead store operations used by the lifecycle engine."""

    @abstractmethod
    def fetch_leads(
        self,
        owner_type: int,
        owner_id: int,
        assigned_user_type: int | None = None,
        assigned_id: int | None = None,
        status_id: int | None = None,
    ) -> list[Lead]:
        """Leads of an organization, optionally narrowed by assignee and status."""

    @abstractmethod
    def fetch_lead(self, lead_id: int, owner_type: int, owner_id: int) -> Lead | None:
        """Single lead of an organization, or None."""

    @abstractmethod
    def fetch_booked_leads(self, owner_type: int, owner_id: int) -> list[Lead]:
        """Booked leads of an organization."""

    @abstractmethod
    def fetch_lead_updates(self, lead_id: int, owner_type: int, owner_id: int) -> list[LeadUpdate]:
        """Ledger entries of a lead, in any order."""

    @abstractmethod
    def create_lead(self, fields: dict[str, Any]) -> int:
        """Create a lead and return its id."""

    @abstractmethod
    def update_status(self, fields: dict[str, Any]) -> StoreAck:
        """Append a ledger entry and move the lead to its status."""

    @abstractmethod
    def assign_lead(self, fields: dict[str, Any]) -> AssignAck:
        """Set the assignee, and status plus ledger entry when one is included."""

    @abstractmethod
    def book_lead(self, fields: dict[str, Any]) -> BookingAck:
        """Mark a lead booked with its unit details."""

    @abstractmethod
    def fetch_status_catalog(self) -> list[LeadStatus]:
        """All lead statuses."""

    @abstractmethod
    def fetch_users_by_type(self, owner_id: int, user_type: int, status: int = 1) -> list[Assignee]:
        """Users of one role under an organization."""
