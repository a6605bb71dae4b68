"""
Booking finalizer.

Converts an assigned lead into a booking. Booking is terminal: the lead
leaves every active list and shows up only in the booked-leads query.
"""

import logging
from typing import Any

from pydantic import ValidationError

from core.event_bus import EventBus
from core.events import LeadBooked
from core.exceptions import (
    AlreadyBookedError,
    BookingValidationError,
    LeadUnassignedError,
    UnauthorizedActorError,
    validation_error_from_pydantic,
)
from core.lead_locks import LeadLockManager
from core.lead_store import LeadStore
from core.ledger import owner_fields, owner_of
from core.lifecycle import LeadLifecycleEngine
from core.models import Actor, BookingCreate, BookingRecord, Lead, OwnerRef

logger = logging.getLogger(__name__)


class BookingFinalizer:
    """Books leads and lists booked leads."""

    def __init__(
        self,
        store: LeadStore,
        engine: LeadLifecycleEngine,
        locks: LeadLockManager,
        event_bus: EventBus | None = None,
    ):
        self.store = store
        self.engine = engine
        self.locks = locks
        self.event_bus = event_bus

    def book(self, lead_id: int, actor: Actor, details: dict[str, Any]) -> BookingRecord:
        """
        Book a lead with its unit details.

        Args:
            lead_id: Lead to book
            actor: User recording the booking
            details: property_id, flat_number, floor_number, block_number,
                asset, sqft, budget

        Returns:
            The booking record

        Raises:
            LeadNotFoundError: Lead doesn't exist in the actor's organization
            AlreadyBookedError: Lead was booked before
            LeadUnassignedError: Lead has no assignee
            BookingValidationError: A detail field is missing or malformed
        """
        with self.locks.hold(lead_id):
            lead = self.engine.load_for_actor(lead_id, actor)
            self.engine.ensure_same_organization(lead, actor)

            if lead.booked:
                raise AlreadyBookedError(f"Lead {lead_id} is already booked")
            if not lead.is_assigned:
                raise LeadUnassignedError(
                    f"Lead {lead_id} must be assigned before booking",
                    field="assigned_id",
                )
            if not actor.is_owner_role and not actor.is_same(lead.assigned_user_type, lead.assigned_id):
                raise UnauthorizedActorError(f"User {actor.user_id} is not assigned to lead {lead_id}")

            try:
                booking = BookingCreate.model_validate({**details, "lead_id": lead_id})
            except ValidationError as e:
                raise validation_error_from_pydantic(e, BookingValidationError) from e

            fields = booking.model_dump(mode="json")
            fields.update(owner_fields(owner_of(lead)))
            fields.update({
                "booked_by_emp_type": int(actor.user_type),
                "booked_by_emp_id": actor.user_id,
            })
            ack = self.store.book_lead(fields)
            booked = self.engine.get_lead(lead_id, owner_of(lead))

        record = self._record(booked, booking, ack.booking_id)
        logger.info(f"Lead {lead_id} booked as booking {record.booking_id} by user {actor.user_id}")

        if self.event_bus is not None:
            self.event_bus.publish(LeadBooked.create(booked, actor, record))
        return record

    def list_booked(self, owner: OwnerRef) -> list[Lead]:
        """Booked leads of an organization, most recent booking first."""
        leads = [
            lead for lead in self.store.fetch_booked_leads(owner.user_type, owner.user_id)
            if lead.booked
        ]
        return sorted(
            leads,
            key=lambda lead: (lead.booking.booked_at if lead.booking else lead.updated_at, lead.lead_id),
            reverse=True,
        )

    @staticmethod
    def _record(lead: Lead, booking: BookingCreate, booking_id: int) -> BookingRecord:
        booked_at = lead.booking.booked_at if lead.booking else lead.updated_at
        return BookingRecord(
            booking_id=booking_id,
            lead_id=lead.lead_id,
            property_id=booking.property_id,
            flat_number=booking.flat_number,
            floor_number=booking.floor_number,
            block_number=booking.block_number,
            asset=booking.asset,
            sqft=booking.sqft,
            budget=booking.budget,
            booked_at=booked_at,
        )
