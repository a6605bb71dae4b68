"""
Lead service: entry point for every lead operation.

Wires the status catalog, ledger, lifecycle engine, assignment resolver and
booking finalizer around one Lead Store, and scopes reads to the acting
user's organization.
"""

import logging
from datetime import date

from core.assignment import AssignmentResolver
from core.booking import BookingFinalizer
from core.config import EngineConfig
from core.event_bus import EventBus
from core.lead_locks import LeadLockManager
from core.lead_store import LeadStore
from core.ledger import UpdateLedger
from core.lifecycle import LeadLifecycleEngine
from core.models import (
    Actor,
    Assignee,
    BookingRecord,
    Lead,
    LeadCreate,
    LeadFilter,
    LeadPriority,
    LeadStatus,
    LeadUpdate,
    TimelineEntry,
    UserType,
)
from core.status_catalog import StatusCatalog

logger = logging.getLogger(__name__)

CHANNEL_PARTNER_CLAIM_FEEDBACK = "Lead added by channel partner"


class LeadService:
    """Service for lead lifecycle operations."""

    def __init__(
        self,
        store: LeadStore,
        event_bus: EventBus | None = None,
        config: EngineConfig | None = None,
        locks=None,
        catalog: StatusCatalog | None = None,
    ):
        """
        Args:
            store: Lead Store the service reads from and writes to
            event_bus: Receives domain events after each committed operation
            config: Engine configuration
            locks: LeadLockManager or ValkeyLeadLockManager; in-process by default
            catalog: Preloaded status catalog; fetched from the store otherwise
        """
        self.config = config or EngineConfig()
        self.store = store
        self.event_bus = event_bus
        self.catalog = catalog or StatusCatalog.load(store)
        self.locks = locks or LeadLockManager(self.config.lock_timeout_seconds)
        self.ledger = UpdateLedger(store, self.catalog)
        self.engine = LeadLifecycleEngine(
            store, self.catalog, self.ledger, self.locks, event_bus, self.config,
        )
        self.assignment = AssignmentResolver(store, self.engine, self.locks, event_bus)
        self.booking = BookingFinalizer(store, self.engine, self.locks, event_bus)

    # -------------------------------------------------------------------------
    # Leads
    # -------------------------------------------------------------------------

    def create_lead(self, actor: Actor, data: LeadCreate) -> Lead:
        """
        Create a lead in the initial status.

        A channel partner's own lead is claimed for them right away.

        Returns:
            The lead as stored after creation (and claim)
        """
        lead = self.engine.create_lead(actor, data)

        if actor.user_type == UserType.CHANNEL_PARTNER:
            lead = self.assignment.self_claim(
                lead.lead_id, actor, LeadPriority.MEDIUM, CHANNEL_PARTNER_CLAIM_FEEDBACK,
            )
        return lead

    def get_lead(self, actor: Actor, lead_id: int) -> Lead:
        """
        Raises:
            LeadNotFoundError: If the lead isn't in the actor's organization
        """
        return self.engine.load_for_actor(lead_id, actor)

    def list_leads(
        self,
        actor: Actor,
        assigned_user_type: int | None = None,
        assigned_id: int | None = None,
        status_id: int | None = None,
        search: str | None = None,
        city: str | None = None,
        created_from: date | None = None,
        created_to: date | None = None,
        updated_from: date | None = None,
        updated_to: date | None = None,
    ) -> list[Lead]:
        """
        Active leads of the actor's organization.

        Owner roles may filter by any assignee. Everyone else sees the leads
        assigned to them plus unclaimed leads routed to them.
        """
        owner = actor.organization
        own_queue = not actor.is_owner_role

        lead_filter = LeadFilter(
            owner_type=owner.user_type,
            owner_id=owner.user_id,
            assigned_user_type=None if own_queue else assigned_user_type,
            assigned_id=None if own_queue else assigned_id,
            status_id=status_id,
            search=search,
            city=city,
            created_from=created_from,
            created_to=created_to,
            updated_from=updated_from,
            updated_to=updated_to,
        )
        leads = self.engine.list_leads(lead_filter)

        if own_queue:
            leads = [lead for lead in leads if self._in_queue(lead, actor)]
        return leads

    @staticmethod
    def _in_queue(lead: Lead, actor: Actor) -> bool:
        if actor.is_same(lead.assigned_user_type, lead.assigned_id):
            return True
        return not lead.is_assigned and actor.is_same(lead.referred_by_user_type, lead.referred_by_user_id)

    def list_booked(self, actor: Actor) -> list[Lead]:
        """Booked leads of the actor's organization."""
        leads = self.booking.list_booked(actor.organization)
        if not actor.is_owner_role:
            leads = [lead for lead in leads if actor.is_same(lead.assigned_user_type, lead.assigned_id)]
        return leads

    def history(self, actor: Actor, lead_id: int) -> list[LeadUpdate]:
        return self.ledger.history(lead_id, actor.organization)

    def timeline(self, actor: Actor, lead_id: int) -> list[TimelineEntry]:
        return self.ledger.timeline(lead_id, actor.organization)

    def statuses(self) -> list[LeadStatus]:
        """Status catalog in lifecycle order."""
        return list(self.catalog)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def transition(
        self,
        actor: Actor,
        lead_id: int,
        status_id: int,
        feedback: str,
        next_action: str,
        followup_date: date | None = None,
        action_date: date | None = None,
    ) -> LeadUpdate:
        return self.engine.transition(
            lead_id, actor, status_id, feedback, next_action,
            followup_date=followup_date, action_date=action_date,
        )

    def assign(
        self,
        actor: Actor,
        lead_id: int,
        target_user_type: int,
        target_id: int,
        priority: str,
        feedback: str,
        next_action: str = "",
        status_id: int | None = None,
        followup_date: date | None = None,
        action_date: date | None = None,
    ) -> Lead:
        return self.assignment.assign(
            lead_id, actor, target_user_type, target_id, priority, feedback,
            next_action=next_action,
            status_id=status_id,
            followup_date=followup_date,
            action_date=action_date,
        )

    def book(self, actor: Actor, lead_id: int, details: dict) -> BookingRecord:
        return self.booking.book(lead_id, actor, details)

    def eligible_assignees(self, actor: Actor, target_user_type: int) -> list[Assignee]:
        return self.assignment.eligible_assignees(actor, target_user_type)
