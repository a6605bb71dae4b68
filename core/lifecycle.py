"""
Lead lifecycle engine.

Owns every change to a lead's status. A transition is validated completely
before anything is written; the write itself (ledger entry + status) is one
store call made while holding the lead's lock, so a lead and its latest
ledger entry never disagree.

Status classes:
- UNASSIGNED: the initial status. Left only through a first assignment.
- FOLLOW_UP: needs a followup_date, today or later.
- ACTION: needs an action_date, today or later.
- TERMINAL: won, lost, revoked, booked. No further transitions.
"""

import logging
from datetime import date

from core.config import EngineConfig
from core.event_bus import EventBus
from core.events import LeadCreated, LeadStatusChanged
from core.exceptions import (
    DateInPastError,
    IllegalTransitionError,
    LeadAlreadyTerminalError,
    LeadNotFoundError,
    LeadUnassignedError,
    LeadValidationError,
    MissingFeedbackError,
    MissingRequiredDateError,
    TargetNotFoundError,
    TransientError,
    UnauthorizedActorError,
)
from core.lead_locks import LeadLockManager
from core.lead_store import LeadStore
from core.ledger import UpdateLedger, owner_fields, owner_of
from core.models import (
    Actor,
    Lead,
    LeadCreate,
    LeadFilter,
    LeadUpdate,
    LeadUpdateCreate,
    OwnerRef,
    StatusClass,
    UserType,
)
from core.status_catalog import StatusCatalog
from utils.timezone import calendar_date, local_today

logger = logging.getLogger(__name__)


class LeadLifecycleEngine:
    """Validates and executes lead status transitions."""

    def __init__(
        self,
        store: LeadStore,
        catalog: StatusCatalog,
        ledger: UpdateLedger,
        locks: LeadLockManager,
        event_bus: EventBus | None = None,
        config: EngineConfig | None = None,
    ):
        self.store = store
        self.catalog = catalog
        self.ledger = ledger
        self.locks = locks
        self.event_bus = event_bus
        self.config = config or EngineConfig()

    def today(self) -> date:
        """Today in the business timezone."""
        return local_today(self.config.business_timezone)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_lead(self, lead_id: int, owner: OwnerRef) -> Lead:
        """
        Get a lead of an organization.

        Raises:
            LeadNotFoundError: If the lead doesn't exist there
        """
        lead = self.store.fetch_lead(lead_id, owner.user_type, owner.user_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")
        return lead

    def load_for_actor(self, lead_id: int, actor: Actor) -> Lead:
        """
        Get a lead from the actor's organization.

        Raises:
            LeadNotFoundError: If the lead doesn't exist in that organization
        """
        return self.get_lead(lead_id, actor.organization)

    def list_leads(self, lead_filter: LeadFilter) -> list[Lead]:
        """
        List active (not booked) leads matching every supplied filter field.

        Owner, assignee and status narrow the store query; search, city and
        date bounds are applied here. Results are newest lead first.
        """
        leads = self.store.fetch_leads(
            lead_filter.owner_type,
            lead_filter.owner_id,
            lead_filter.assigned_user_type,
            lead_filter.assigned_id,
            lead_filter.status_id,
        )
        matched = [lead for lead in leads if self._matches(lead, lead_filter)]
        return sorted(matched, key=lambda lead: lead.lead_id, reverse=True)

    def _matches(self, lead: Lead, f: LeadFilter) -> bool:
        if lead.booked:
            return False
        if lead.lead_added_user_type != f.owner_type or lead.lead_added_user_id != f.owner_id:
            return False
        if f.assigned_user_type is not None and lead.assigned_user_type != f.assigned_user_type:
            return False
        if f.assigned_id is not None and lead.assigned_id != f.assigned_id:
            return False
        if f.status_id is not None and lead.status_id != f.status_id:
            return False

        if f.search and f.search.strip():
            needle = f.search.strip().lower()
            haystack = (
                lead.customer_name,
                lead.customer_phone_number,
                lead.customer_email,
                lead.interested_project_name,
                lead.assigned_name,
                lead.assigned_emp_number,
            )
            if not any(value and needle in value.lower() for value in haystack):
                return False

        if f.city and f.city.strip():
            if (lead.city or "").strip().lower() != f.city.strip().lower():
                return False

        tz = self.config.business_timezone
        created = calendar_date(lead.created_at, tz)
        if f.created_from and created < f.created_from:
            return False
        if f.created_to and created > f.created_to:
            return False

        updated = calendar_date(lead.updated_at, tz)
        if f.updated_from and updated < f.updated_from:
            return False
        if f.updated_to and updated > f.updated_to:
            return False

        return True

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_lead(self, actor: Actor, data: LeadCreate) -> Lead:
        """
        Create an unassigned lead in the initial status.

        The lead belongs to the actor's organization. A lead entered by a
        channel partner, or attributed to one through channel_partner_id,
        is routed to that partner so they can claim it.

        Raises:
            TargetNotFoundError: If channel_partner_id is not an active
                channel partner of the organization
        """
        owner = actor.organization
        referred_by = self._referring_partner(actor, owner, data.channel_partner_id)

        fields = data.model_dump(mode="json", exclude={"channel_partner_id"})
        fields.update(owner_fields(owner))
        fields["status_id"] = self.catalog.initial.status_id
        fields["referred_by_user_type"] = int(UserType.CHANNEL_PARTNER) if referred_by else None
        fields["referred_by_user_id"] = referred_by

        lead_id = self.store.create_lead(fields)
        lead = self.get_lead(lead_id, owner)

        logger.info(f"Lead {lead_id} created by user {actor.user_id} for organization {owner.user_id}")
        self._publish(LeadCreated.create(lead, actor))
        return lead

    def _referring_partner(self, actor: Actor, owner: OwnerRef, channel_partner_id: int | None) -> int | None:
        if actor.user_type == UserType.CHANNEL_PARTNER:
            return actor.user_id
        if channel_partner_id is None:
            return None

        partners = self.store.fetch_users_by_type(owner.user_id, int(UserType.CHANNEL_PARTNER))
        if not any(p.id == channel_partner_id and p.is_active for p in partners):
            raise TargetNotFoundError(
                f"Channel partner {channel_partner_id} not found",
                field="channel_partner_id",
            )
        return channel_partner_id

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def transition(
        self,
        lead_id: int,
        actor: Actor,
        new_status_id: int,
        feedback: str,
        next_action: str,
        followup_date: date | None = None,
        action_date: date | None = None,
    ) -> LeadUpdate:
        """
        Move a lead to a new status and record the ledger entry.

        Args:
            lead_id: Lead to move
            actor: User performing the change, recorded on the entry
            new_status_id: Target status from the catalog
            feedback: What happened (required)
            next_action: What happens next (required)
            followup_date: Required for follow-up statuses, otherwise rejected
            action_date: Required for all other statuses, otherwise rejected

        Returns:
            The appended ledger entry

        Raises:
            LeadNotFoundError, UnauthorizedActorError, LeadAlreadyTerminalError,
            InvalidStatusError, IllegalTransitionError, LeadUnassignedError,
            MissingFeedbackError, MissingRequiredDateError, DateInPastError: Validation
                failures, raised before any write
            TransientError: Store acknowledged the write but the ledger and
                lead status disagree afterwards
        """
        with self.locks.hold(lead_id):
            lead = self.load_for_actor(lead_id, actor)
            entry = self.prepare_transition(
                lead, actor, new_status_id, feedback, next_action,
                followup_date=followup_date, action_date=action_date,
            )
            self.ledger.append(lead, entry)

            updated = self.get_lead(lead_id, owner_of(lead))
            update = self.ledger.latest(lead_id, owner_of(lead))

        if update is None or update.status_id != updated.status_id:
            logger.error(f"Lead {lead_id} ledger does not match status {updated.status_id} after transition")
            raise TransientError(f"Lead store did not record the transition of lead {lead_id}")

        self._publish(LeadStatusChanged.create(updated, actor, lead.status_id, update))
        return update

    def ensure_active(self, lead: Lead) -> None:
        """
        Raises:
            LeadAlreadyTerminalError: If the lead is booked or in a terminal status
        """
        if lead.booked:
            raise LeadAlreadyTerminalError(f"Lead {lead.lead_id} is booked")
        if self.catalog.is_terminal(lead.status_id):
            raise LeadAlreadyTerminalError(
                f"Lead {lead.lead_id} is in terminal status {lead.status_id}"
            )

    def ensure_same_organization(self, lead: Lead, actor: Actor) -> None:
        """
        Raises:
            UnauthorizedActorError: If the actor works for another organization
        """
        if owner_of(lead) != actor.organization:
            raise UnauthorizedActorError(
                f"User {actor.user_id} cannot act on leads of organization {lead.lead_added_user_id}"
            )

    def prepare_transition(
        self,
        lead: Lead,
        actor: Actor,
        new_status_id: int,
        feedback: str,
        next_action: str,
        followup_date: date | None = None,
        action_date: date | None = None,
        incoming_assignee: tuple[int, int] | None = None,
    ) -> LeadUpdateCreate:
        """
        Validate a transition without writing anything.

        Args:
            incoming_assignee: (user_type, id) the lead will have once an
                assignment submitted together with this transition commits

        Returns:
            Ledger entry ready to append
        """
        self.ensure_same_organization(lead, actor)
        self.ensure_active(lead)

        target = self.catalog.get(new_status_id)
        if target.status_class == StatusClass.UNASSIGNED:
            raise IllegalTransitionError(
                f"Lead {lead.lead_id} cannot return to {target.status_name}",
                field="status_id",
            )
        if target.is_booking_status:
            raise IllegalTransitionError(
                f"Lead {lead.lead_id} can only be booked through a booking",
                field="status_id",
            )

        if incoming_assignee is not None:
            assignee_type, assignee_id = incoming_assignee
        else:
            assignee_type, assignee_id = lead.assigned_user_type, lead.assigned_id
        if assignee_id is None:
            raise LeadUnassignedError(
                f"Lead {lead.lead_id} must be assigned before its status can change",
                field="assigned_id",
            )
        if not actor.is_owner_role and not actor.is_same(assignee_type, assignee_id):
            raise UnauthorizedActorError(
                f"User {actor.user_id} is not assigned to lead {lead.lead_id}"
            )

        feedback = (feedback or "").strip()
        next_action = (next_action or "").strip()
        if not feedback:
            raise MissingFeedbackError("Feedback is required", field="feedback")
        if not next_action:
            raise MissingFeedbackError("Next action is required", field="next_action")

        self._check_dates(target.requires_followup_date, followup_date, action_date)

        return LeadUpdateCreate(
            lead_id=lead.lead_id,
            status_id=target.status_id,
            feedback=feedback,
            next_action=next_action,
            followup_date=followup_date if target.requires_followup_date else None,
            action_date=None if target.requires_followup_date else action_date,
            updated_by_emp_type=int(actor.user_type),
            updated_by_emp_id=actor.user_id,
            updated_by_emp_name=actor.name,
            updated_emp_phone=actor.mobile,
        )

    def _check_dates(self, follow_up: bool, followup_date: date | None, action_date: date | None) -> None:
        if follow_up:
            required, required_name = followup_date, "followup_date"
            other, other_name = action_date, "action_date"
            label = "Follow-up date"
        else:
            required, required_name = action_date, "action_date"
            other, other_name = followup_date, "followup_date"
            label = "Action date"

        if other is not None:
            raise LeadValidationError(
                f"{other_name} does not apply to this status",
                field=other_name,
            )
        if required is None:
            raise MissingRequiredDateError(f"{label} is required", field=required_name)
        if required < self.today():
            raise DateInPastError(f"{label} cannot be in the past", field=required_name)

    def _publish(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)
