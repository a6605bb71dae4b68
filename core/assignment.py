"""
Assignment resolver.

Decides who may receive a lead and commits (re-)assignments. An assignment
may carry a status change; the lifecycle engine validates that transition
against the incoming assignee and the store commits assignee, status and
ledger entry in one call.
"""

import logging
from datetime import date

from core.event_bus import EventBus
from core.events import LeadAssigned, LeadStatusChanged
from core.exceptions import (
    InvalidPriorityError,
    InvalidTargetRoleError,
    MissingFeedbackError,
    TargetNotFoundError,
    UnauthorizedActorError,
)
from core.lead_locks import LeadLockManager
from core.lead_store import LeadStore
from core.ledger import owner_fields, owner_of
from core.lifecycle import LeadLifecycleEngine
from core.models import ASSIGNABLE_ROLES, Actor, Assignee, Lead, LeadPriority, UserType

logger = logging.getLogger(__name__)


def parse_target_role(user_type) -> UserType:
    """
    Raises:
        InvalidTargetRoleError: If the user type is not an assignable role
    """
    try:
        role = UserType(int(user_type))
    except (TypeError, ValueError):
        role = None
    if role not in ASSIGNABLE_ROLES:
        raise InvalidTargetRoleError(
            f"Leads cannot be assigned to user type {user_type}",
            field="target_user_type",
        )
    return role


def parse_priority(priority) -> LeadPriority:
    """
    Raises:
        InvalidPriorityError: If priority is not High, Medium or Low
    """
    if isinstance(priority, LeadPriority):
        return priority
    for member in LeadPriority:
        if isinstance(priority, str) and priority.strip().lower() == member.value.lower():
            return member
    raise InvalidPriorityError(
        f"Priority must be one of {', '.join(p.value for p in LeadPriority)}",
        field="priority",
    )


class AssignmentResolver:
    """Eligible-recipient lookup and lead (re-)assignment."""

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

    def eligible_assignees(self, actor: Actor, target_user_type: int) -> list[Assignee]:
        """
        Active users of a role that the actor may assign leads to.

        Owner roles see every active user of the role in their organization.
        Anyone else can only claim leads for themselves.

        Raises:
            InvalidTargetRoleError: If target_user_type is not assignable
        """
        role = parse_target_role(target_user_type)
        owner = actor.organization
        candidates = [
            user for user in self.store.fetch_users_by_type(owner.user_id, int(role))
            if user.is_active
        ]
        if not actor.is_owner_role:
            candidates = [user for user in candidates if actor.is_same(int(user.user_type), user.id)]
        return sorted(candidates, key=lambda user: user.name.lower())

    def assign(
        self,
        lead_id: int,
        actor: Actor,
        target_user_type: int,
        target_id: int,
        priority: str | LeadPriority,
        feedback: str,
        next_action: str = "",
        status_id: int | None = None,
        followup_date: date | None = None,
        action_date: date | None = None,
    ) -> Lead:
        """
        Assign a lead, optionally moving it to a new status in the same write.

        Args:
            lead_id: Lead to assign
            actor: User performing the assignment
            target_user_type: Role of the new assignee
            target_id: User id of the new assignee
            priority: High, Medium or Low
            feedback: Reason for the assignment (required)
            next_action: Required when status_id is given
            status_id: Optional status to move the lead to
            followup_date: For follow-up statuses
            action_date: For every other status

        Returns:
            The lead as it is after the assignment

        Raises:
            LeadNotFoundError: Lead doesn't exist in the actor's organization
            UnauthorizedActorError: Actor may not assign this lead to the target
            LeadAlreadyTerminalError: Lead is booked or terminal
            InvalidTargetRoleError: Target type is not assignable
            InvalidPriorityError: Priority is not High, Medium or Low
            TargetNotFoundError: Target is not an active user of that type
            MissingFeedbackError: Feedback is empty
        """
        with self.locks.hold(lead_id):
            lead = self.engine.load_for_actor(lead_id, actor)
            self.engine.ensure_same_organization(lead, actor)
            self.engine.ensure_active(lead)

            role = parse_target_role(target_user_type)
            level = parse_priority(priority)
            self._authorize(lead, actor, role, target_id)
            target = self._find_target(lead, role, target_id)

            feedback = (feedback or "").strip()
            if not feedback:
                raise MissingFeedbackError("Feedback is required", field="feedback")

            entry = None
            if status_id is not None:
                entry = self.engine.prepare_transition(
                    lead, actor, status_id, feedback, next_action,
                    followup_date=followup_date,
                    action_date=action_date,
                    incoming_assignee=(int(role), target.id),
                )

            fields = {
                "lead_id": lead.lead_id,
                **owner_fields(owner_of(lead)),
                "assigned_user_type": int(role),
                "assigned_id": target.id,
                "assigned_name": target.name,
                "assigned_emp_number": target.emp_number or target.mobile,
                "assigned_priority": level.value,
                "feedback": feedback,
                "next_action": (next_action or "").strip(),
                "updated_by_emp_type": int(actor.user_type),
                "updated_by_emp_id": actor.user_id,
                "updated_by_emp_name": actor.name,
                "updated_emp_phone": actor.mobile,
            }
            if entry is not None:
                fields.update(entry.model_dump(mode="json"))

            ack = self.store.assign_lead(fields)
            assigned = ack.lead or self.engine.get_lead(lead_id, owner_of(lead))
            update = self.engine.ledger.latest(lead_id, owner_of(lead)) if entry else None

        logger.info(
            f"Lead {lead_id} assigned to user {target.id} (type {int(role)}) "
            f"by user {actor.user_id}" + (f" with status {status_id}" if entry else "")
        )

        self._publish(LeadAssigned.create(
            assigned, actor, lead.assigned_user_type, lead.assigned_id,
        ))
        if update is not None:
            self._publish(LeadStatusChanged.create(assigned, actor, lead.status_id, update))
        return assigned

    def self_claim(
        self,
        lead_id: int,
        actor: Actor,
        priority: str | LeadPriority,
        feedback: str,
        next_action: str = "",
        status_id: int | None = None,
        followup_date: date | None = None,
        action_date: date | None = None,
    ) -> Lead:
        """Assign a lead routed to the actor's queue to the actor."""
        return self.assign(
            lead_id, actor, int(actor.user_type), actor.user_id, priority, feedback,
            next_action=next_action,
            status_id=status_id,
            followup_date=followup_date,
            action_date=action_date,
        )

    def _authorize(self, lead: Lead, actor: Actor, role: UserType, target_id: int) -> None:
        if actor.is_owner_role:
            return

        claiming_self = actor.is_same(int(role), target_id)
        routed_to_actor = (
            actor.is_same(lead.assigned_user_type, lead.assigned_id)
            or actor.is_same(lead.referred_by_user_type, lead.referred_by_user_id)
        )
        if not (claiming_self and routed_to_actor):
            logger.warning(
                f"User {actor.user_id} (type {int(actor.user_type)}) refused assignment "
                f"of lead {lead.lead_id} to user {target_id}"
            )
            raise UnauthorizedActorError(
                f"User {actor.user_id} may only claim leads routed to them"
            )

    def _find_target(self, lead: Lead, role: UserType, target_id: int) -> Assignee:
        users = self.store.fetch_users_by_type(lead.lead_added_user_id, int(role))
        for user in users:
            if user.id == target_id and user.is_active:
                return user
        raise TargetNotFoundError(
            f"No active user {target_id} of type {int(role)} in this organization",
            field="target_id",
        )

    def _publish(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)
