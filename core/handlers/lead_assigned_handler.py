"""
Handler for LeadAssigned events.

Drops a notification in the new assignee's inbox so the lead shows up on
their next refresh.
"""

import logging
from typing import Callable

from core.events import LeadAssigned

logger = logging.getLogger(__name__)


def handle_lead_assigned(inbox) -> Callable:
    """
    Factory that returns a LeadAssigned handler.

    Args:
        inbox: NotificationInbox instance

    Returns:
        Handler callable that notifies the assignee
    """

    def handler(event: LeadAssigned):
        lead = event.lead
        actor = event.actor

        # Claiming a lead for yourself needs no notification.
        if actor is not None and actor.is_same(lead.assigned_user_type, lead.assigned_id):
            return

        verb = "assigned" if event.is_first_assignment else "re-assigned"
        message = (
            f"Lead {lead.customer_name} ({lead.interested_project_name or 'no project'}) "
            f"was {verb} to you"
        )
        if lead.assigned_priority is not None:
            message += f" with {lead.assigned_priority.value} priority"

        inbox.push(lead.assigned_user_type, lead.assigned_id, "lead_assigned", message, lead.lead_id)
        logger.info(f"Notified user {lead.assigned_id} of lead {lead.lead_id}")

    return handler
