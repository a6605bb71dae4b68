"""Core domain models."""

from core.models.actor import Actor, Assignee, OwnerRef, UserType, OWNER_ROLES, ASSIGNABLE_ROLES
from core.models.booking import BookingCreate, BookingDetails, BookingRecord
from core.models.lead_status import LeadStatus, StatusClass
from core.models.lead import Lead, LeadCreate, LeadFilter, LeadPriority
from core.models.lead_update import LeadUpdate, LeadUpdateCreate, TimelineEntry, TimelineMarker

__all__ = [
    # Actor
    "Actor", "Assignee", "OwnerRef", "UserType", "OWNER_ROLES", "ASSIGNABLE_ROLES",
    # Booking
    "BookingCreate", "BookingDetails", "BookingRecord",
    # Status catalog
    "LeadStatus", "StatusClass",
    # Lead
    "Lead", "LeadCreate", "LeadFilter", "LeadPriority",
    # Ledger
    "LeadUpdate", "LeadUpdateCreate", "TimelineEntry", "TimelineMarker",
]
