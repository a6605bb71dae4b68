"""
Update ledger: append-only history of lead status changes.

Entries are written together with the status change they record (one
store call), so the latest entry always matches the lead's status. Nothing
here edits or removes an entry.
"""

import logging

from core.exceptions import LeadNotFoundError
from core.lead_store import LeadStore
from core.models import Lead, LeadUpdate, LeadUpdateCreate, OwnerRef, TimelineEntry, TimelineMarker
from core.status_catalog import StatusCatalog

logger = logging.getLogger(__name__)


def owner_fields(owner: OwnerRef) -> dict:
    """Owner identification sent with every store write."""
    return {
        "lead_added_user_type": owner.user_type,
        "lead_added_user_id": owner.user_id,
    }


def owner_of(lead: Lead) -> OwnerRef:
    return OwnerRef(user_type=lead.lead_added_user_type, user_id=lead.lead_added_user_id)


class UpdateLedger:
    """Append and read lead status history."""

    def __init__(self, store: LeadStore, catalog: StatusCatalog):
        self.store = store
        self.catalog = catalog

    def append(self, lead: Lead, entry: LeadUpdateCreate) -> None:
        """
        Append an entry and move the lead to the entry's status.

        Args:
            lead: The existing lead the entry belongs to
            entry: Validated ledger entry
        """
        if entry.lead_id != lead.lead_id:
            raise ValueError(f"Entry for lead {entry.lead_id} appended to lead {lead.lead_id}")

        fields = entry.model_dump(mode="json")
        fields.update(owner_fields(owner_of(lead)))
        self.store.update_status(fields)

        logger.info(
            f"Lead {lead.lead_id}: status {lead.status_id} -> {entry.status_id} "
            f"by user {entry.updated_by_emp_id}"
        )

    def history(self, lead_id: int, owner: OwnerRef) -> list[LeadUpdate]:
        """
        Ledger entries of a lead, oldest first.

        Raises:
            LeadNotFoundError: If the lead doesn't exist in the organization
        """
        self._require_lead(lead_id, owner)
        return self._ordered(lead_id, owner)

    def timeline(self, lead_id: int, owner: OwnerRef) -> list[TimelineEntry]:
        """
        History with derived markers relative to the lead's current status.

        An entry is CURRENT when its status ranks equal to the lead's status,
        COMPLETED when it ranks lower, PENDING when higher. Ranks default to
        status ids.
        """
        lead = self._require_lead(lead_id, owner)
        current_rank = self.catalog.rank(lead.status_id)

        timeline = []
        for update in self._ordered(lead_id, owner):
            rank = self.catalog.rank(update.status_id)
            if rank == current_rank:
                marker = TimelineMarker.CURRENT
            elif rank < current_rank:
                marker = TimelineMarker.COMPLETED
            else:
                marker = TimelineMarker.PENDING
            timeline.append(TimelineEntry(update=update, marker=marker))
        return timeline

    def latest(self, lead_id: int, owner: OwnerRef) -> LeadUpdate | None:
        entries = self._ordered(lead_id, owner)
        return entries[-1] if entries else None

    def _require_lead(self, lead_id: int, owner: OwnerRef) -> Lead:
        lead = self.store.fetch_lead(lead_id, owner.user_type, owner.user_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead {lead_id} not found")
        return lead

    def _ordered(self, lead_id: int, owner: OwnerRef) -> list[LeadUpdate]:
        updates = self.store.fetch_lead_updates(lead_id, owner.user_type, owner.user_id)
        return sorted(updates, key=lambda u: (u.updated_at, u.update_id))
