"""
Status catalog: the immutable lookup table of lead statuses.

Loaded once from the lead store and shared read-only for the engine's
lifetime.
"""

import logging
from types import MappingProxyType
from typing import Iterable

from core.exceptions import InvalidStatusError
from core.lead_store import LeadStore
from core.models import LeadStatus, StatusClass

logger = logging.getLogger(__name__)


class StatusCatalog:
    """Ordered, read-only set of lead statuses."""

    def __init__(self, statuses: Iterable[LeadStatus]):
        ordered = sorted(statuses, key=lambda s: (s.rank, s.status_id))
        if not ordered:
            raise ValueError("Status catalog is empty")

        by_id = {}
        for status in ordered:
            if status.status_id in by_id:
                raise ValueError(f"Duplicate status id {status.status_id} in catalog")
            by_id[status.status_id] = status

        defaults = [s for s in ordered if s.is_default]
        if len(defaults) > 1:
            raise ValueError("Status catalog has more than one default status")
        initial = defaults[0] if defaults else self._named(ordered, "new")
        if initial is None:
            raise ValueError("Status catalog has no initial status")
        if not initial.is_default:
            initial = initial.model_copy(update={"is_default": True})
            by_id[initial.status_id] = initial
            ordered = [initial if s.status_id == initial.status_id else s for s in ordered]

        self._ordered = tuple(ordered)
        self._by_id = MappingProxyType(by_id)
        self._initial = initial

    @staticmethod
    def _named(statuses, name: str) -> LeadStatus | None:
        for status in statuses:
            if status.status_name.strip().lower() == name:
                return status
        return None

    @classmethod
    def load(cls, store: LeadStore) -> "StatusCatalog":
        """Fetch the catalog from the store."""
        catalog = cls(store.fetch_status_catalog())
        logger.info(f"Loaded status catalog with {len(catalog)} statuses")
        return catalog

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self):
        return iter(self._ordered)

    def __contains__(self, status_id: object) -> bool:
        return status_id in self._by_id

    @property
    def initial(self) -> LeadStatus:
        """The status every new, unassigned lead starts in."""
        return self._initial

    @property
    def booking_status(self) -> LeadStatus | None:
        """The catalog's Booked status, if the store defines one."""
        return self._named(self._ordered, "booked")

    def get(self, status_id: int) -> LeadStatus:
        """
        Look up a status.

        Raises:
            InvalidStatusError: If the id is not in the catalog
        """
        status = self._by_id.get(status_id)
        if status is None:
            raise InvalidStatusError(f"Status {status_id} does not exist", field="status_id")
        return status

    def find(self, status_id: int | None) -> LeadStatus | None:
        if status_id is None:
            return None
        return self._by_id.get(status_id)

    def status_class(self, status_id: int) -> StatusClass:
        return self.get(status_id).status_class

    def is_terminal(self, status_id: int) -> bool:
        status = self.find(status_id)
        return status is not None and status.status_class == StatusClass.TERMINAL

    def rank(self, status_id: int) -> int:
        """Lifecycle rank. Unknown ids rank by their own value."""
        status = self.find(status_id)
        return status.rank if status is not None else status_id
