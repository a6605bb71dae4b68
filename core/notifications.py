"""
Per-assignee notification inbox stored in Valkey.

Each assignee (user type + id) has a capped, newest-first list of
notifications. Entries are plain JSON dicts.
"""

import logging
from uuid import uuid4

from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class NotificationInbox:
    """Valkey-backed notification lists keyed by assignee."""

    KEY_PREFIX = "notifications:"

    def __init__(self, valkey: ValkeyClient, limit: int = 200):
        self._valkey = valkey
        self._limit = limit

    def _key(self, user_type: int, user_id: int) -> str:
        return f"{self.KEY_PREFIX}{int(user_type)}:{user_id}"

    def push(self, user_type: int, user_id: int, kind: str, message: str, lead_id: int | None = None) -> dict:
        """
        Add a notification to an assignee's inbox.

        Returns:
            The stored notification
        """
        notification = {
            "id": str(uuid4()),
            "kind": kind,
            "message": message,
            "lead_id": lead_id,
            "created_at": now_utc().isoformat(),
        }
        self._valkey.push_json(self._key(user_type, user_id), notification, self._limit)
        return notification

    def list(self, user_type: int, user_id: int, limit: int = 50) -> list[dict]:
        """Newest-first notifications of an assignee."""
        return self._valkey.list_json(self._key(user_type, user_id), limit)

    def count(self, user_type: int, user_id: int) -> int:
        return self._valkey.list_length(self._key(user_type, user_id))

    def clear(self, user_type: int, user_id: int) -> bool:
        """Remove every notification. False if the inbox was already empty."""
        cleared = self._valkey.delete(self._key(user_type, user_id))
        if cleared:
            logger.info(f"Cleared notifications of user {user_id} (type {user_type})")
        return cleared
