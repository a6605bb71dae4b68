"""
Per-lead write serialization.

Transition, assign and book on the same lead must not interleave, or the
lead's status and its latest ledger entry could disagree. LeadLockManager
covers a single process; ValkeyLeadLockManager covers several writers
sharing one Valkey.
"""

import logging
import secrets
import threading
import time
from contextlib import contextmanager

from clients.valkey_client import ValkeyClient
from core.exceptions import TransientError

logger = logging.getLogger(__name__)


class LeadLockManager:
    """In-process per-lead locks."""

    def __init__(self, timeout_seconds: float = 10.0):
        self._timeout = timeout_seconds
        self._locks: dict[int, threading.Lock] = {}
        self._users: dict[int, int] = {}
        self._guard = threading.Lock()

    def _checkout(self, lead_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(lead_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[lead_id] = lock
            self._users[lead_id] = self._users.get(lead_id, 0) + 1
            return lock

    def _checkin(self, lead_id: int) -> None:
        with self._guard:
            remaining = self._users[lead_id] - 1
            if remaining:
                self._users[lead_id] = remaining
            else:
                del self._users[lead_id]
                del self._locks[lead_id]

    @contextmanager
    def hold(self, lead_id: int):
        """
        Hold the lock for a lead for the duration of the block.

        Raises:
            TransientError: If the lock is not acquired within the timeout
        """
        lock = self._checkout(lead_id)
        try:
            if not lock.acquire(timeout=self._timeout):
                logger.warning(f"Timed out waiting for lock on lead {lead_id}")
                raise TransientError(f"Lead {lead_id} is busy, try again")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(lead_id)


class ValkeyLeadLockManager:
    """
    Distributed per-lead locks stored in Valkey.

    Each holder writes a random token with a TTL so a crashed holder cannot
    block the lead forever. Release only deletes the key if it still holds
    the caller's token.
    """

    KEY_PREFIX = "lead-lock:"
    POLL_INTERVAL_SECONDS = 0.05

    def __init__(self, valkey: ValkeyClient, timeout_seconds: float = 10.0, ttl_seconds: int = 30):
        self._valkey = valkey
        self._timeout = timeout_seconds
        self._ttl_ms = ttl_seconds * 1000

    def _key(self, lead_id: int) -> str:
        return f"{self.KEY_PREFIX}{lead_id}"

    @contextmanager
    def hold(self, lead_id: int):
        """
        Hold the distributed lock for a lead for the duration of the block.

        Raises:
            TransientError: If the lock is not acquired within the timeout
        """
        key = self._key(lead_id)
        token = secrets.token_hex(16)
        deadline = time.monotonic() + self._timeout

        while not self._valkey.acquire_lock(key, token, self._ttl_ms):
            if time.monotonic() >= deadline:
                logger.warning(f"Timed out waiting for distributed lock on lead {lead_id}")
                raise TransientError(f"Lead {lead_id} is busy, try again")
            time.sleep(self.POLL_INTERVAL_SECONDS)

        try:
            yield
        finally:
            if not self._valkey.release_lock(key, token):
                logger.warning(f"Lock on lead {lead_id} expired before release")
