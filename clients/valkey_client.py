"""
Valkey (Redis-compatible) client for sessions, lead locks and notification inboxes.

Simple wrapper around redis-py. Connection URL from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)

# Delete the lock key only if it still holds the caller's token.
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("session:abc", {"user_id": 7}, expire_seconds=300)
        if client.acquire_lock("lead-lock:42", token, ttl_ms=30000):
            ...
            client.release_lock("lead-lock:42", token)
    """

    def __init__(self, url: str):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        self._release_script = self._client.register_script(_RELEASE_LOCK_SCRIPT)
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        """
        Health check.

        Returns True if Valkey responds.
        Raises redis.ConnectionError if unreachable.
        """
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """Get value by key. None if the key doesn't exist."""
        return self._client.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Set key to value, optionally with expiration in seconds."""
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, value)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> bool:
        """Delete key. True if it existed."""
        return self._client.delete(key) > 0

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        """Set key to JSON-serialized value."""
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        """
        Get and deserialize JSON value.

        Returns None if key doesn't exist.
        Raises ValueError if value is not valid JSON.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    # -------------------------------------------------------------------------
    # Locks
    # -------------------------------------------------------------------------

    def acquire_lock(self, key: str, token: str, ttl_ms: int) -> bool:
        """
        Try to take a lock once. True if acquired.

        Args:
            key: Lock key
            token: Caller-unique token, needed to release
            ttl_ms: Lock expiry in milliseconds
        """
        return bool(self._client.set(key, token, nx=True, px=ttl_ms))

    def release_lock(self, key: str, token: str) -> bool:
        """Release a lock held with `token`. False if it expired or changed hands."""
        return bool(self._release_script(keys=[key], args=[token]))

    # -------------------------------------------------------------------------
    # Capped JSON lists (newest first)
    # -------------------------------------------------------------------------

    def push_json(self, key: str, value: dict, max_length: int) -> int:
        """
        Prepend a JSON value to a list and trim it to max_length.

        Returns the list length before trimming.
        """
        pipe = self._client.pipeline()
        pipe.lpush(key, json.dumps(value))
        pipe.ltrim(key, 0, max_length - 1)
        length, _ = pipe.execute()
        return length

    def list_json(self, key: str, limit: int = 50) -> list[dict]:
        """Newest-first JSON values of a list. Empty if the key doesn't exist."""
        return [json.loads(item) for item in self._client.lrange(key, 0, limit - 1)]

    def list_length(self, key: str) -> int:
        return self._client.llen(key)

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
