"""Server-side session storage for wizard state.

The browser only carries an opaque session id (cookie); the payload lives
here as JSON under `session:{id}` and expires after `session_ttl_seconds`
of inactivity. Two backends share one interface:

  - RedisSessionStore   → production, shared across workers
  - MemorySessionStore  → single-process development and tests

Loading never fails: an unreachable store or an unreadable payload reads as
an empty session, so a user can always restart the wizard. Saving does fail
loudly (SessionStoreError → 503), otherwise progress would silently vanish.
"""

import json
import logging
import time

import redis.asyncio as redis

from product_wizard.config import settings
from product_wizard.middleware.exceptions import SessionStoreError
from product_wizard.utils.redis import get_redis

logger = logging.getLogger(__name__)


def _decode(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable session payload")
        return {}
    return payload if isinstance(payload, dict) else {}


class RedisSessionStore:
    def __init__(self, ttl: int | None = None, prefix: str = "session"):
        self.ttl = ttl or settings.session_ttl_seconds
        self.prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}:{session_id}"

    async def load(self, session_id: str) -> dict:
        try:
            client = await get_redis()
            raw = await client.get(self._key(session_id))
        except redis.RedisError as e:
            logger.warning(f"Session load failed (treating as empty): {e}")
            return {}
        return _decode(raw)

    async def save(self, session_id: str, payload: dict) -> None:
        if not payload:
            await self.delete(session_id)
            return
        try:
            client = await get_redis()
            await client.setex(self._key(session_id), self.ttl, json.dumps(payload))
        except redis.RedisError as e:
            logger.error(f"Session save failed: {e}")
            raise SessionStoreError() from e

    async def delete(self, session_id: str) -> None:
        try:
            client = await get_redis()
            await client.delete(self._key(session_id))
        except redis.RedisError as e:
            logger.error(f"Session delete failed: {e}")
            raise SessionStoreError() from e

    async def ping(self) -> bool:
        client = await get_redis()
        return await client.ping()


class MemorySessionStore:
    def __init__(self, ttl: int | None = None, clock=time.monotonic):
        self.ttl = ttl or settings.session_ttl_seconds
        self.clock = clock
        # session_id → (expires_at, json payload)
        self._entries: dict[str, tuple[float, str]] = {}

    async def load(self, session_id: str) -> dict:
        self._purge_expired()
        entry = self._entries.get(session_id)
        if entry is None:
            return {}
        return _decode(entry[1])

    async def save(self, session_id: str, payload: dict) -> None:
        self._purge_expired()
        if not payload:
            await self.delete(session_id)
            return
        self._entries[session_id] = (self.clock() + self.ttl, json.dumps(payload))

    def _purge_expired(self) -> None:
        now = self.clock()
        expired = [sid for sid, (expires_at, _) in self._entries.items() if expires_at <= now]
        for sid in expired:
            del self._entries[sid]

    async def delete(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    async def ping(self) -> bool:
        return True

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_memory_store = MemorySessionStore()


def get_session_store() -> RedisSessionStore | MemorySessionStore:
    """FastAPI dependency selecting the configured backend."""
    if settings.session_backend == "memory":
        return _memory_store
    return RedisSessionStore()
