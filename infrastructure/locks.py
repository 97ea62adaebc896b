"""Keyed critical sections.

The roll and proof paths read a team's gating flag, decide, and write new
flags. That sequence must not interleave for one team, so callers wrap it in
`async with locks.hold(f"team:{team_id}")`.

`KeyedLock` serialises within one process. `RedisKeyedLock` does the same
across processes that share a database; it is selected when `REDIS_URL` is
configured.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from stores import ConcurrentUpdate
from .redis import RedisClient

logger = logging.getLogger(__name__)


class KeyedLock:
    """One `asyncio.Lock` per key, dropped again once nobody holds or waits for it."""

    def __init__(self):
        # key -> (lock, [holders + waiters])
        self._locks: dict[str, tuple[asyncio.Lock, list[int]]] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = (asyncio.Lock(), [0])
        lock, users = entry
        users[0] += 1
        try:
            async with lock:
                yield
        finally:
            users[0] -= 1
            if users[0] == 0 and self._locks.get(key) is entry:
                del self._locks[key]

    def active_keys(self) -> list[str]:
        return list(self._locks)

    async def close(self) -> None:
        """Forget all keys; holders still inside `hold()` release cleanly."""
        self._locks.clear()


class RedisKeyedLock:
    """Distributed variant built on `SET NX PX` plus a token-checked release."""

    def __init__(
        self,
        client: RedisClient,
        *,
        prefix: str = "ladders:lock:",
        ttl_ms: int = 10_000,
        wait_timeout: float = 5.0,
        retry_interval: float = 0.05,
    ):
        self.client = client
        self.prefix = prefix
        self.ttl_ms = ttl_ms
        self.wait_timeout = wait_timeout
        self.retry_interval = retry_interval

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        # Raises: ConcurrentUpdate if the lock cannot be taken before wait_timeout
        name = self.prefix + key
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_timeout
        while True:
            token = await self.client.acquire_lock(name, self.ttl_ms)
            if token is not None:
                break
            if loop.time() >= deadline:
                raise ConcurrentUpdate(f"Timed out waiting for lock {key}")
            await asyncio.sleep(self.retry_interval)

        try:
            yield
        finally:
            if not await self.client.release_lock(name, token):
                logger.warning(f"Lock {name} expired before it was released")

    async def close(self) -> None:
        await self.client.close()


TeamLocks = Union[KeyedLock, RedisKeyedLock]

_team_locks: Optional[TeamLocks] = None


async def init_team_locks(redis_url: Optional[str] = None) -> TeamLocks:
    """Create the process-wide lock provider: Redis when a URL is given, else in-process."""
    global _team_locks
    if _team_locks is not None:
        return _team_locks

    if redis_url:
        client = RedisClient.from_url(redis_url)
        await client.init()
        _team_locks = RedisKeyedLock(client)
        logger.info("Using Redis team locks")
    else:
        _team_locks = KeyedLock()
        logger.info("Using in-process team locks")
    return _team_locks


def get_team_locks() -> TeamLocks:
    """FastAPI dependency returning the lock provider."""
    if _team_locks is None:
        raise RuntimeError("Team locks not initialized; call init_team_locks()")
    return _team_locks


async def close_team_locks() -> None:
    global _team_locks
    if _team_locks is not None:
        await _team_locks.close()
        _team_locks = None
