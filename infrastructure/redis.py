from typing import Optional
import uuid

import redis.asyncio as redis


# Delete the key only if it still holds our token
_RELEASE_SCRIPT = (
    "if redis.call('GET', KEYS[1]) == ARGV[1] then"
    " return redis.call('DEL', KEYS[1])"
    " else return 0 end"
)


class RedisClient:
    """Simple async Redis client wrapper with lifecycle management and locks.

    Usage:
        client = RedisClient.from_url("redis://localhost:6379/0")
        await client.init()
        token = await client.acquire_lock("ladders:lock:team:abc")
        ...
        await client.release_lock("ladders:lock:team:abc", token)
        await client.close()
    """

    def __init__(self, url: str, *, decode_responses: bool = True, client: Optional[redis.Redis] = None):
        self.url = url
        self.decode_responses = decode_responses
        self._client: Optional[redis.Redis] = client

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisClient":
        return cls(url, **kwargs)

    async def init(self) -> None:
        """Initialize the underlying redis connection. Must be awaited."""
        if self._client is None:
            self._client = redis.from_url(self.url, decode_responses=self.decode_responses)
        # verify connectivity
        await self._client.ping()

    async def close(self) -> None:
        """Close the connection cleanly."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    def get(self) -> redis.Redis:
        """Return the underlying `redis.Redis` client. Raises if not initialized."""
        if self._client is None:
            raise RuntimeError("Redis client not initialized; call init() first")
        return self._client

    # ------ simple distributed lock helpers ------

    async def acquire_lock(self, key: str, timeout_ms: int = 10_000) -> Optional[str]:
        """
        Try to acquire a lock on `key` once. Returns a token string when
        acquired, None when another holder has it.
        """
        token = str(uuid.uuid4())
        # SET key token NX PX timeout_ms
        acquired = await self.get().set(key, token, nx=True, px=timeout_ms)
        return token if acquired else None

    async def release_lock(self, key: str, token: str) -> bool:
        """
        Release a lock only if `token` matches the stored value.
        Uses a Lua script to ensure atomicity. Returns True if released.
        """
        res = await self.get().eval(_RELEASE_SCRIPT, 1, key, token)
        return res == 1
