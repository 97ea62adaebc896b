"""Infrastructure helpers (Redis, keyed locks)

Expose a small public surface for the lock providers used by the engine and app startup.
"""
from .redis import RedisClient
from .locks import (
    KeyedLock,
    RedisKeyedLock,
    TeamLocks,
    init_team_locks,
    get_team_locks,
    close_team_locks,
)

__all__ = [
    "RedisClient",
    "KeyedLock",
    "RedisKeyedLock",
    "TeamLocks",
    "init_team_locks",
    "get_team_locks",
    "close_team_locks",
]
