# Abstractions
from .game_store import GameStore
from .auth_store import AuthStore

# Exceptions
from .exceptions import (
    StoreError,
    UnexpectedResult,
    InvalidInput,
    AuthFailure,
    EntityNotFound,
    Conflict,
    InvalidState,
    InvalidSchedule,
    InvalidBoard,
    InvalidName,
    MissingCredentials,
    InvalidCredentials,
    SessionNotFound,
    GameNotFound,
    TeamNotFound,
    TeamAlreadyExists,
    ParticipantAlreadyRegistered,
    ProofAlreadyRecorded,
    BoardLocked,
    ConcurrentUpdate,
    GameInactive,
    NoProofExpected,
    NotATaskTile,
    ProofTileMismatch,
)

# Concrete implementations are private; only abstract interfaces are exported.
from .sqlite_game_store import SqliteGameStore as _SqliteGameStore
from .sqlite_auth_store import SqliteAuthStore as _SqliteAuthStore

__all__ = [
    # Abstractions
    "GameStore",
    "AuthStore",
    # Exceptions
    "StoreError",
    "UnexpectedResult",
    "InvalidInput",
    "AuthFailure",
    "EntityNotFound",
    "Conflict",
    "InvalidState",
    "InvalidSchedule",
    "InvalidBoard",
    "InvalidName",
    "MissingCredentials",
    "InvalidCredentials",
    "SessionNotFound",
    "GameNotFound",
    "TeamNotFound",
    "TeamAlreadyExists",
    "ParticipantAlreadyRegistered",
    "ProofAlreadyRecorded",
    "BoardLocked",
    "ConcurrentUpdate",
    "GameInactive",
    "NoProofExpected",
    "NotATaskTile",
    "ProofTileMismatch",
    # Runtime
    "init_stores",
    "close_stores",
    "open_stores",
    "get_game_store",
    "get_auth_store",
]


# Runtime singletons and initialization helpers
from typing import Optional

# Use abstract interfaces for typing; actual instances are _SqliteGameStore/_SqliteAuthStore
game_store: Optional[GameStore] = None
auth_store: Optional[AuthStore] = None


async def open_stores(db_path: str) -> tuple[GameStore, AuthStore]:
    """Open a fresh (game, auth) store pair on `db_path` without touching the singletons."""
    gs = _SqliteGameStore(db_path)
    await gs.init()
    auth = _SqliteAuthStore(db_path)
    await auth.init()
    return gs, auth


async def init_stores(db_path: str) -> None:
    """Initialize module-level store singletons for this process.

    Safe to call more than once; later calls are no-ops until `close_stores`.
    """
    global game_store, auth_store

    if game_store is not None and auth_store is not None:
        return
    game_store, auth_store = await open_stores(db_path)


async def close_stores() -> None:
    """Close the singletons' connections and forget them."""
    global game_store, auth_store

    if game_store is not None:
        await game_store.close()
    if auth_store is not None:
        await auth_store.close()
    game_store = None
    auth_store = None


def get_game_store() -> GameStore:
    """FastAPI dependency returning the game store."""
    if game_store is None:
        raise RuntimeError("Game store is not initialized")
    return game_store


def get_auth_store() -> AuthStore:
    """FastAPI dependency returning the auth store."""
    if auth_store is None:
        raise RuntimeError("Auth store is not initialized")
    return auth_store
