"""
Shared exception definitions for stores and the game engine.

Hierarchy:
- StoreError (base for everything raised by stores and services)
  - InvalidInput    -> request data breaks a rule (400)
  - AuthFailure     -> missing or wrong credentials (401/403)
  - EntityNotFound  -> game/team does not exist (404)
  - Conflict        -> uniqueness or lock violations (409)
  - InvalidState    -> the game/team is not in a state that allows the action (400)
  - UnexpectedResult

Every exception carries a short machine-readable `reason` used in API
responses, and a `retryable` flag for callers that can retry.
"""


# =========================
# Base exception
# =========================

class StoreError(Exception):
    """Base exception for all store-related errors."""
    retryable: bool = True
    reason: str = "error"


class UnexpectedResult(StoreError):
    retryable = True
    reason = "unexpected"
    #aka, the "how the heck did this happen" exception, such as scenarios that can only occur by breaking ACID


# =========================
# Categories
# =========================

class InvalidInput(StoreError):
    retryable = False
    reason = "invalid_input"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class AuthFailure(StoreError):
    retryable = False
    reason = "unauthorized"


class EntityNotFound(StoreError):
    retryable = False
    reason = "not_found"


class Conflict(StoreError):
    retryable = False
    reason = "conflict"


class InvalidState(StoreError):
    retryable = False
    reason = "invalid_state"


# =========================
# Validation
# =========================

class InvalidSchedule(InvalidInput):
    reason = "invalid_schedule"


class InvalidBoard(InvalidInput):
    reason = "invalid_board"


class InvalidName(InvalidInput):
    reason = "invalid_name"


# =========================
# Authentication
# =========================

class MissingCredentials(AuthFailure):
    reason = "missing_credentials"


class InvalidCredentials(AuthFailure):
    reason = "invalid_credentials"


class SessionNotFound(MissingCredentials):
    reason = "invalid_session"


# =========================
# Lookups
# =========================

class GameNotFound(EntityNotFound):
    reason = "game_not_found"


class TeamNotFound(EntityNotFound):
    reason = "team_not_found"


# =========================
# Conflicts
# =========================

class TeamAlreadyExists(Conflict):
    reason = "duplicate_team"


class ParticipantAlreadyRegistered(Conflict):
    reason = "duplicate_participant"


class ProofAlreadyRecorded(Conflict):
    reason = "duplicate_proof"


class BoardLocked(Conflict):
    reason = "locked"


class ConcurrentUpdate(Conflict):
    """The row changed between the read and the conditional write."""
    retryable = True
    reason = "concurrent_update"


# =========================
# Game state
# =========================

class GameInactive(InvalidState):
    reason = "inactive"


class NoProofExpected(InvalidState):
    reason = "no_proof_expected"


class NotATaskTile(InvalidState):
    reason = "not_a_task_tile"


class ProofTileMismatch(InvalidState):
    reason = "tile_mismatch"
