from typing import Optional
from abc import ABC, abstractmethod

from models import Session


# =========================
# AuthStore Interface
# =========================

class AuthStore(ABC):
    """
    The AuthStore is the sole authority over credentials and session state.

    Invariants:
    - Passwords are stored as bcrypt hashes on their owning rows
    - Session tokens are opaque, unique and time-limited
    - Session tokens are issued together with the registration they belong to
    """

    # -------------------------------------------------
    # Password lookup
    # -------------------------------------------------

    @abstractmethod
    async def get_host_password_hash(self, game_id: str) -> Optional[bytes]:
        """Return the host password hash of a game, or None if the game does not exist."""

    @abstractmethod
    async def get_team_password_hash(self, game_id: str, team_id: str) -> Optional[bytes]:
        """Return the password hash of a team, or None if the team does not exist."""

    # -------------------------------------------------
    # Session management
    # -------------------------------------------------

    @abstractmethod
    async def validate_session_token(
        self,
        session_token: str,
    ) -> Optional[Session]:
        """Return {game_id, team_id, rsn, jti} for a live token, else None.

        Expired tokens are deleted when they are looked up.
        """

    @abstractmethod
    async def delete_expired_sessions(self) -> int:
        """Cleanup task. Deletes expired sessions, returns count."""
