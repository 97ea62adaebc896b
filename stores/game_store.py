from typing import Optional
from abc import ABC, abstractmethod

from models import (
    Game,
    Team,
    Tile,
    Registration,
    BoardRevision,
    ProofRecord,
)


# =========================
# GameStore Interface
# =========================

class GameStore(ABC):
    """
    The GameStore is the sole authority over game state.

    Invariants:
    - Every mutation is one transaction and appends one domain event
    - A team's position and gating pair are only written by `apply_roll`
      and `record_proof`, both as conditional writes
    - `pending_tile` is set iff `awaiting_proof`, and then equals `position`
    - Readers return None (or an empty collection) when a row does not exist
    """

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------

    @abstractmethod
    async def create_game(
        self,
        game_id: str,
        *,
        clan_name: str,
        display_name: str,
        board_size: int,
        host_password_hash: bytes,
        join_code_hash: str,
        board_url: str | None = None,
        starts_at: str | None = None,
        ends_at: str | None = None,
        seed_tiles: list[Tile] | None = None,
    ) -> Game:
        """Create a game row plus optional tile overrides.

        Raises:
            UnexpectedResult: If the id collides with an existing game.
        """

    @abstractmethod
    async def get_game(self, game_id: str) -> Optional[Game]:
        """Return the game, or None if it does not exist."""

    @abstractmethod
    async def list_clan_games(self, clan_name: str) -> list[Game]:
        """Games of a clan (case-insensitive), newest first."""

    @abstractmethod
    async def find_game_by_join_code(self, clan_name: str, join_code_hash: str) -> Optional[Game]:
        """Newest game of the clan whose join code hashes to `join_code_hash`."""

    @abstractmethod
    async def finish_game(self, game_id: str) -> Game:
        """Mark a game finished. Finishing twice is a no-op.

        Raises:
            GameNotFound: If the game does not exist.
        """

    # -------------------------------------------------
    # Teams & registrations
    # -------------------------------------------------

    @abstractmethod
    async def create_team(
        self,
        game_id: str,
        team_id: str,
        *,
        name: str,
        color: str,
        password_hash: bytes,
    ) -> Team:
        """Create a team with the next free index (max + 1, starting at 0).

        Raises:
            GameNotFound: If the game does not exist.
            TeamAlreadyExists: If the game already has a team with this name.
        """

    @abstractmethod
    async def get_team(self, game_id: str, team_id: str) -> Optional[Team]:
        """Return a team of the game, or None."""

    @abstractmethod
    async def get_team_by_name(self, game_id: str, name: str) -> Optional[Team]:
        """Return a team by its exact (trimmed) name, or None."""

    @abstractmethod
    async def list_teams(self, game_id: str) -> list[Team]:
        """All teams of a game ordered by index, read in one query."""

    @abstractmethod
    async def list_members(self, game_id: str) -> dict[str, list[str]]:
        """Participant names per team id, in registration order."""

    @abstractmethod
    async def find_team_by_rsn(self, game_id: str, rsn: str) -> Optional[Team]:
        """The team a participant (case-insensitive) is registered to, or None."""

    @abstractmethod
    async def register(
        self,
        game_id: str,
        team_id: str,
        *,
        rsn: str,
        session_token: str,
        token_jti: str,
        expires_at: str,
    ) -> Registration:
        """Register a participant and issue their session token atomically.

        Raises:
            GameNotFound: If the game does not exist.
            GameInactive: If the game is not active.
            TeamNotFound: If the team is not part of the game.
            ParticipantAlreadyRegistered: If the name is taken in this game.
        """

    @abstractmethod
    async def registration_matches(
        self,
        game_id: str,
        team_id: str,
        rsn: str,
        token_jti: str,
    ) -> bool:
        """True if the registration behind a session still exists unchanged."""

    # -------------------------------------------------
    # Tiles, rolls & proofs
    # -------------------------------------------------

    @abstractmethod
    async def get_tile_override(self, game_id: str, tile_index: int) -> Optional[Tile]:
        """The configured tile at an index, or None to use the default rule."""

    @abstractmethod
    async def list_tile_overrides(self, game_id: str) -> dict[int, Tile]:
        """All configured tiles of a game keyed by index."""

    @abstractmethod
    async def apply_roll(
        self,
        game_id: str,
        team_id: str,
        *,
        from_position: int,
        to_position: int,
        awaiting_proof: bool,
        event: dict,
    ) -> Team:
        """Move a team and set its gating pair in one conditional write.

        The write only applies if the team is still at `from_position` and
        not awaiting proof.

        Raises:
            ConcurrentUpdate: If the team changed since it was read.
        """

    @abstractmethod
    async def record_proof(
        self,
        game_id: str,
        team_id: str,
        proof_id: str,
        *,
        tile_index: int,
        rsn: str,
        url: str,
    ) -> ProofRecord:
        """Insert a proof and clear the team's gating pair in one transaction.

        Raises:
            NoProofExpected: If the team is no longer gated on `tile_index`.
            ProofAlreadyRecorded: If the team already proved this tile.
        """

    @abstractmethod
    async def list_proofs(self, game_id: str) -> list[ProofRecord]:
        """Accepted proofs of a game, oldest first."""

    # -------------------------------------------------
    # Board
    # -------------------------------------------------

    @abstractmethod
    async def get_board(self, game_id: str) -> Optional[BoardRevision]:
        """The stored board revision, or None if none was saved yet."""

    @abstractmethod
    async def save_board(
        self,
        game_id: str,
        *,
        document: dict,
        schema_version: int,
        overrides: list[Tile],
    ) -> BoardRevision:
        """Store a board document and replace all tile overrides of the game.

        Raises:
            GameNotFound: If the game does not exist.
            BoardLocked: If the stored revision is locked.
        """

    @abstractmethod
    async def set_board_locked(
        self,
        game_id: str,
        locked: bool,
        *,
        default_document: dict,
        schema_version: int,
    ) -> BoardRevision:
        """Toggle the lock flag, first storing `default_document` if no revision exists.

        Raises:
            GameNotFound: If the game does not exist.
        """

    @abstractmethod
    async def get_revision(self, game_id: str) -> tuple[int, Optional[str]]:
        """(highest event seq, board updated_at) for a game."""
