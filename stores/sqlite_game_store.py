import asyncio
import json
import logging
import sqlite3
from contextlib import asynccontextmanager

import aiosqlite

from db import connect
from models import Game, Team, Tile, Registration, BoardRevision, ProofRecord
from utils.time import now_utc, to_iso
from utils.validation import name_key
from utils.passwords import new_id
from .exceptions import (
    GameNotFound,
    TeamNotFound,
    TeamAlreadyExists,
    ParticipantAlreadyRegistered,
    ProofAlreadyRecorded,
    BoardLocked,
    ConcurrentUpdate,
    GameInactive,
    NoProofExpected,
    UnexpectedResult,
)
from .game_store import GameStore
from .sqlite_auth_store import insert_session_token

logger = logging.getLogger(__name__)


_GAME_COLUMNS = """
    game_id, clan_name, display_name, board_size, status, turn_team_index,
    board_url, starts_at, ends_at, created_at
"""

_TEAM_COLUMNS = """
    team_id, game_id, team_index, name, color, position, awaiting_proof, pending_tile
"""


def _game_from_row(row) -> Game:
    return {
        "game_id": row["game_id"],
        "clan_name": row["clan_name"],
        "display_name": row["display_name"],
        "board_size": row["board_size"],
        "status": row["status"],
        "turn_team_index": row["turn_team_index"],
        "board_url": row["board_url"],
        "starts_at": row["starts_at"],
        "ends_at": row["ends_at"],
        "created_at": row["created_at"],
    }


def _team_from_row(row) -> Team:
    return {
        "team_id": row["team_id"],
        "game_id": row["game_id"],
        "index": row["team_index"],
        "name": row["name"],
        "color": row["color"],
        "position": row["position"],
        "awaiting_proof": bool(row["awaiting_proof"]),
        "pending_tile": row["pending_tile"],
    }


def _tile_from_row(row) -> Tile:
    return {
        "index": row["tile_index"],
        "kind": row["kind"],
        "title": row["title"],
        "description": row["description"],
        "jump_to": row["jump_to"],
    }


def _proof_from_row(row) -> ProofRecord:
    return {
        "proof_id": row["proof_id"],
        "game_id": row["game_id"],
        "team_id": row["team_id"],
        "tile_index": row["tile_index"],
        "rsn": row["rsn"],
        "url": row["url"],
        "created_at": row["created_at"],
    }


def _board_from_row(game_id: str, row) -> BoardRevision:
    return {
        "game_id": game_id,
        "document": json.loads(row["board_json"]),
        "schema_version": row["schema_version"],
        "locked": bool(row["locked"]),
        "updated_at": row["updated_at"],
    }


class SqliteGameStore(GameStore):

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.db: aiosqlite.Connection = None
        # one connection per store; transactions on it must not interleave
        self._lock = asyncio.Lock()
        logger.info(f"[STORE] SqliteGameStore initialized with db_path: {db_path}")

    async def init(self):
        """Initialize database connection. Call this after construction."""
        self.db = await connect(
            self.db_path,
            # Switch to DELETE journal mode instead of WAL to avoid Docker volume locking issues
            pragmas={"journal_mode": "DELETE"},
            timeout=30.0,
            isolation_level=None,  # Disable implicit transactions, manage explicitly
        )
        logger.info(f"[STORE] Database connection established to {self.db_path}")

        # Verify tables exist
        async with self.db.execute("SELECT name FROM sqlite_master WHERE type='table'") as cursor:
            tables = await cursor.fetchall()
            if not tables:
                logger.error("[STORE] No tables found! Database may be empty or corrupted")
                raise RuntimeError(f"Database at {self.db_path} has no tables - initialization may have failed")
            logger.info(f"[STORE] Database has {len(tables)} tables: {[t[0] for t in tables]}")

    async def close(self):
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None

    # -------------------------------------------------
    # Helpers
    # -------------------------------------------------

    @asynccontextmanager
    async def _transaction(self):
        """BEGIN IMMEDIATE ... COMMIT, rolled back if the body raises."""
        async with self._lock:
            await self.db.execute("BEGIN IMMEDIATE")
            try:
                yield self.db
            except BaseException:
                await self.db.rollback()
                raise
            await self.db.commit()

    async def _fetchone(self, sql: str, params: tuple = ()):
        async with self._lock:
            cur = await self.db.execute(sql, params)
            return await cur.fetchone()

    async def _fetchall(self, sql: str, params: tuple = ()):
        async with self._lock:
            cur = await self.db.execute(sql, params)
            return await cur.fetchall()

    @staticmethod
    async def _append_event(conn: aiosqlite.Connection, game_id: str, event_type: str, payload: dict) -> int:
        cur = await conn.execute(
            "SELECT COALESCE(MAX(seq), 0) + 1 FROM events WHERE game_id = ?",
            (game_id,),
        )
        seq = (await cur.fetchone())[0]
        await conn.execute(
            """
            INSERT INTO events (game_id, seq, type, payload_json, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (game_id, seq, event_type, json.dumps(payload), to_iso(now_utc())),
        )
        return seq

    @staticmethod
    async def _require_game(conn: aiosqlite.Connection, game_id: str):
        cur = await conn.execute(
            f"SELECT {_GAME_COLUMNS} FROM games WHERE game_id = ?",
            (game_id,),
        )
        row = await cur.fetchone()
        if row is None:
            raise GameNotFound(game_id)
        return row

    @staticmethod
    async def _insert_overrides(conn: aiosqlite.Connection, game_id: str, tiles: list[Tile]) -> None:
        for t in tiles:
            await conn.execute(
                """
                INSERT INTO tile_overrides (game_id, tile_index, kind, title, description, jump_to)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    game_id,
                    t["index"],
                    t["kind"],
                    t.get("title"),
                    t.get("description"),
                    t.get("jump_to") if t["kind"] == "jump" else None,
                ),
            )

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------

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
        # Raises: UnexpectedResult
        logger.info(f"[STORE] Creating game: {game_id} for clan {clan_name!r}")
        created_at = to_iso(now_utc())
        try:
            async with self._transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO games (
                        game_id, clan_name, display_name, host_password_hash, board_size,
                        status, turn_team_index, board_url, starts_at, ends_at,
                        join_code_hash, created_at
                    ) VALUES (?, ?, ?, ?, ?, 'active', 0, ?, ?, ?, ?, ?)
                    """,
                    (
                        game_id, clan_name, display_name, host_password_hash, board_size,
                        board_url, starts_at, ends_at, join_code_hash, created_at,
                    ),
                )
                if seed_tiles:
                    await self._insert_overrides(conn, game_id, seed_tiles)
                await self._append_event(
                    conn, game_id, "game_created",
                    {"clanName": clan_name, "boardSize": board_size, "tiles": len(seed_tiles or [])},
                )
                row = await self._require_game(conn, game_id)
        except sqlite3.IntegrityError as exc:
            raise UnexpectedResult("Unexpected integrity error during game creation") from exc
        return _game_from_row(row)

    async def get_game(self, game_id: str) -> Game | None:
        row = await self._fetchone(
            f"SELECT {_GAME_COLUMNS} FROM games WHERE game_id = ?",
            (game_id,),
        )
        return _game_from_row(row) if row else None

    async def list_clan_games(self, clan_name: str) -> list[Game]:
        rows = await self._fetchall(
            f"""
            SELECT {_GAME_COLUMNS} FROM games
            WHERE clan_name = ? COLLATE NOCASE
            ORDER BY created_at DESC, rowid DESC
            """,
            (clan_name,),
        )
        return [_game_from_row(r) for r in rows]

    async def find_game_by_join_code(self, clan_name: str, join_code_hash: str) -> Game | None:
        row = await self._fetchone(
            f"""
            SELECT {_GAME_COLUMNS} FROM games
            WHERE clan_name = ? COLLATE NOCASE AND join_code_hash = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
            (clan_name, join_code_hash),
        )
        return _game_from_row(row) if row else None

    async def finish_game(self, game_id: str) -> Game:
        # Raises: GameNotFound
        async with self._transaction() as conn:
            row = await self._require_game(conn, game_id)
            if row["status"] != "finished":
                await conn.execute(
                    "UPDATE games SET status = 'finished' WHERE game_id = ?",
                    (game_id,),
                )
                await self._append_event(conn, game_id, "game_finished", {})
                row = await self._require_game(conn, game_id)
                logger.info(f"[STORE] Game {game_id} finished")
        return _game_from_row(row)

    # -------------------------------------------------
    # Teams & registrations
    # -------------------------------------------------

    async def create_team(
        self,
        game_id: str,
        team_id: str,
        *,
        name: str,
        color: str,
        password_hash: bytes,
    ) -> Team:
        # Raises: GameNotFound, TeamAlreadyExists
        try:
            async with self._transaction() as conn:
                await self._require_game(conn, game_id)

                cur = await conn.execute(
                    "SELECT 1 FROM teams WHERE game_id = ? AND name = ?",
                    (game_id, name),
                )
                if await cur.fetchone() is not None:
                    raise TeamAlreadyExists(f"Team {name!r} already exists in this game")

                cur = await conn.execute(
                    "SELECT COALESCE(MAX(team_index), -1) + 1 FROM teams WHERE game_id = ?",
                    (game_id,),
                )
                index = (await cur.fetchone())[0]

                await conn.execute(
                    """
                    INSERT INTO teams (team_id, game_id, team_index, name, color, password_hash,
                                       position, awaiting_proof, pending_tile)
                    VALUES (?, ?, ?, ?, ?, ?, 0, 0, NULL)
                    """,
                    (team_id, game_id, index, name, color, password_hash),
                )
                await self._append_event(
                    conn, game_id, "team_created",
                    {"teamId": team_id, "name": name, "index": index},
                )
                cur = await conn.execute(
                    f"SELECT {_TEAM_COLUMNS} FROM teams WHERE team_id = ?",
                    (team_id,),
                )
                row = await cur.fetchone()
        except sqlite3.IntegrityError as exc:
            # another process inserted the same name between our check and insert
            raise TeamAlreadyExists(f"Team {name!r} already exists in this game") from exc
        logger.info(f"[STORE] Team {team_id} ({name!r}) created in game {game_id} at index {index}")
        return _team_from_row(row)

    async def get_team(self, game_id: str, team_id: str) -> Team | None:
        row = await self._fetchone(
            f"SELECT {_TEAM_COLUMNS} FROM teams WHERE game_id = ? AND team_id = ?",
            (game_id, team_id),
        )
        return _team_from_row(row) if row else None

    async def get_team_by_name(self, game_id: str, name: str) -> Team | None:
        row = await self._fetchone(
            f"SELECT {_TEAM_COLUMNS} FROM teams WHERE game_id = ? AND name = ?",
            (game_id, name),
        )
        return _team_from_row(row) if row else None

    async def list_teams(self, game_id: str) -> list[Team]:
        rows = await self._fetchall(
            f"SELECT {_TEAM_COLUMNS} FROM teams WHERE game_id = ? ORDER BY team_index ASC",
            (game_id,),
        )
        return [_team_from_row(r) for r in rows]

    async def list_members(self, game_id: str) -> dict[str, list[str]]:
        rows = await self._fetchall(
            """
            SELECT team_id, rsn FROM registrations
            WHERE game_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (game_id,),
        )
        members: dict[str, list[str]] = {}
        for r in rows:
            members.setdefault(r["team_id"], []).append(r["rsn"])
        return members

    async def find_team_by_rsn(self, game_id: str, rsn: str) -> Team | None:
        row = await self._fetchone(
            """
            SELECT t.team_id, t.game_id, t.team_index, t.name, t.color,
                   t.position, t.awaiting_proof, t.pending_tile
            FROM registrations r
            JOIN teams t ON t.team_id = r.team_id AND t.game_id = r.game_id
            WHERE r.game_id = ? AND r.rsn_key = ?
            LIMIT 1
            """,
            (game_id, name_key(rsn)),
        )
        return _team_from_row(row) if row else None

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
        # Raises: GameNotFound, GameInactive, TeamNotFound, ParticipantAlreadyRegistered
        registration_id = new_id("reg")
        created_at = to_iso(now_utc())
        rsn_key = name_key(rsn)
        try:
            async with self._transaction() as conn:
                game = await self._require_game(conn, game_id)
                if game["status"] != "active":
                    raise GameInactive("Game inactive")

                cur = await conn.execute(
                    "SELECT 1 FROM teams WHERE game_id = ? AND team_id = ?",
                    (game_id, team_id),
                )
                if await cur.fetchone() is None:
                    raise TeamNotFound(team_id)

                cur = await conn.execute(
                    "SELECT 1 FROM registrations WHERE game_id = ? AND rsn_key = ?",
                    (game_id, rsn_key),
                )
                if await cur.fetchone() is not None:
                    raise ParticipantAlreadyRegistered(f"{rsn!r} is already registered in this game")

                await conn.execute(
                    """
                    INSERT INTO registrations (registration_id, game_id, team_id, rsn, rsn_key, token_jti, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (registration_id, game_id, team_id, rsn, rsn_key, token_jti, created_at),
                )
                # Use commit=False so the token is part of the same transaction
                await insert_session_token(
                    conn,
                    session_token,
                    game_id=game_id,
                    team_id=team_id,
                    rsn=rsn,
                    token_jti=token_jti,
                    expires_at=expires_at,
                    commit=False,
                )
                await self._append_event(conn, game_id, "registered", {"teamId": team_id, "rsn": rsn})
        except sqlite3.IntegrityError as exc:
            raise ParticipantAlreadyRegistered(f"{rsn!r} is already registered in this game") from exc

        logger.info(f"[STORE] Registered {rsn!r} to team {team_id} in game {game_id}")
        return {
            "registration_id": registration_id,
            "game_id": game_id,
            "team_id": team_id,
            "rsn": rsn,
            "token_jti": token_jti,
            "created_at": created_at,
        }

    async def registration_matches(
        self,
        game_id: str,
        team_id: str,
        rsn: str,
        token_jti: str,
    ) -> bool:
        row = await self._fetchone(
            """
            SELECT 1 FROM registrations
            WHERE game_id = ? AND team_id = ? AND rsn = ? AND token_jti = ?
            LIMIT 1
            """,
            (game_id, team_id, rsn, token_jti),
        )
        return row is not None

    # -------------------------------------------------
    # Tiles, rolls & proofs
    # -------------------------------------------------

    async def get_tile_override(self, game_id: str, tile_index: int) -> Tile | None:
        row = await self._fetchone(
            """
            SELECT tile_index, kind, title, description, jump_to
            FROM tile_overrides WHERE game_id = ? AND tile_index = ?
            """,
            (game_id, tile_index),
        )
        return _tile_from_row(row) if row else None

    async def list_tile_overrides(self, game_id: str) -> dict[int, Tile]:
        rows = await self._fetchall(
            """
            SELECT tile_index, kind, title, description, jump_to
            FROM tile_overrides WHERE game_id = ?
            """,
            (game_id,),
        )
        return {r["tile_index"]: _tile_from_row(r) for r in rows}

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
        # Raises: ConcurrentUpdate
        async with self._transaction() as conn:
            # compare-and-set: only applies if nobody moved or gated the team meanwhile
            cur = await conn.execute(
                """
                UPDATE teams
                SET position = ?, awaiting_proof = ?, pending_tile = ?
                WHERE team_id = ? AND game_id = ? AND position = ? AND awaiting_proof = 0
                """,
                (
                    to_position,
                    1 if awaiting_proof else 0,
                    to_position if awaiting_proof else None,
                    team_id,
                    game_id,
                    from_position,
                ),
            )
            if cur.rowcount != 1:
                raise ConcurrentUpdate(f"Team {team_id} changed while rolling")

            await self._append_event(conn, game_id, "roll", event)
            cur = await conn.execute(
                f"SELECT {_TEAM_COLUMNS} FROM teams WHERE team_id = ?",
                (team_id,),
            )
            row = await cur.fetchone()
        return _team_from_row(row)

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
        # Raises: NoProofExpected, ProofAlreadyRecorded
        created_at = to_iso(now_utc())
        try:
            async with self._transaction() as conn:
                cur = await conn.execute(
                    """
                    SELECT 1 FROM teams
                    WHERE team_id = ? AND game_id = ? AND awaiting_proof = 1 AND pending_tile = ?
                    """,
                    (team_id, game_id, tile_index),
                )
                if await cur.fetchone() is None:
                    raise NoProofExpected("No proof expected")

                cur = await conn.execute(
                    "SELECT 1 FROM proofs WHERE game_id = ? AND team_id = ? AND tile_index = ?",
                    (game_id, team_id, tile_index),
                )
                if await cur.fetchone() is not None:
                    raise ProofAlreadyRecorded(f"Proof for tile {tile_index} was already recorded")

                await conn.execute(
                    """
                    INSERT INTO proofs (proof_id, game_id, team_id, tile_index, rsn, url, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (proof_id, game_id, team_id, tile_index, rsn, url, created_at),
                )
                # unlock rolling
                await conn.execute(
                    """
                    UPDATE teams SET awaiting_proof = 0, pending_tile = NULL
                    WHERE team_id = ? AND game_id = ? AND awaiting_proof = 1 AND pending_tile = ?
                    """,
                    (team_id, game_id, tile_index),
                )
                await self._append_event(
                    conn, game_id, "proof",
                    {"teamId": team_id, "tileIndex": tile_index, "rsn": rsn},
                )
        except sqlite3.IntegrityError as exc:
            raise ProofAlreadyRecorded(f"Proof for tile {tile_index} was already recorded") from exc

        return {
            "proof_id": proof_id,
            "game_id": game_id,
            "team_id": team_id,
            "tile_index": tile_index,
            "rsn": rsn,
            "url": url,
            "created_at": created_at,
        }

    async def list_proofs(self, game_id: str) -> list[ProofRecord]:
        rows = await self._fetchall(
            """
            SELECT proof_id, game_id, team_id, tile_index, rsn, url, created_at
            FROM proofs WHERE game_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (game_id,),
        )
        return [_proof_from_row(r) for r in rows]

    # -------------------------------------------------
    # Board
    # -------------------------------------------------

    async def get_board(self, game_id: str) -> BoardRevision | None:
        row = await self._fetchone(
            "SELECT board_json, schema_version, locked, updated_at FROM game_boards WHERE game_id = ?",
            (game_id,),
        )
        return _board_from_row(game_id, row) if row else None

    async def save_board(
        self,
        game_id: str,
        *,
        document: dict,
        schema_version: int,
        overrides: list[Tile],
    ) -> BoardRevision:
        # Raises: GameNotFound, BoardLocked
        updated_at = to_iso(now_utc())
        async with self._transaction() as conn:
            await self._require_game(conn, game_id)

            # refuse edits if locked
            cur = await conn.execute(
                "SELECT locked FROM game_boards WHERE game_id = ?",
                (game_id,),
            )
            lock_row = await cur.fetchone()
            if lock_row is not None and lock_row["locked"]:
                raise BoardLocked("Board is locked")

            await conn.execute(
                """
                INSERT INTO game_boards (game_id, board_json, schema_version, locked, updated_at)
                VALUES (?, ?, ?, 0, ?)
                ON CONFLICT(game_id) DO UPDATE SET
                    board_json = excluded.board_json,
                    schema_version = excluded.schema_version,
                    updated_at = excluded.updated_at
                """,
                (game_id, json.dumps(document), schema_version, updated_at),
            )
            # rebuild overrides from the board so roll/proof use editor data
            await conn.execute("DELETE FROM tile_overrides WHERE game_id = ?", (game_id,))
            await self._insert_overrides(conn, game_id, overrides)
            await self._append_event(conn, game_id, "board_saved", {"tiles": len(overrides)})

        logger.info(f"[STORE] Board saved for game {game_id} with {len(overrides)} override(s)")
        return {
            "game_id": game_id,
            "document": document,
            "schema_version": schema_version,
            "locked": False,
            "updated_at": updated_at,
        }

    async def set_board_locked(
        self,
        game_id: str,
        locked: bool,
        *,
        default_document: dict,
        schema_version: int,
    ) -> BoardRevision:
        # Raises: GameNotFound
        updated_at = to_iso(now_utc())
        async with self._transaction() as conn:
            await self._require_game(conn, game_id)
            await conn.execute(
                """
                INSERT INTO game_boards (game_id, board_json, schema_version, locked, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(game_id) DO UPDATE SET
                    locked = excluded.locked,
                    updated_at = excluded.updated_at
                """,
                (game_id, json.dumps(default_document), schema_version, 1 if locked else 0, updated_at),
            )
            await self._append_event(conn, game_id, "board_locked" if locked else "board_unlocked", {})
            cur = await conn.execute(
                "SELECT board_json, schema_version, locked, updated_at FROM game_boards WHERE game_id = ?",
                (game_id,),
            )
            row = await cur.fetchone()
        logger.info(f"[STORE] Board for game {game_id} {'locked' if locked else 'unlocked'}")
        return _board_from_row(game_id, row)

    async def get_revision(self, game_id: str) -> tuple[int, str | None]:
        async with self._lock:
            cur = await self.db.execute(
                "SELECT COALESCE(MAX(seq), 0) FROM events WHERE game_id = ?",
                (game_id,),
            )
            max_seq = (await cur.fetchone())[0]
            cur = await self.db.execute(
                "SELECT updated_at FROM game_boards WHERE game_id = ?",
                (game_id,),
            )
            row = await cur.fetchone()
        return max_seq, (row["updated_at"] if row else None)
