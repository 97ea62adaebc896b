import asyncio
import logging
import sqlite3

import aiosqlite

from db import connect
from models import Session
from utils.time import now_utc, to_iso, parse_iso
from .auth_store import AuthStore
from .exceptions import UnexpectedResult

logger = logging.getLogger(__name__)


async def insert_session_token(
    conn: aiosqlite.Connection,
    session_token: str,
    *,
    game_id: str,
    team_id: str,
    rsn: str,
    token_jti: str,
    expires_at: str,
    commit: bool = True,
):
    """Insert a session token using the provided DB connection.

    Raises `UnexpectedResult` if the token already exists (unique constraint).
    If `commit` is False, the caller manages transaction/commit.
    """
    try:
        await conn.execute(
            """
            INSERT INTO session_tokens (session_token, game_id, team_id, rsn, token_jti, expires_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (session_token, game_id, team_id, rsn, token_jti, expires_at),
        )
        if commit:
            await conn.commit()
    except sqlite3.IntegrityError as exc:
        # tokens are 256 bits of randomness, a collision means something else is wrong
        raise UnexpectedResult("Session token collision") from exc


class SqliteAuthStore(AuthStore):
    """SQLite-based implementation of AuthStore."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.db: aiosqlite.Connection = None
        self._lock = asyncio.Lock()

    async def init(self):
        """Initialize database connection. Call this after construction."""
        self.db = await connect(
            self.db_path,
            pragmas={"journal_mode": "DELETE"},
            timeout=30.0,
            isolation_level=None,
        )
        logger.info(f"[STORE] SqliteAuthStore connected to {self.db_path}")

    async def close(self):
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None

    # -------------------------------------------------
    # Password lookup
    # -------------------------------------------------

    async def get_host_password_hash(self, game_id: str) -> bytes | None:
        async with self._lock:
            cur = await self.db.execute(
                "SELECT host_password_hash FROM games WHERE game_id = ?",
                (game_id,),
            )
            row = await cur.fetchone()
        return bytes(row[0]) if row else None

    async def get_team_password_hash(self, game_id: str, team_id: str) -> bytes | None:
        async with self._lock:
            cur = await self.db.execute(
                "SELECT password_hash FROM teams WHERE game_id = ? AND team_id = ?",
                (game_id, team_id),
            )
            row = await cur.fetchone()
        return bytes(row[0]) if row else None

    # -------------------------------------------------
    # Session management
    # -------------------------------------------------

    async def validate_session_token(
        self,
        session_token: str,
    ) -> Session | None:
        """Validate and return session info if valid.

        Returns {game_id, team_id, rsn, jti} or None if expired/not found.
        Automatically cleans up expired tokens.
        """
        async with self._lock:
            cur = await self.db.execute(
                """
                SELECT game_id, team_id, rsn, token_jti, expires_at
                FROM session_tokens
                WHERE session_token = ?
                """,
                (session_token,),
            )
            row = await cur.fetchone()
            if not row:
                return None

            expires_dt = parse_iso(row["expires_at"])
            if expires_dt is None or expires_dt <= now_utc():
                # Clean up expired token
                await self.db.execute(
                    "DELETE FROM session_tokens WHERE session_token = ?",
                    (session_token,),
                )
                return None

        return {
            "game_id": row["game_id"],
            "team_id": row["team_id"],
            "rsn": row["rsn"],
            "jti": row["token_jti"],
        }

    async def delete_expired_sessions(self) -> int:
        """Cleanup task. Deletes expired sessions, returns count."""
        async with self._lock:
            cur = await self.db.execute(
                "DELETE FROM session_tokens WHERE expires_at <= ?",
                (to_iso(now_utc()),),
            )
        if cur.rowcount:
            logger.info(f"[STORE] Purged {cur.rowcount} expired session(s)")
        return cur.rowcount
