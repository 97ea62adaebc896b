"""Proof submission for task tiles."""
import logging
from typing import Optional

from models import ProofRecord, Session
from stores import (
    GameInactive,
    GameNotFound,
    GameStore,
    InvalidCredentials,
    NoProofExpected,
    NotATaskTile,
    ProofTileMismatch,
    TeamNotFound,
)
from utils import new_id
from .tiles import resolve_tile

logger = logging.getLogger(__name__)


def proof_view(proof: ProofRecord) -> dict:
    return {
        "id": proof["proof_id"],
        "teamId": proof["team_id"],
        "tileIndex": proof["tile_index"],
        "rsn": proof["rsn"],
        "url": proof["url"],
        "createdAt": proof["created_at"],
    }


async def submit_proof(
    store: GameStore,
    locks,
    game_id: str,
    session: Session,
    reference: str,
    *,
    tile_index: Optional[int] = None,
) -> dict:
    """Record proof for the team's pending tile and let it roll again.

    There is no schedule check: a pending tile can still be proven after the
    game's end time.

    Raises:
        GameNotFound, GameInactive, InvalidCredentials, TeamNotFound,
        NoProofExpected, ProofTileMismatch, NotATaskTile, ProofAlreadyRecorded
    """
    game = await store.get_game(game_id)
    if game is None:
        raise GameNotFound(game_id)
    if game["status"] != "active":
        raise GameInactive("Game inactive")

    if session["game_id"] != game_id or not await store.registration_matches(
        game_id, session["team_id"], session["rsn"], session["jti"]
    ):
        raise InvalidCredentials("Unauthorized")

    team_id = session["team_id"]
    async with locks.hold(f"team:{team_id}"):
        team = await store.get_team(game_id, team_id)
        if team is None:
            raise TeamNotFound(team_id)
        if not team["awaiting_proof"] or team["pending_tile"] is None:
            raise NoProofExpected("No proof expected")

        pending = team["pending_tile"]
        if tile_index is not None and tile_index != pending:
            raise ProofTileMismatch(f"Proof is for tile {tile_index} but tile {pending} is pending")

        # only task tiles gate; the board may have been edited since the team landed
        tile = resolve_tile(pending, game["board_size"], await store.get_tile_override(game_id, pending))
        if tile["kind"] != "task":
            raise NotATaskTile("Pending tile is not a proof tile")

        proof = await store.record_proof(
            game_id,
            team_id,
            new_id("proof"),
            tile_index=pending,
            rsn=session["rsn"],
            url=reference,
        )

    logger.info(f"Proof recorded for team {team_id} on tile {pending}")
    return {
        "ok": True,
        "proof": proof_view(proof),
        "team": {"id": team["team_id"], "name": team["name"]},
    }


async def list_proofs(store: GameStore, game_id: str) -> dict:
    """Raises: GameNotFound"""
    if await store.get_game(game_id) is None:
        raise GameNotFound(game_id)
    proofs = await store.list_proofs(game_id)
    return {"proofs": [proof_view(p) for p in proofs]}
