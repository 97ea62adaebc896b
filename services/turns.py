"""Roll resolution.

A roll moves a team `die` tiles forward (clamped to the Finish tile),
follows a jump tile at most once, and gates the team behind proof when the
final tile is a task. Expected refusals (inactive game, waiting for proof,
outside the schedule) are returned as results with `rollAllowed: False`;
only missing games/teams raise.
"""
import logging
import secrets
from datetime import datetime
from typing import Callable, Optional

from models import Session, Tile
from stores import GameNotFound, GameStore, InvalidInput, TeamNotFound
from utils import ms_until, now_utc, to_iso
from .tiles import clamp_tile, resolve_tile

logger = logging.getLogger(__name__)

DIE_FACES = 6


def roll_die() -> int:
    """Uniform 1..DIE_FACES from the OS CSPRNG."""
    return secrets.randbelow(DIE_FACES) + 1


def compute_move(
    from_position: int,
    die: int,
    board_size: int,
    tile_at: Callable[[int], Tile],
) -> tuple[int, Optional[dict], Tile]:
    """Return (final position, jump or None, final tile).

    The jump target is never itself followed, even when it is another jump tile.
    """
    to = clamp_tile(from_position + die, board_size)
    jump = None

    landing = tile_at(to)
    if landing["kind"] == "jump" and landing.get("jump_to") is not None:
        target = clamp_tile(landing["jump_to"], board_size)
        jump = {"from": to, "to": target}
        to = target

    return to, jump, tile_at(to)


def _refusal(reason: str, message: str, *, ok: bool = True, **extra) -> dict:
    out = {"ok": ok, "rollAllowed": False, "reason": reason, "message": message}
    out.update(extra)
    return out


async def resolve_roll(
    store: GameStore,
    locks,
    game_id: str,
    session: Session,
    *,
    die_value: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Roll for the session's team.

    Raises:
        InvalidInput: die_value outside 1..DIE_FACES
        GameNotFound: the game does not exist
        TeamNotFound: the session's team no longer exists
        ConcurrentUpdate: the team changed under us (only possible across processes)
    """
    if die_value is not None and not 1 <= die_value <= DIE_FACES:
        raise InvalidInput(f"die_value must be within 1..{DIE_FACES}", field="dieValue")

    game = await store.get_game(game_id)
    if game is None:
        raise GameNotFound(game_id)
    if game["status"] != "active":
        return _refusal("inactive", "Game inactive", ok=False, status=game["status"])

    if session["game_id"] != game_id or not await store.registration_matches(
        game_id, session["team_id"], session["rsn"], session["jti"]
    ):
        return _refusal("unauthorized", "Unauthorized", ok=False)

    team_id = session["team_id"]
    async with locks.hold(f"team:{team_id}"):
        team = await store.get_team(game_id, team_id)
        if team is None:
            raise TeamNotFound(team_id)
        team_brief = {"id": team["team_id"], "name": team["name"], "position": team["position"]}

        # cannot roll while awaiting proof
        if team["awaiting_proof"]:
            return _refusal(
                "awaiting_proof",
                "Awaiting proof for the current tile.",
                awaitingProof=True,
                pendingTile=team["pending_tile"],
                team=team_brief,
            )

        now = now or now_utc()
        server_time = to_iso(now)
        schedule = {"serverTime": server_time, "startsAt": game["starts_at"], "endsAt": game["ends_at"]}

        until_start = ms_until(game["starts_at"], now)
        if until_start is not None and until_start > 0:
            return _refusal(
                "not_started",
                "Game has not started yet.",
                awaitingProof=False,
                team=team_brief,
                msUntilStart=until_start,
                **schedule,
            )

        # the game is reported as ended but never finished automatically
        until_end = ms_until(game["ends_at"], now)
        if until_end is not None and until_end <= 0:
            return _refusal(
                "ended",
                "Game has ended.",
                awaitingProof=False,
                team=team_brief,
                msUntilEnd=until_end,
                **schedule,
            )

        overrides = await store.list_tile_overrides(game_id)
        board_size = game["board_size"]

        def tile_at(index: int) -> Tile:
            return resolve_tile(index, board_size, overrides.get(index))

        roll = die_value if die_value is not None else roll_die()
        from_position = team["position"]
        to, jump, dest = compute_move(from_position, roll, board_size, tile_at)
        needs_proof = dest["kind"] == "task"

        updated = await store.apply_roll(
            game_id,
            team_id,
            from_position=from_position,
            to_position=to,
            awaiting_proof=needs_proof,
            event={"teamId": team_id, "roll": roll, "from": from_position, "to": to, "jump": jump},
        )

    logger.info(f"Team {team_id} rolled {roll}: {from_position} -> {to}" + (f" (jump {jump['from']} -> {jump['to']})" if jump else ""))
    return {
        "ok": True,
        "rollAllowed": True,
        "reason": "rolled",
        "roll": roll,
        "from": from_position,
        "to": to,
        "jump": jump,
        "awaitingProof": updated["awaiting_proof"],
        "pendingTile": updated["pending_tile"],
        "team": {"id": updated["team_id"], "name": updated["name"], "position": updated["position"]},
        **schedule,
    }
