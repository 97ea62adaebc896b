"""Read views: full spectator state and the compact overlay.

Projections take no team locks. Each team's position and gating pair come
from the same row of a single query, so a view is never torn between a
position and the flags of another roll.
"""
from datetime import datetime
from typing import Optional

from models import Game, Phase
from stores import GameStore
from utils import epoch_ms, now_utc, parse_iso, to_iso
from .registry import game_view
from .tiles import resolve_tile, tile_images, tile_view

MISSING_ETAG = '"missing"'


def phase_of(game: Optional[Game], now: datetime) -> Phase:
    """prestart / running / ended from status and schedule; an unknown game is ended."""
    if game is None or game["status"] == "finished":
        return "ended"
    starts = parse_iso(game["starts_at"])
    ends = parse_iso(game["ends_at"])
    if starts is not None and now < starts:
        return "prestart"
    if ends is not None and now >= ends:
        return "ended"
    return "running"


def revision_of(max_seq: int, board_updated_at: Optional[str]) -> int:
    """Monotonic display counter: max(event seq, board updatedAt in epoch ms).

    Once a board revision exists its timestamp dominates, so rolls and proofs
    usually leave this value unchanged. Clients must compare the `ETag`
    (see `etag_of`), not `revision`, to detect that the view changed.
    """
    return max(max_seq, epoch_ms(board_updated_at))


def etag_of(max_seq: int, board_updated_at: Optional[str]) -> str:
    """Changes on every event and every board save or lock toggle."""
    return f'"{max_seq}:{board_updated_at or ""}"'


async def full_state(store: GameStore, game_id: str, *, now: Optional[datetime] = None) -> dict:
    """Everything a spectator page needs; `game` is None for unknown games."""
    now = now or now_utc()
    game = await store.get_game(game_id)
    if game is None:
        return {"serverTime": to_iso(now), "game": None, "teams": []}

    board_size = game["board_size"]
    overrides = await store.list_tile_overrides(game_id)
    members = await store.list_members(game_id)
    teams = []
    for t in await store.list_teams(game_id):
        position = t["position"]
        active_index = t["pending_tile"] if t["pending_tile"] is not None else position
        teams.append({
            "id": t["team_id"],
            "index": t["index"],
            "name": t["name"],
            "color": t["color"],
            "position": position,
            "awaitingProof": t["awaiting_proof"],
            "pendingTile": t["pending_tile"],
            "members": members.get(t["team_id"], []),
            "positionTile": tile_view(resolve_tile(position, board_size, overrides.get(position))),
            "activeTile": tile_view(resolve_tile(active_index, board_size, overrides.get(active_index))),
        })

    return {
        "serverTime": to_iso(now),
        "game": {**game_view(game), "phase": phase_of(game, now), "turnTeamIndex": game["turn_team_index"]},
        "teams": teams,
    }


def _missing_overlay(now: datetime) -> dict:
    return {
        "revision": 0,
        "serverTime": to_iso(now),
        "startTime": None,
        "endTime": None,
        "phase": "ended",
        "team": None,
        "tile": {"tileIndex": 0, "kind": "empty", "title": "Start", "description": "", "imageUrl": "", "imageCacheKey": ""},
        "flags": {"awaitingProof": False, "canRoll": False},
    }


async def overlay(
    store: GameStore,
    game_id: str,
    rsn: str = "",
    *,
    if_none_match: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[Optional[dict], str]:
    """Compact per-participant view and its validator.

    Returns `(None, etag)` when `if_none_match` already carries the current
    validator. Unknown games always get a placeholder body and `"missing"`.
    """
    now = now or now_utc()
    game = await store.get_game(game_id)
    if game is None:
        return _missing_overlay(now), MISSING_ETAG

    max_seq, board_updated_at = await store.get_revision(game_id)
    etag = etag_of(max_seq, board_updated_at)
    if if_none_match and if_none_match.strip() == etag:
        return None, etag

    phase = phase_of(game, now)
    rsn = (rsn or "").strip()
    team = await store.find_team_by_rsn(game_id, rsn) if rsn else None

    # without a team, show tile 0
    if team is None:
        active_index = 0
    else:
        active_index = team["pending_tile"] if team["pending_tile"] is not None else team["position"]
    tile = resolve_tile(active_index, game["board_size"], await store.get_tile_override(game_id, active_index))

    board = await store.get_board(game_id)
    image = tile_images(board["document"] if board else None).get(active_index, {})

    awaiting_proof = bool(team and team["awaiting_proof"])
    can_roll = (
        team is not None
        and not awaiting_proof
        and phase == "running"
        and game["status"] == "active"
        and team["index"] == game["turn_team_index"]
    )

    body = {
        "revision": revision_of(max_seq, board_updated_at),
        "serverTime": to_iso(now),
        "startTime": game["starts_at"],
        "endTime": game["ends_at"],
        "phase": phase,
        "team": {"name": team["name"], "position": team["position"]} if team else None,
        "tile": {
            "tileIndex": active_index,
            "kind": tile["kind"],
            "title": tile.get("title") or "",
            "description": tile.get("description") or "",
            "imageUrl": image.get("imageUrl", ""),
            "imageCacheKey": image.get("imageCacheKey", ""),
        },
        "flags": {"awaitingProof": awaiting_proof, "canRoll": can_roll},
    }
    return body, etag
