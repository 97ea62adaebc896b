"""Games, teams and participant registration."""
import logging
from datetime import timedelta
from typing import Optional

import config
from models import (
    CreateGameRequest,
    CreateTeamRequest,
    Game,
    RegisterRequest,
    SeedTile,
    Team,
    Tile,
)
from stores import (
    GameInactive,
    GameNotFound,
    GameStore,
    AuthStore,
    InvalidBoard,
    InvalidCredentials,
    InvalidName,
    InvalidSchedule,
)
from utils import (
    as_utc,
    hash_join_code,
    hash_password,
    is_valid_name,
    new_id,
    new_join_code,
    new_session_token,
    normalize_join_code,
    normalize_name,
    now_utc,
    to_iso,
    verify_password,
)
from utils.validation import MAX_NAME_LENGTH
from .tiles import normalize_kind

logger = logging.getLogger(__name__)


def _require_name(value: str, field: str) -> str:
    name = normalize_name(value)
    if not is_valid_name(name):
        raise InvalidName(f"Invalid {field}", field=field)
    return name


def build_seed_overrides(tiles: Optional[list[SeedTile]], board_size: int) -> list[Tile]:
    """Overrides for the tiles supplied at game creation.

    Raises:
        InvalidBoard: index out of range or repeated, or a jump without an in-range target
    """
    overrides: list[Tile] = []
    seen: set[int] = set()
    for t in tiles or []:
        if t.tile_index > board_size:
            raise InvalidBoard(f"Tile index {t.tile_index} out of range", field="tiles.tileIndex")
        if t.tile_index in seen:
            raise InvalidBoard(f"Tile index {t.tile_index} appears more than once", field="tiles.tileIndex")
        seen.add(t.tile_index)

        kind = normalize_kind(t.kind)
        if kind == "jump" and (t.jump_to is None or not 0 <= t.jump_to <= board_size):
            raise InvalidBoard(f"jump tile {t.tile_index} needs a jumpTo within 0..{board_size}", field="tiles.jumpTo")
        overrides.append({
            "index": t.tile_index,
            "kind": kind,
            "title": t.title,
            "description": t.description,
            "jump_to": t.jump_to if kind == "jump" else None,
        })
    return overrides


def game_view(game: Game) -> dict:
    """Public game fields; never includes credentials or the join code."""
    return {
        "id": game["game_id"],
        "clanName": game["clan_name"],
        "displayName": game["display_name"],
        "boardSize": game["board_size"],
        "status": game["status"],
        "boardUrl": game["board_url"],
        "startsAt": game["starts_at"],
        "endsAt": game["ends_at"],
        "createdAt": game["created_at"],
    }


def team_view(team: Team) -> dict:
    return {
        "id": team["team_id"],
        "index": team["index"],
        "name": team["name"],
        "color": team["color"],
    }


async def create_game(store: GameStore, req: CreateGameRequest) -> dict:
    """Create a game. The join code is only ever returned here.

    Raises:
        InvalidName, InvalidSchedule, InvalidBoard
    """
    clan_name = _require_name(req.clan_name, "clanName")
    if req.display_name:
        display_name = _require_name(req.display_name, "displayName")
    else:
        display_name = f"{clan_name} Game"[:MAX_NAME_LENGTH]

    starts_at = to_iso(req.starts_at) if req.starts_at else None
    ends_at = to_iso(req.ends_at) if req.ends_at else None
    if req.starts_at and req.ends_at and as_utc(req.ends_at) <= as_utc(req.starts_at):
        raise InvalidSchedule("endsAt must be after startsAt", field="endsAt")

    seed_tiles = build_seed_overrides(req.tiles, req.board_size)

    join_code = new_join_code()
    game = await store.create_game(
        new_id("game"),
        clan_name=clan_name,
        display_name=display_name,
        board_size=req.board_size,
        host_password_hash=hash_password(req.host_password),
        join_code_hash=hash_join_code(join_code),
        board_url=str(req.board_url) if req.board_url else None,
        starts_at=starts_at,
        ends_at=ends_at,
        seed_tiles=seed_tiles,
    )
    logger.info(f"Game {game['game_id']} created for clan {clan_name!r}")
    return {
        "gameId": game["game_id"],
        "joinCode": join_code,
        "clanName": game["clan_name"],
        "displayName": game["display_name"],
        "boardSize": game["board_size"],
        "startsAt": game["starts_at"],
        "endsAt": game["ends_at"],
    }


async def resolve_game(store: GameStore, clan_name: str, join_code: str) -> dict:
    """clan + join code -> game.

    Raises:
        GameNotFound: no game of the clan has this join code
    """
    clan = normalize_name(clan_name)
    game = await store.find_game_by_join_code(clan, hash_join_code(normalize_join_code(join_code)))
    if game is None:
        raise GameNotFound("Game not found")
    view = game_view(game)
    view["gameId"] = view.pop("id")
    return view


async def list_clan_games(store: GameStore, clan_name: str) -> dict:
    """Games of a clan, newest first, without ids or join codes."""
    clan = normalize_name(clan_name)
    if not clan:
        return {"clanName": "", "games": []}
    games = await store.list_clan_games(clan)
    listed = []
    for g in games:
        view = game_view(g)
        del view["id"]
        del view["boardUrl"]
        listed.append(view)
    return {"clanName": clan, "games": listed}


async def list_teams(store: GameStore, game_id: str) -> dict:
    game = await store.get_game(game_id)
    if game is None:
        return {"game": None, "teams": []}
    teams = await store.list_teams(game_id)
    members = await store.list_members(game_id)
    return {
        "game": game_view(game),
        "teams": [
            {**team_view(t), "memberCount": len(members.get(t["team_id"], []))}
            for t in teams
        ],
    }


async def create_team(store: GameStore, game_id: str, req: CreateTeamRequest) -> dict:
    """Raises: GameNotFound, InvalidName, TeamAlreadyExists"""
    name = _require_name(req.name, "name")
    team = await store.create_team(
        game_id,
        new_id("team"),
        name=name,
        color=req.color.strip(),
        password_hash=hash_password(req.password),
    )
    return {"ok": True, "team": team_view(team)}


async def register(
    store: GameStore,
    auth_store: AuthStore,
    game_id: str,
    req: RegisterRequest,
) -> dict:
    """Join a team with its password and receive a bearer token.

    Raises:
        GameNotFound, GameInactive, InvalidName, InvalidCredentials,
        ParticipantAlreadyRegistered
    """
    game = await store.get_game(game_id)
    if game is None:
        raise GameNotFound(game_id)
    if game["status"] != "active":
        raise GameInactive("Game inactive")

    rsn = _require_name(req.rsn, "rsn")
    if req.team_id:
        team = await store.get_team(game_id, req.team_id)
    else:
        team = await store.get_team_by_name(game_id, normalize_name(req.team_name))

    # unknown team and wrong password look the same to the caller
    hashed = await auth_store.get_team_password_hash(game_id, team["team_id"]) if team else None
    if team is None or not verify_password(req.team_password, hashed):
        raise InvalidCredentials("Invalid team credentials")

    token = new_session_token()
    expires_at = to_iso(now_utc() + timedelta(hours=config.SESSION_TTL_HOURS))
    await store.register(
        game_id,
        team["team_id"],
        rsn=rsn,
        session_token=token,
        token_jti=new_id("sess"),
        expires_at=expires_at,
    )
    return {
        "token": token,
        "expiresAt": expires_at,
        "team": {"id": team["team_id"], "name": team["name"], "color": team["color"]},
    }


async def finish_game(store: GameStore, game_id: str) -> dict:
    """Raises: GameNotFound"""
    game = await store.finish_game(game_id)
    return {"ok": True, "game": game_view(game)}
