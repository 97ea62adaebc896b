"""Game creation, join codes, teams and registration."""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from models import CreateGameRequest, CreateTeamRequest, RegisterRequest
from services import registry
from stores import (
    GameInactive,
    GameNotFound,
    InvalidBoard,
    InvalidCredentials,
    InvalidName,
    InvalidSchedule,
    ParticipantAlreadyRegistered,
    TeamAlreadyExists,
)


@pytest.mark.asyncio
async def test_create_game_returns_join_code_once(seed, game_store):
    game = await seed.game(clan="  Iron Foundry ")

    assert game["gameId"].startswith("game_")
    assert len(game["joinCode"]) == 8
    assert game["joinCode"] == game["joinCode"].upper()
    assert game["clanName"] == "Iron Foundry"
    assert game["displayName"] == "Iron Foundry Game"

    stored = await game_store.get_game(game["gameId"])
    assert stored["status"] == "active"
    assert "joinCode" not in registry.game_view(stored)


@pytest.mark.asyncio
async def test_resolve_game_is_case_insensitive(seed, game_store):
    game = await seed.game(clan="Iron Foundry")

    found = await registry.resolve_game(game_store, "iron foundry", game["joinCode"].lower())
    assert found["gameId"] == game["gameId"]

    with pytest.raises(GameNotFound):
        await registry.resolve_game(game_store, "Other Clan", game["joinCode"])
    with pytest.raises(GameNotFound):
        await registry.resolve_game(game_store, "Iron Foundry", "ZZZZZZZZ")


@pytest.mark.asyncio
async def test_clan_listing_is_newest_first_without_ids(seed, game_store):
    first = await seed.game(clan="Iron Foundry")
    second = await seed.game(clan="IRON FOUNDRY")
    await seed.game(clan="Someone Else")

    listed = await registry.list_clan_games(game_store, "iron foundry")
    assert len(listed["games"]) == 2
    for g in listed["games"]:
        assert "id" not in g
        assert "gameId" not in g
        assert "joinCode" not in g
    assert listed["games"][0]["clanName"] == second["clanName"]
    assert listed["games"][1]["clanName"] == first["clanName"]

    assert (await registry.list_clan_games(game_store, "   "))["games"] == []


@pytest.mark.asyncio
async def test_schedule_must_be_ordered(seed):
    starts = datetime(2026, 1, 1, 12, tzinfo=timezone.utc)
    with pytest.raises(InvalidSchedule) as excinfo:
        await seed.game(starts_at=starts, ends_at=starts)
    assert excinfo.value.field == "endsAt"
    with pytest.raises(InvalidSchedule):
        await seed.game(starts_at=starts, ends_at=starts - timedelta(hours=1))


@pytest.mark.parametrize(
    "tiles",
    [
        [{"tileIndex": 25, "kind": "task"}],
        [{"tileIndex": 4, "kind": "task"}, {"tileIndex": 4, "kind": "empty"}],
        [{"tileIndex": 4, "kind": "jump"}],
        [{"tileIndex": 4, "kind": "jump", "jumpTo": 21}],
    ],
)
@pytest.mark.asyncio
async def test_seed_tiles_are_validated(seed, tiles):
    with pytest.raises(InvalidBoard):
        await seed.game(board_size=20, tiles=tiles)


@pytest.mark.asyncio
async def test_seed_boss_tiles_are_tasks(seed, game_store):
    game = await seed.game(tiles=[{"tileIndex": 6, "kind": "boss", "title": "Jad"}])
    tile = await game_store.get_tile_override(game["gameId"], 6)
    assert tile["kind"] == "task"
    assert tile["title"] == "Jad"


@pytest.mark.asyncio
async def test_invalid_clan_name(seed):
    with pytest.raises(InvalidName) as excinfo:
        await seed.game(clan="<script>")
    assert excinfo.value.field == "clanName"


def test_board_size_bounds():
    with pytest.raises(ValidationError):
        CreateGameRequest(clan_name="Clan", host_password="hostpass", board_size=9)
    with pytest.raises(ValidationError):
        CreateGameRequest(clan_name="Clan", host_password="hostpass", board_size=501)


@pytest.mark.asyncio
async def test_team_indexes_are_dense_and_names_unique(seed, game_store):
    game = await seed.game()
    gid = game["gameId"]
    red = await seed.team(gid, "Red")
    blue = await seed.team(gid, "Blue")
    assert (red["index"], blue["index"]) == (0, 1)

    with pytest.raises(TeamAlreadyExists):
        await seed.team(gid, "Red")

    teams = await registry.list_teams(game_store, gid)
    assert [t["name"] for t in teams["teams"]] == ["Red", "Blue"]
    assert all(t["memberCount"] == 0 for t in teams["teams"])
    assert await registry.list_teams(game_store, "game_missing") == {"game": None, "teams": []}


@pytest.mark.asyncio
async def test_create_team_for_missing_game(game_store):
    req = CreateTeamRequest(name="Red", color="#f00", password="pw")
    with pytest.raises(GameNotFound):
        await registry.create_team(game_store, "game_missing", req)


@pytest.mark.asyncio
async def test_register_by_name_and_duplicate_participant(seed, game_store, auth_store):
    game = await seed.game()
    gid = game["gameId"]
    red = await seed.team(gid, "Red")
    blue = await seed.team(gid, "Blue", password="bluepass")

    req = RegisterRequest(rsn="Zezima", team_name=" Red ", team_password="redpass")
    result = await registry.register(game_store, auth_store, gid, req)
    assert result["team"]["id"] == red["id"]
    assert result["expiresAt"]

    session = await auth_store.validate_session_token(result["token"])
    assert session["rsn"] == "Zezima"
    assert session["team_id"] == red["id"]

    # a participant belongs to one team per game
    dup = RegisterRequest(rsn="ZEZIMA", team_id=blue["id"], team_password="bluepass")
    with pytest.raises(ParticipantAlreadyRegistered):
        await registry.register(game_store, auth_store, gid, dup)

    teams = await registry.list_teams(game_store, gid)
    assert [t["memberCount"] for t in teams["teams"]] == [1, 0]


@pytest.mark.asyncio
async def test_register_rejects_bad_credentials(seed, game_store, auth_store):
    game = await seed.game()
    gid = game["gameId"]
    red = await seed.team(gid, "Red")

    wrong = RegisterRequest(rsn="Zezima", team_id=red["id"], team_password="nope")
    with pytest.raises(InvalidCredentials):
        await registry.register(game_store, auth_store, gid, wrong)

    unknown = RegisterRequest(rsn="Zezima", team_name="Green", team_password="redpass")
    with pytest.raises(InvalidCredentials):
        await registry.register(game_store, auth_store, gid, unknown)


@pytest.mark.asyncio
async def test_register_on_finished_game(seed, game_store, auth_store):
    game = await seed.game()
    gid = game["gameId"]
    red = await seed.team(gid, "Red")
    finished = await registry.finish_game(game_store, gid)
    assert finished["game"]["status"] == "finished"

    req = RegisterRequest(rsn="Zezima", team_id=red["id"], team_password="redpass")
    with pytest.raises(GameInactive):
        await registry.register(game_store, auth_store, gid, req)


def test_register_request_needs_a_team_reference():
    with pytest.raises(ValidationError):
        RegisterRequest(rsn="Zezima", team_password="redpass")
