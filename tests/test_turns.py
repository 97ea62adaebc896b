"""Roll resolution against a real store."""
import asyncio
from datetime import timedelta

import pytest

from services.turns import resolve_roll
from stores import ConcurrentUpdate, GameNotFound, InvalidInput
from utils import now_utc


def assert_pairing(team):
    if team["awaiting_proof"]:
        assert team["pending_tile"] == team["position"]
    else:
        assert team["pending_tile"] is None


@pytest.mark.asyncio
async def test_roll_past_finish_clamps_and_does_not_gate(seed, game_store, locks):
    game = await seed.game(board_size=20)
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")
    await seed.place(game["gameId"], team["id"], 15)

    result = await resolve_roll(game_store, locks, game["gameId"], session, die_value=6)

    assert result["rollAllowed"] is True
    assert (result["from"], result["to"], result["roll"]) == (15, 20, 6)
    assert result["jump"] is None
    assert result["awaitingProof"] is False
    stored = await game_store.get_team(game["gameId"], team["id"])
    assert stored["position"] == 20
    assert_pairing(stored)


@pytest.mark.asyncio
async def test_jump_redirects_once_and_gates_on_target(seed, game_store, locks):
    game = await seed.game(board_size=20, tiles=[{"tileIndex": 10, "kind": "jump", "jumpTo": 3}])
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")
    await seed.place(game["gameId"], team["id"], 8)

    result = await resolve_roll(game_store, locks, game["gameId"], session, die_value=2)

    assert result["to"] == 3
    assert result["jump"] == {"from": 10, "to": 3}
    assert result["awaitingProof"] is True
    assert result["pendingTile"] == 3
    stored = await game_store.get_team(game["gameId"], team["id"])
    assert (stored["position"], stored["awaiting_proof"], stored["pending_tile"]) == (3, True, 3)


@pytest.mark.asyncio
async def test_awaiting_proof_refuses_and_keeps_position(seed, game_store, locks):
    game = await seed.game()
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")

    first = await resolve_roll(game_store, locks, game["gameId"], session, die_value=4)
    assert first["awaitingProof"] is True

    second = await resolve_roll(game_store, locks, game["gameId"], session, die_value=3)
    assert second["rollAllowed"] is False
    assert second["reason"] == "awaiting_proof"
    assert second["pendingTile"] == 4
    stored = await game_store.get_team(game["gameId"], team["id"])
    assert stored["position"] == 4


@pytest.mark.asyncio
async def test_finished_game_is_inactive(seed, game_store, locks):
    game = await seed.game()
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")
    await game_store.finish_game(game["gameId"])

    result = await resolve_roll(game_store, locks, game["gameId"], session, die_value=1)
    assert result["ok"] is False
    assert result["reason"] == "inactive"


@pytest.mark.asyncio
async def test_session_from_another_game_is_unauthorized(seed, game_store, locks):
    game_a = await seed.game(clan="Clan A")
    game_b = await seed.game(clan="Clan B")
    team_b = await seed.team(game_b["gameId"])
    session_b = await seed.member(game_b["gameId"], team_b, "Zezima")

    result = await resolve_roll(game_store, locks, game_a["gameId"], session_b, die_value=1)
    assert result["rollAllowed"] is False
    assert result["reason"] == "unauthorized"


@pytest.mark.asyncio
async def test_schedule_refusals(seed, game_store, locks):
    now = now_utc()
    upcoming = await seed.game(clan="Later", starts_at=now + timedelta(hours=1))
    team = await seed.team(upcoming["gameId"])
    session = await seed.member(upcoming["gameId"], team, "Early Bird")

    result = await resolve_roll(game_store, locks, upcoming["gameId"], session, die_value=1, now=now)
    assert result["reason"] == "not_started"
    assert 0 < result["msUntilStart"] <= 3_600_000

    over = await seed.game(clan="Done", starts_at=now - timedelta(hours=2), ends_at=now - timedelta(hours=1))
    team = await seed.team(over["gameId"])
    session = await seed.member(over["gameId"], team, "Late Bird")

    result = await resolve_roll(game_store, locks, over["gameId"], session, die_value=1, now=now)
    assert result["reason"] == "ended"
    assert result["msUntilEnd"] <= 0
    # never auto-finished
    assert (await game_store.get_game(over["gameId"]))["status"] == "active"


@pytest.mark.asyncio
async def test_awaiting_proof_is_reported_before_schedule(seed, game_store, locks):
    now = now_utc()
    game = await seed.game(starts_at=now - timedelta(hours=2), ends_at=now + timedelta(hours=1))
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")
    await resolve_roll(game_store, locks, game["gameId"], session, die_value=2, now=now)

    later = now + timedelta(hours=2)
    result = await resolve_roll(game_store, locks, game["gameId"], session, die_value=2, now=later)
    assert result["reason"] == "awaiting_proof"


@pytest.mark.asyncio
async def test_missing_game_raises(seed, game_store, locks):
    game = await seed.game()
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")

    with pytest.raises(GameNotFound):
        await resolve_roll(game_store, locks, "game_missing", session, die_value=1)


@pytest.mark.asyncio
async def test_concurrent_rolls_move_the_team_once(seed, game_store, locks):
    game = await seed.game()
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")

    results = await asyncio.gather(
        resolve_roll(game_store, locks, game["gameId"], session, die_value=2),
        resolve_roll(game_store, locks, game["gameId"], session, die_value=2),
    )

    assert sorted(r["reason"] for r in results) == ["awaiting_proof", "rolled"]
    stored = await game_store.get_team(game["gameId"], team["id"])
    assert stored["position"] == 2
    assert_pairing(stored)


@pytest.mark.asyncio
async def test_conditional_write_rejects_stale_position(seed, game_store):
    game = await seed.game()
    team = await seed.team(game["gameId"])
    await seed.place(game["gameId"], team["id"], 5)

    with pytest.raises(ConcurrentUpdate):
        await game_store.apply_roll(
            game["gameId"], team["id"],
            from_position=0, to_position=2, awaiting_proof=False, event={},
        )
    stored = await game_store.get_team(game["gameId"], team["id"])
    assert stored["position"] == 5


@pytest.mark.asyncio
async def test_invalid_die_value(seed, game_store, locks):
    game = await seed.game()
    team = await seed.team(game["gameId"])
    session = await seed.member(game["gameId"], team, "Zezima")
    with pytest.raises(InvalidInput) as excinfo:
        await resolve_roll(game_store, locks, game["gameId"], session, die_value=7)
    assert excinfo.value.field == "dieValue"
    with pytest.raises(InvalidInput):
        await resolve_roll(game_store, locks, game["gameId"], session, die_value=0)
    stored = await game_store.get_team(game["gameId"], team["id"])
    assert stored["position"] == 0
