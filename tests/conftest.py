"""Shared fixtures: a fresh SQLite database per test, seeded through the services."""
from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

import config
import stores
from db import ensure_db
from infrastructure.locks import KeyedLock
from models import CreateGameRequest, CreateTeamRequest, RegisterRequest, Session
from services import registry


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """bcrypt at the minimum cost keeps the suite fast."""
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest_asyncio.fixture
async def store_pair(tmp_path):
    db_path = str(tmp_path / "test.sqlite3")
    await ensure_db(db_path)
    game_store, auth_store = await stores.open_stores(db_path)
    yield game_store, auth_store
    await game_store.close()
    await auth_store.close()


@pytest.fixture
def game_store(store_pair):
    return store_pair[0]


@pytest.fixture
def auth_store(store_pair):
    return store_pair[1]


@pytest.fixture
def locks():
    return KeyedLock()


class Seed:
    """Builds games, teams and registered participants for a test."""

    def __init__(self, game_store, auth_store):
        self.game_store = game_store
        self.auth_store = auth_store

    async def game(
        self,
        *,
        clan: str = "Iron Foundry",
        board_size: int = 20,
        tiles: Optional[list[dict]] = None,
        starts_at: Optional[datetime] = None,
        ends_at: Optional[datetime] = None,
        host_password: str = "hostpass",
    ) -> dict:
        req = CreateGameRequest(
            clan_name=clan,
            host_password=host_password,
            board_size=board_size,
            tiles=tiles,
            starts_at=starts_at,
            ends_at=ends_at,
        )
        return await registry.create_game(self.game_store, req)

    async def team(self, game_id: str, name: str = "Red", password: str = "redpass") -> dict:
        req = CreateTeamRequest(name=name, color="#ff0000", password=password)
        return (await registry.create_team(self.game_store, game_id, req))["team"]

    async def member(self, game_id: str, team: dict, rsn: str, password: str = "redpass") -> Session:
        req = RegisterRequest(rsn=rsn, team_id=team["id"], team_password=password)
        result = await registry.register(self.game_store, self.auth_store, game_id, req)
        session = await self.auth_store.validate_session_token(result["token"])
        assert session is not None
        return session

    async def place(self, game_id: str, team_id: str, position: int, *, gated: bool = False) -> None:
        """Move a team from its current tile to `position` through the roll write path."""
        team = await self.game_store.get_team(game_id, team_id)
        await self.game_store.apply_roll(
            game_id,
            team_id,
            from_position=team["position"],
            to_position=position,
            awaiting_proof=gated,
            event={"teamId": team_id, "placed": position},
        )


@pytest.fixture
def seed(game_store, auth_store):
    return Seed(game_store, auth_store)


@pytest.fixture
def client(tmp_path, monkeypatch):
    """TestClient running the full app lifespan against a throwaway database."""
    monkeypatch.setattr(config, "DB_PATH", str(tmp_path / "api.sqlite3"))
    monkeypatch.setattr(config, "REDIS_URL", None)
    monkeypatch.setattr(config, "DISCORD_WEBHOOK_URL", "")

    from main import create_app

    with TestClient(create_app()) as c:
        yield c
