"""Domain-level typed models used by services and stores.

Prefer `TypedDict` for lightweight structural typing that maps directly to
the rows stored in the database. Store readers return these (or `None` when a
row does not exist); services build the JSON-ready dicts the routes return.
"""
from __future__ import annotations

from typing import Literal, TypedDict


TileKind = Literal["empty", "task", "jump"]
GameStatus = Literal["active", "finished"]
Phase = Literal["prestart", "running", "ended"]


class Game(TypedDict):
	game_id: str
	clan_name: str
	display_name: str
	board_size: int
	status: GameStatus
	turn_team_index: int
	board_url: str | None
	starts_at: str | None
	ends_at: str | None
	created_at: str


class Team(TypedDict):
	team_id: str
	game_id: str
	index: int
	name: str
	color: str
	position: int
	awaiting_proof: bool
	pending_tile: int | None


class Registration(TypedDict):
	registration_id: str
	game_id: str
	team_id: str
	rsn: str
	token_jti: str
	created_at: str


class Tile(TypedDict, total=False):
	index: int
	kind: TileKind
	title: str | None
	description: str | None
	jump_to: int | None


class BoardRevision(TypedDict):
	game_id: str
	document: dict
	schema_version: int
	locked: bool
	updated_at: str


class ProofRecord(TypedDict):
	proof_id: str
	game_id: str
	team_id: str
	tile_index: int
	rsn: str
	url: str
	created_at: str


class Session(TypedDict):
	game_id: str
	team_id: str
	rsn: str
	jti: str


__all__ = [
	"TileKind",
	"GameStatus",
	"Phase",
	"Game",
	"Team",
	"Registration",
	"Tile",
	"BoardRevision",
	"ProofRecord",
	"Session",
]
