"""Board editor document models.

The editor document is a tagged, versioned structure: `schemaVersion` must be
a known version (currently only 1) and unknown versions are rejected instead
of being parsed on a best-effort basis. Range checks that depend on the owning
game (tile ids, jump targets, board size) live in `services.board`.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


BOARD_SCHEMA_VERSION = 1
MAX_BOARD_SIZE = 500

BoardTileType = Literal["start", "task", "jump", "finish", "empty", "boss"]


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BoardTile(_CamelModel):
	id: int = Field(ge=0, le=MAX_BOARD_SIZE)
	# "boss" is kept for older documents; it is a mechanics synonym for "task"
	type: BoardTileType = "empty"
	title: str | None = None
	description: str | None = None
	image: str | None = None
	image_url: str | None = None
	image_cache_key: str | None = None
	category: str | None = None  # presentation only (boss / clue / skilling / ...)
	requires_proof: bool | None = None
	jump_to: int | None = Field(default=None, ge=0, le=MAX_BOARD_SIZE)


class BoardDocument(_CamelModel):
	schema_version: Literal[1] = BOARD_SCHEMA_VERSION
	id: str | None = Field(default=None, min_length=1)
	title: str | None = None
	description: str | None = None
	board_size: int = Field(ge=1, le=MAX_BOARD_SIZE)
	tiles_base_path: str | None = Field(default=None, min_length=1)
	tiles: list[BoardTile] = Field(default_factory=list)

	def to_json_dict(self) -> dict:
		return self.model_dump(by_alias=True, exclude_none=True)


def minimal_board(game_id: str, board_size: int) -> BoardDocument:
	"""Default document with only the Start and Finish tiles."""
	return BoardDocument(
		schema_version=BOARD_SCHEMA_VERSION,
		id=game_id,
		title="Snakes & Ladders",
		description="",
		board_size=board_size,
		tiles_base_path="tiles",
		tiles=[
			BoardTile(id=0, type="start", title="Start", requires_proof=False),
			BoardTile(id=board_size, type="finish", title="Finish", requires_proof=False),
		],
	)


__all__ = [
	"BOARD_SCHEMA_VERSION",
	"MAX_BOARD_SIZE",
	"BoardTile",
	"BoardDocument",
	"minimal_board",
]
