"""Pydantic request models for the FastAPI endpoints.

Keep transport concerns (validation, docs) here and keep business/domain
types in `models.domain_models`. Field names are snake_case in Python and
camelCase on the wire; both spellings are accepted on input.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .board_models import MAX_BOARD_SIZE


MIN_BOARD_SIZE = 10


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SeedTile(CamelModel):
	tile_index: int = Field(ge=0)
	kind: Literal["empty", "task", "jump", "boss"]
	title: str | None = None
	description: str | None = None
	jump_to: int | None = None


class CreateGameRequest(CamelModel):
	clan_name: str = Field(min_length=1, max_length=80)
	host_password: str = Field(min_length=4, max_length=72)
	board_size: int = Field(ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
	display_name: str | None = Field(default=None, min_length=1, max_length=80)
	board_url: AnyHttpUrl | None = None
	starts_at: datetime | None = None
	ends_at: datetime | None = None
	tiles: list[SeedTile] | None = None


class ResolveGameRequest(CamelModel):
	clan_name: str = Field(min_length=1)
	join_code: str = Field(min_length=3)


class CreateTeamRequest(CamelModel):
	name: str = Field(min_length=1, max_length=80)
	color: str = Field(min_length=1, max_length=32)
	password: str = Field(min_length=1, max_length=72)


class RegisterRequest(CamelModel):
	rsn: str = Field(min_length=1, max_length=80)
	team_id: str | None = Field(default=None, min_length=1)
	team_name: str | None = Field(default=None, min_length=1)
	team_password: str = Field(min_length=1, max_length=72)

	@model_validator(mode="after")
	def _team_reference(self) -> "RegisterRequest":
		if not self.team_id and not self.team_name:
			raise ValueError("Provide either teamId or teamName.")
		return self


class ProofRequest(CamelModel):
	# The plugin sends `imageUrl`, the web client sends `url`
	url: AnyHttpUrl | None = None
	image_url: AnyHttpUrl | None = None
	tile_index: int | None = Field(default=None, ge=0)

	@model_validator(mode="after")
	def _reference(self) -> "ProofRequest":
		if self.url is None and self.image_url is None:
			raise ValueError("Either 'url' or 'imageUrl' must be provided.")
		return self

	@property
	def reference(self) -> str:
		return str(self.url if self.url is not None else self.image_url)


__all__ = [
	"MIN_BOARD_SIZE",
	"CamelModel",
	"SeedTile",
	"CreateGameRequest",
	"ResolveGameRequest",
	"CreateTeamRequest",
	"RegisterRequest",
	"ProofRequest",
]
