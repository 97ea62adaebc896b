"""Data models used by the application.

Split into:
- `api_models`: Pydantic models used for request validation
- `board_models`: the versioned board editor document
- `domain_models`: typed dicts used by stores and services

Import submodules to make them available as `models.api_models`.
"""

from . import api_models, board_models, domain_models

from .api_models import (
	MIN_BOARD_SIZE,
	SeedTile,
	CreateGameRequest,
	ResolveGameRequest,
	CreateTeamRequest,
	RegisterRequest,
	ProofRequest,
)

from .board_models import (
	BOARD_SCHEMA_VERSION,
	MAX_BOARD_SIZE,
	BoardTile,
	BoardDocument,
	minimal_board,
)

from .domain_models import (
	TileKind,
	GameStatus,
	Phase,
	Game,
	Team,
	Registration,
	Tile,
	BoardRevision,
	ProofRecord,
	Session,
)

__all__ = [
	# submodules
	"api_models",
	"board_models",
	"domain_models",
	# api models
	"MIN_BOARD_SIZE",
	"SeedTile",
	"CreateGameRequest",
	"ResolveGameRequest",
	"CreateTeamRequest",
	"RegisterRequest",
	"ProofRequest",
	# board document
	"BOARD_SCHEMA_VERSION",
	"MAX_BOARD_SIZE",
	"BoardTile",
	"BoardDocument",
	"minimal_board",
	# domain models
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
