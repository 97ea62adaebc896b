"""Services package: the game rules and read views used by the routes.

Import submodules to make them available as `services.turns`,
`services.projections`, etc.
"""

from . import board, notifications, projections, proofs, registry, tiles, turns

from .tiles import clamp_tile, default_tile, resolve_tile
from .turns import DIE_FACES, roll_die, compute_move, resolve_roll
from .proofs import submit_proof, list_proofs
from .projections import full_state, overlay
from .notifications import WebhookNotifier

__all__ = [
	"board",
	"notifications",
	"projections",
	"proofs",
	"registry",
	"tiles",
	"turns",
	"clamp_tile",
	"default_tile",
	"resolve_tile",
	"DIE_FACES",
	"roll_die",
	"compute_move",
	"resolve_roll",
	"submit_proof",
	"list_proofs",
	"full_state",
	"overlay",
	"WebhookNotifier",
]
