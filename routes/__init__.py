"""HTTP route modules (FastAPI routers) for the application.

This file explicitly exports the router objects provided by each
submodule so callers can do:

	from routes import games_router
	app.include_router(games_router)

Submodules should expose an `APIRouter` named `router`. Paths are absolute
(`/games/...`, `/clans/...`), so routers are included without a prefix.
"""

from .games import router as games_router
from .play import router as play_router
from .views import router as views_router
from .board import router as board_router

__all__ = [
	"games_router",
	"play_router",
	"views_router",
	"board_router",
]
