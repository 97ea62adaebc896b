from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
import stores
from db import ensure_db
from infrastructure.locks import init_team_locks, close_team_locks
from services.notifications import init_notifier, close_notifier
from routes import games_router, play_router, views_router, board_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_db(config.DB_PATH)
    await stores.init_stores(config.DB_PATH)
    await init_team_locks(config.REDIS_URL)
    init_notifier()
    purged = await stores.get_auth_store().delete_expired_sessions()
    logger.info(f"Started with database {config.DB_PATH} ({purged} expired session(s) purged)")
    try:
        yield
    finally:
        close_notifier()
        await close_team_locks()
        await stores.close_stores()
        logger.info("Shut down cleanly")


def create_app() -> FastAPI:
    # --- FastAPI setup ---
    app = FastAPI(title="Clan Ladders", lifespan=lifespan)

    # --- Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )

    @app.get("/health")
    async def health():
        return {"ok": True}

    # --- Register routes ---
    app.include_router(games_router)
    app.include_router(play_router)
    app.include_router(views_router)
    app.include_router(board_router)
    return app


app = create_app()
