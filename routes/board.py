"""Board editor document: public read, host-only save and lock toggles."""
from fastapi import APIRouter, Body, Depends, Request
import logging

from stores import get_game_store, get_auth_store, StoreError
from services import board
from utils.credentials import check_host_password
from .errors import to_http

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/games/{game_id}/board")
async def get_board(game_id: str, store = Depends(get_game_store)):
	return await board.get_board(store, game_id)


@router.put("/games/{game_id}/board")
async def save_board(
	request: Request,
	game_id: str,
	document: dict = Body(...),
	store = Depends(get_game_store),
	auth_store = Depends(get_auth_store),
):
	try:
		await check_host_password(request, game_id, auth_store)
		return await board.save_board(store, game_id, document)
	except StoreError as e:
		raise to_http(e) from e


async def _set_locked(request: Request, game_id: str, locked: bool, store, auth_store) -> dict:
	try:
		await check_host_password(request, game_id, auth_store)
		return await board.set_locked(store, game_id, locked)
	except StoreError as e:
		raise to_http(e) from e


@router.post("/games/{game_id}/board/lock")
async def lock_board(request: Request, game_id: str, store = Depends(get_game_store), auth_store = Depends(get_auth_store)):
	return await _set_locked(request, game_id, True, store, auth_store)


@router.post("/games/{game_id}/board/unlock")
async def unlock_board(request: Request, game_id: str, store = Depends(get_game_store), auth_store = Depends(get_auth_store)):
	return await _set_locked(request, game_id, False, store, auth_store)
