"""Spectator and overlay read views."""
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from stores import get_game_store
from services import projections

router = APIRouter()


@router.get("/games/{game_id}/state")
async def get_state(game_id: str, store = Depends(get_game_store)):
	# never a 404: unknown games report `game: null`
	return await projections.full_state(store, game_id)


@router.get("/games/{game_id}/overlay")
async def get_overlay(request: Request, game_id: str, rsn: str = "", store = Depends(get_game_store)):
	body, etag = await projections.overlay(
		store,
		game_id,
		rsn,
		if_none_match=request.headers.get("if-none-match"),
	)
	if body is None:
		return Response(status_code=304, headers={"ETag": etag})
	return JSONResponse(content=body, headers={"ETag": etag})
