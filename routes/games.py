from fastapi import APIRouter, BackgroundTasks, Depends, Request
import logging

from models import (
	CreateGameRequest,
	ResolveGameRequest,
	CreateTeamRequest,
	RegisterRequest,
)
from stores import get_game_store, get_auth_store, StoreError
from services import registry
from services.notifications import (
	get_notifier,
	game_created_message,
	team_created_message,
	registered_message,
	game_finished_message,
)
from utils.credentials import check_host_password
from utils.validation import webhook_override
from .errors import to_http

logger = logging.getLogger(__name__)

router = APIRouter()


def _webhook(request: Request) -> str | None:
	return webhook_override(request.headers.get("x-discord-webhook-url"))


# --- Join flow ---

@router.get("/clans/{clan_name}/games")
async def list_clan_games(clan_name: str, store = Depends(get_game_store)):
	"""Games of a clan, newest first. Never returns game ids or join codes."""
	return await registry.list_clan_games(store, clan_name)


@router.post("/games/resolve")
async def resolve_game(req: ResolveGameRequest, store = Depends(get_game_store)):
	try:
		return await registry.resolve_game(store, req.clan_name, req.join_code)
	except StoreError as e:
		raise to_http(e) from e


# --- Games ---

@router.post("/games")
async def create_game(
	request: Request,
	req: CreateGameRequest,
	background_tasks: BackgroundTasks,
	store = Depends(get_game_store),
	notifier = Depends(get_notifier),
):
	try:
		result = await registry.create_game(store, req)
	except StoreError as e:
		raise to_http(e) from e

	background_tasks.add_task(notifier.send, game_created_message(result), url=_webhook(request))
	return result


@router.post("/games/{game_id}/finish")
async def finish_game(
	request: Request,
	game_id: str,
	background_tasks: BackgroundTasks,
	store = Depends(get_game_store),
	auth_store = Depends(get_auth_store),
	notifier = Depends(get_notifier),
):
	try:
		await check_host_password(request, game_id, auth_store)
		result = await registry.finish_game(store, game_id)
	except StoreError as e:
		raise to_http(e) from e

	background_tasks.add_task(notifier.send, game_finished_message(result["game"]), url=_webhook(request))
	return result


# --- Teams ---

@router.get("/games/{game_id}/teams")
async def list_teams(game_id: str, store = Depends(get_game_store)):
	return await registry.list_teams(store, game_id)


@router.post("/games/{game_id}/teams")
async def create_team(
	request: Request,
	game_id: str,
	req: CreateTeamRequest,
	background_tasks: BackgroundTasks,
	store = Depends(get_game_store),
	notifier = Depends(get_notifier),
):
	try:
		result = await registry.create_team(store, game_id, req)
	except StoreError as e:
		raise to_http(e) from e

	background_tasks.add_task(notifier.send, team_created_message(result["team"]), url=_webhook(request))
	return result


@router.post("/games/{game_id}/register")
async def register(
	request: Request,
	game_id: str,
	req: RegisterRequest,
	background_tasks: BackgroundTasks,
	store = Depends(get_game_store),
	auth_store = Depends(get_auth_store),
	notifier = Depends(get_notifier),
):
	"""Join a team; the returned token is the bearer credential for roll and proof."""
	try:
		result = await registry.register(store, auth_store, game_id, req)
	except StoreError as e:
		raise to_http(e) from e

	background_tasks.add_task(notifier.send, registered_message(result["team"], req.rsn.strip()), url=_webhook(request))
	return result
