"""Participant actions: rolling and proving tiles (bearer token required)."""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
import logging

from infrastructure.locks import get_team_locks
from models import ProofRequest
from stores import get_game_store, get_auth_store, StoreError
from services import proofs, turns
from services.notifications import get_notifier, roll_messages, proof_message
from utils.credentials import check_session
from utils.validation import webhook_override
from .errors import to_http

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/games/{game_id}/roll")
async def roll(
	request: Request,
	game_id: str,
	background_tasks: BackgroundTasks,
	store = Depends(get_game_store),
	auth_store = Depends(get_auth_store),
	locks = Depends(get_team_locks),
	notifier = Depends(get_notifier),
):
	"""Roll for the caller's team.

	Expected refusals (awaiting proof, not started, ended, ...) come back as
	200 responses with `rollAllowed: false` and a `reason`.
	"""
	try:
		session = await check_session(request, auth_store)
		result = await turns.resolve_roll(store, locks, game_id, session)
	except StoreError as e:
		raise to_http(e) from e

	messages = roll_messages(result)
	if messages:
		background_tasks.add_task(
			notifier.send_all,
			messages,
			url=webhook_override(request.headers.get("x-discord-webhook-url")),
		)
	return result


@router.post("/games/{game_id}/proof")
async def submit_proof(
	request: Request,
	game_id: str,
	req: ProofRequest,
	background_tasks: BackgroundTasks,
	store = Depends(get_game_store),
	auth_store = Depends(get_auth_store),
	locks = Depends(get_team_locks),
	notifier = Depends(get_notifier),
):
	try:
		session = await check_session(request, auth_store)
		result = await proofs.submit_proof(
			store,
			locks,
			game_id,
			session,
			req.reference,
			tile_index=req.tile_index,
		)
	except StoreError as e:
		raise to_http(e) from e

	background_tasks.add_task(
		notifier.send,
		proof_message(result),
		url=webhook_override(request.headers.get("x-discord-webhook-url")),
	)
	return result


@router.get("/games/{game_id}/proofs")
async def list_proofs(game_id: str, store = Depends(get_game_store)):
	try:
		return await proofs.list_proofs(store, game_id)
	except StoreError as e:
		raise to_http(e) from e
