"""Credential helpers for FastAPI request handling.

Participants authenticate with the opaque bearer token issued at
registration. Hosts authenticate administrative actions with the shared
host password carried in the `x-host-password` header; it is compared against
the stored bcrypt hash on every call, there is no host session.
"""
from typing import Optional

from fastapi import Request

from models import Session
from stores import (
	AuthStore,
	GameNotFound,
	InvalidCredentials,
	MissingCredentials,
	SessionNotFound,
)
from .passwords import verify_password

HOST_PASSWORD_HEADER = "x-host-password"


def get_bearer_token(request: Request) -> Optional[str]:
	"""Return the bearer token from the Authorization header, or None."""
	raw = request.headers.get("authorization", "")
	scheme, _, token = raw.partition(" ")
	if scheme.lower() != "bearer" or not token.strip():
		return None
	return token.strip()


async def check_session(request: Request, auth_store: AuthStore) -> Session:
	"""Resolve the caller's session from its bearer token.

	Raises:
		MissingCredentials: no bearer token on the request
		SessionNotFound: token unknown or expired
	"""
	token = get_bearer_token(request)
	if not token:
		raise MissingCredentials("Missing bearer token")

	session = await auth_store.validate_session_token(token)
	if session is None:
		raise SessionNotFound("Invalid or expired session")
	return session


async def check_host_password(request: Request, game_id: str, auth_store: AuthStore) -> None:
	"""Verify the `x-host-password` header against the game's host password.

	Raises:
		MissingCredentials: header missing or blank
		GameNotFound: the game does not exist
		InvalidCredentials: password does not match
	"""
	password = request.headers.get(HOST_PASSWORD_HEADER, "").strip()
	if not password:
		raise MissingCredentials(f"Missing {HOST_PASSWORD_HEADER} header")

	hashed = await auth_store.get_host_password_hash(game_id)
	if hashed is None:
		raise GameNotFound(game_id)
	if not verify_password(password, hashed):
		raise InvalidCredentials("Invalid host password")
