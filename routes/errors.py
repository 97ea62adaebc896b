"""Map store/service exceptions onto HTTP errors."""
import logging

from fastapi import HTTPException

from stores import (
	StoreError,
	InvalidInput,
	MissingCredentials,
	InvalidCredentials,
	AuthFailure,
	EntityNotFound,
	TeamNotFound,
	Conflict,
	InvalidState,
)

logger = logging.getLogger(__name__)


def status_for(exc: StoreError) -> int:
	if isinstance(exc, MissingCredentials):
		return 401
	if isinstance(exc, (InvalidCredentials, AuthFailure)):
		return 403
	if isinstance(exc, EntityNotFound):
		return 404
	if isinstance(exc, Conflict):
		return 409
	if isinstance(exc, (InvalidInput, InvalidState)):
		return 400
	return 500


def to_http(exc: StoreError) -> HTTPException:
	"""HTTPException carrying `{error, reason[, field]}` for a store error."""
	status = status_for(exc)
	if status == 500:
		logger.error(f"Unexpected store error: {exc!r}")
		return HTTPException(status_code=500, detail={"error": "Internal error", "reason": exc.reason})

	detail = {"error": str(exc) or exc.reason, "reason": exc.reason}
	if isinstance(exc, AuthFailure):
		# no detail beyond "invalid"
		detail["error"] = "Missing credentials" if status == 401 else "Invalid credentials"
	elif isinstance(exc, EntityNotFound):
		# store messages carry the id; keep the public text generic
		detail["error"] = "Team not found" if isinstance(exc, TeamNotFound) else "Game not found"
	field = getattr(exc, "field", None)
	if field:
		detail["field"] = field
	return HTTPException(status_code=status, detail=detail)
