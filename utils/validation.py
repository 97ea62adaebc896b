"""Validation and normalization helpers.

Lightweight name rules used by the registry for clans, teams and
participants, plus the header checks used for webhook overrides.
"""
import regex as re


# Allow: any Unicode letter/mark/number, spaces, plus a small, explicit set of name punctuation
VALID_NAME_RE = re.compile(r"^[\p{L}\p{M}\p{N} _.'\-`’·&]+$", flags=re.UNICODE)

# Only genuine Discord webhook endpoints may be used as a per-request override
DISCORD_WEBHOOK_RE = re.compile(r"^https://(canary\.|ptb\.)?discord\.com/api/webhooks/.+", flags=re.IGNORECASE)

MAX_NAME_LENGTH = 80


def normalize_name(s: str) -> str:
	"""Trim surrounding whitespace; names compare on their trimmed form."""
	return (s or "").strip()


def name_key(s: str) -> str:
	"""Case-insensitive comparison key for participant names."""
	return normalize_name(s).casefold()


def is_valid_name(s: str) -> bool:
	"""Return True if `s` is a reasonable name for clans/teams/participants.

	- Strips and enforces a sensible maximum length.
	- Uses Unicode-aware character class matching.
	"""
	if not s:
		return False
	s = s.strip()
	if len(s) == 0 or len(s) > MAX_NAME_LENGTH:
		return False
	return bool(VALID_NAME_RE.match(s))


def normalize_join_code(code: str) -> str:
	return (code or "").strip().upper()


def webhook_override(raw: str | None) -> str | None:
	"""Return the header value if it is an acceptable webhook URL, else None."""
	s = (raw or "").strip()
	if not s or not DISCORD_WEBHOOK_RE.match(s):
		return None
	return s
