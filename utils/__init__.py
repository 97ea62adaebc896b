"""Utility helpers used across the project.

Exports:
- time helpers: `now_utc`, `as_utc`, `to_iso`, `parse_iso`, `ms_until`, `epoch_ms`
- validation helpers: `is_valid_name`, `normalize_name`, `name_key`,
  `normalize_join_code`, `webhook_override`, `VALID_NAME_RE`
- password helpers: `hash_password`, `verify_password`, `new_join_code`,
  `hash_join_code`, `new_id`, `new_session_token`

Credential checks live in `utils.credentials`; they depend on `stores` and are
imported from there directly.
"""

from .time import now_utc, as_utc, to_iso, parse_iso, ms_until, epoch_ms
from .validation import (
	is_valid_name,
	normalize_name,
	name_key,
	normalize_join_code,
	webhook_override,
	VALID_NAME_RE,
)
from .passwords import (
	hash_password,
	verify_password,
	new_join_code,
	hash_join_code,
	new_id,
	new_session_token,
)

__all__ = [
	"now_utc",
	"as_utc",
	"to_iso",
	"parse_iso",
	"ms_until",
	"epoch_ms",
	"is_valid_name",
	"normalize_name",
	"name_key",
	"normalize_join_code",
	"webhook_override",
	"VALID_NAME_RE",
	"hash_password",
	"verify_password",
	"new_join_code",
	"hash_join_code",
	"new_id",
	"new_session_token",
]
