"""Time utilities: timezone-aware helpers and ISO formatting/parsing.

Timestamps are stored as UTC ISO-8601 strings; these helpers keep the
conversions consistent across stores and services.
"""
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
	"""Return current UTC datetime with tzinfo set."""
	return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
	"""Attach UTC to naive datetimes and convert aware ones to UTC."""
	if dt.tzinfo is None:
		return dt.replace(tzinfo=timezone.utc)
	return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
	"""Serialize a datetime to an ISO8601 UTC string with millisecond precision."""
	return as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(s: Optional[str]) -> Optional[datetime]:
	"""Parse an ISO8601 string into a timezone-aware datetime when possible.

	Returns None on obvious parse failures.
	"""
	if not s:
		return None
	try:
		# Python's fromisoformat handles most variants; tolerate trailing Z.
		if s.endswith("Z"):
			s = s[:-1] + "+00:00"
		return as_utc(datetime.fromisoformat(s))
	except ValueError:
		return None


def ms_until(iso: Optional[str], now: datetime) -> Optional[int]:
	"""Milliseconds from `now` until `iso` (negative once it has passed)."""
	target = parse_iso(iso)
	if target is None:
		return None
	return int((target - as_utc(now)).total_seconds() * 1000)


def epoch_ms(iso: Optional[str]) -> int:
	"""Epoch milliseconds of `iso`, or 0 when missing/unparseable."""
	dt = parse_iso(iso)
	if dt is None:
		return 0
	return int(dt.timestamp() * 1000)
