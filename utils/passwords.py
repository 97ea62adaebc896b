"""
Credential helpers: bcrypt password hashing, join codes and opaque ids.

- host and team passwords are stored as bcrypt hashes and checked with
  `verify_password`
- join codes must be looked up by value, so they are stored as SHA-256 hex
  digests of the normalized code
- session tokens and row ids are random, url-safe strings
"""

import hashlib
import secrets

import bcrypt

import config


def hash_password(password: str) -> bytes:
	"""Hash a password using bcrypt; the salt is embedded in the result."""
	salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
	return bcrypt.hashpw(password.encode(), salt)


def verify_password(password: str, hashed: bytes | None) -> bool:
	"""Verify a password against a bcrypt hash."""
	if not password or not hashed:
		return False
	try:
		return bcrypt.checkpw(password.encode(), hashed)
	except ValueError:
		# malformed hash or over-long password
		return False


def new_join_code(length: int = 8) -> str:
	return secrets.token_hex(length).upper()[:length]


def hash_join_code(code: str) -> str:
	return hashlib.sha256(code.encode()).hexdigest()


def new_id(prefix: str) -> str:
	return f"{prefix}_{secrets.token_hex(12)}"


def new_session_token() -> str:
	return secrets.token_urlsafe(32)
