"""Password hashing for employee accounts (bcrypt)."""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of the secret.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password using bcrypt.

    Raises:
        ValueError: If password is empty or longer than bcrypt accepts.
    """
    if not password:
        raise ValueError("Password cannot be empty")
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password exceeds maximum length of {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Return ``True`` if *password* matches the stored bcrypt *hashed* value."""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


__all__ = ["hash_password", "verify_password"]
