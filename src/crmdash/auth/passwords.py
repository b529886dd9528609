"""Password hashing and verification using bcrypt."""

from __future__ import annotations

import bcrypt

from crmdash.errors import InvalidInput

DEFAULT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str | None, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a plaintext password with bcrypt. Returns a utf-8 string."""
    if not password:
        raise InvalidInput("Password must not be empty")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str | None, hashed: str | None) -> bool:
    """Return True if password matches the stored bcrypt hash. Never raises."""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def is_hashed(value: str) -> bool:
    return len(value) == 60 and value.startswith(_BCRYPT_PREFIXES)
