"""Password hashing and verification for stored account credentials."""

import bcrypt

from app.core.config import settings

# Min/max lengths for sign-up input validation.
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128
NAME_MAX_LEN = 48
EMAIL_MAX_LEN = 64

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False
