"""Password hashing and validation helpers.

Shared by the credential lifecycle service:
- hash_password / verify_password: bcrypt with a configurable cost factor
- validate_password_strength: format rules (sync, no network)
- DUMMY_HASH: timing-safe constant for user enumeration defense
"""

import re

import bcrypt

from app.core.config import settings
from app.core.errors import ValidationError

_MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
_MAX_PASSWORD_LENGTH = 72

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password.

    Returns:
        bcrypt hash as text.
    """
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash.

    When no hash is available the comparison still runs against
    DUMMY_HASH so the response time does not reveal whether the
    account exists.

    Args:
        password: Plain-text password supplied by the client.
        password_hash: Stored bcrypt hash, or None for an unknown account.

    Returns:
        True only when a real hash matches.
    """
    if not password_hash:
        bcrypt.checkpw(password.encode(), DUMMY_HASH)
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def validate_password_strength(password: str) -> None:
    """Validate password meets strength requirements.

    8-72 chars, at least one letter and one number.

    Args:
        password: Plain-text password to validate.

    Raises:
        ValidationError: If password doesn't meet requirements.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {_MIN_PASSWORD_LENGTH} characters"
        )
    if len(password.encode()) > _MAX_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at most {_MAX_PASSWORD_LENGTH} bytes"
        )
    if not re.search(r"[a-zA-Z]", password):
        raise ValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one number")
