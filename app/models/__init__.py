"""SQLAlchemy ORM models for the rental platform identity backend.

All models are exported from this module for convenient imports:
    from app.models import User, VerificationCode, ...

Models:
- user.py: User plus its status, verification and role enums
- verification_code.py: VerificationCode history rows and CodePurpose
- revoked_session_token.py: RevokedSessionToken denylist
"""

from app.models.base import Base, TimestampMixin, UTCDateTime
from app.models.revoked_session_token import RevokedSessionToken
from app.models.user import User, UserRole, UserStatus, VerificationStatus
from app.models.verification_code import CodePurpose, VerificationCode

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    # Identity
    "User",
    "UserRole",
    "UserStatus",
    "VerificationStatus",
    # Credentials
    "CodePurpose",
    "RevokedSessionToken",
    "VerificationCode",
]
