"""Revoked session token model - denylist of logged-out bearer tokens.

Only the ``jti`` claim is stored. Rows can be deleted once ``expires_at``
has passed, because the token would be rejected on expiry anyway.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class RevokedSessionToken(Base):
    """Session token invalidated before its natural expiry.

    Attributes:
        id: UUID primary key.
        jti: JWT ID claim of the revoked token. Unique.
        user_id: Subject of the revoked token.
        expires_at: Original expiry of the token.
        revoked_at: When the token was invalidated.
    """

    __tablename__ = "revoked_session_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    jti: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
    revoked_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
