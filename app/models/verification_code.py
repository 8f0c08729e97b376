"""Verification code model - one issuance of a code/token pair.

Rows are history: a new issuance never overwrites an older one, and the
most recent ``created_at`` per (email, purpose) drives the resend cooldown.
A record is consumable only while ``used`` is false, ``now < expires_at``,
and the purpose matches the flow doing the lookup.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Index, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class CodePurpose(str, Enum):
    """Flow a verification code was issued for.

    Values:
        EMAIL_VERIFICATION: Confirms ownership of a newly registered email.
        PASSWORD_RESET: Authorizes setting a new password without the old one.
    """

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class VerificationCode(Base):
    """Issued verification code and its companion token.

    Attributes:
        id: UUID primary key.
        email: Recipient address, lowercase and trimmed.
        code: Short numeric code delivered by email.
        token: Opaque URL-safe token returned to the client. Globally unique.
        purpose: One of CodePurpose.
        used: One-way flag, flipped by a single compare-and-set.
        expires_at: Record is invalid at or after this instant.
        created_at: Issuance instant (cooldown basis).
    """

    __tablename__ = "verification_codes"
    __table_args__ = (
        CheckConstraint(
            "purpose IN ('email_verification', 'password_reset')",
            name="ck_verification_codes_purpose",
        ),
        Index(
            "ix_verification_codes_email_purpose_created",
            "email",
            "purpose",
            "created_at",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
    )
    purpose: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
