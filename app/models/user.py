"""User model - identity and credential state.

A user is created ``inactive`` / ``pending`` by registration and becomes
``active`` / ``verified`` only through a consumed email-verification code.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class UserStatus(str, Enum):
    """Account status controlling whether the user may sign in."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class VerificationStatus(str, Enum):
    """Whether the user's email address has been verified."""

    PENDING = "pending"
    VERIFIED = "verified"


class UserRole(str, Enum):
    """Authorization role. Staff roles unlock maintenance endpoints."""

    USER = "user"
    ADMIN = "admin"
    SUPPORT = "support"


class User(Base, TimestampMixin):
    """Platform account.

    Attributes:
        id: UUID primary key.
        email: Unique email address, stored lowercase and trimmed.
        name: Display name.
        phone: Unique phone number (digits only).
        address: Postal address.
        id_document: Unique national identity document number.
        password_hash: bcrypt hash.
        role: One of UserRole.
        status: One of UserStatus.
        verification_status: One of VerificationStatus.
        email_verified_at: When the verification code was consumed.
        session_version: Counter carried in every session token. Bumped on
            password reset or change so all earlier tokens stop working.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'suspended')",
            name="ck_users_status",
        ),
        CheckConstraint(
            "verification_status IN ('pending', 'verified')",
            name="ck_users_verification_status",
        ),
        CheckConstraint(
            "role IN ('user', 'admin', 'support')",
            name="ck_users_role",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    phone: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
    )
    address: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    id_document: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserStatus.INACTIVE.value,
        server_default=UserStatus.INACTIVE.value,
    )
    verification_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=VerificationStatus.PENDING.value,
        server_default=VerificationStatus.PENDING.value,
        index=True,
    )
    email_verified_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    session_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED.value

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
