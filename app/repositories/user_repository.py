"""Repository for User CRUD operations.

Provides database access for the users table. Email is always compared
in its normalized form (trimmed, lowercase).
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, VerificationStatus

# Fields that may be updated via UserRepository.update().
# Security: Never add 'id', 'email', 'role', 'created_at', or 'updated_at'.
# - id: primary key, immutable
# - email: unique identity, requires dedicated flow with re-verification
# - role: mass-assignment privilege escalation
# - created_at/updated_at: server-managed timestamps
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "phone",
        "address",
        "password_hash",
        "status",
        "verification_status",
        "email_verified_at",
        "session_version",
    }
)


def normalize_email(email: str) -> str:
    """Return the canonical stored form of an email address."""
    return email.strip().lower()


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(
        db: AsyncSession, email: str, *, for_update: bool = False
    ) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.
            for_update: Lock the row (SELECT ... FOR UPDATE) until the
                surrounding transaction ends.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == normalize_email(email))
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def find_taken_fields(
        db: AsyncSession,
        *,
        email: str,
        phone: str,
        id_document: str,
    ) -> list[str]:
        """Report which unique registration fields are already in use.

        Args:
            db: Async database session.
            email: Candidate email address.
            phone: Candidate phone number.
            id_document: Candidate identity document number.

        Returns:
            Sorted names of the fields that collide with an existing user.
        """
        email = normalize_email(email)
        stmt = select(User.email, User.phone, User.id_document).where(
            or_(
                User.email == email,
                User.phone == phone,
                User.id_document == id_document,
            )
        )
        result = await db.execute(stmt)
        taken: set[str] = set()
        for row in result.all():
            if row.email == email:
                taken.add("email")
            if row.phone == phone:
                taken.add("phone")
            if row.id_document == id_document:
                taken.add("id_document")
        return sorted(taken)

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        name: str,
        phone: str,
        address: str,
        id_document: str,
        password_hash: str,
        created_at: datetime | None = None,
    ) -> User:
        """Create a new unverified, inactive user.

        Email is normalized before storage.

        Args:
            db: Async database session.
            email: User email address.
            name: Display name.
            phone: Phone number.
            address: Postal address.
            id_document: Identity document number.
            password_hash: bcrypt hash.
            created_at: Creation instant. Database default when omitted.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If a unique field already exists.
        """
        user = User(
            email=normalize_email(email),
            name=name,
            phone=phone,
            address=address,
            id_document=id_document,
            password_hash=password_hash,
        )
        if created_at is not None:
            user.created_at = created_at
            user.updated_at = created_at
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: str | int | datetime | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete_pending_created_before(
        db: AsyncSession, cutoff: datetime
    ) -> int:
        """Delete users still pending verification that registered before cutoff.

        Args:
            db: Async database session.
            cutoff: Users created strictly before this instant are removed.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(User).where(
            User.verification_status == VerificationStatus.PENDING.value,
            User.created_at < cutoff,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
