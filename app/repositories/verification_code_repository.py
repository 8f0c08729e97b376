"""Repository for VerificationCode operations.

Every lookup takes the purpose as a required argument, so a code issued
for one flow can never be found by another. Consumption goes through
``mark_used``, a single conditional UPDATE that only one caller can win.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.verification_code import CodePurpose, VerificationCode


class VerificationCodeRepository:
    """Stateless repository for VerificationCode table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        code: str,
        token: str,
        purpose: CodePurpose,
        expires_at: datetime,
        created_at: datetime,
    ) -> VerificationCode:
        """Store a new verification code.

        Args:
            db: Async database session.
            email: Normalized recipient address.
            code: Numeric code sent by email.
            token: Opaque companion token.
            purpose: Flow the code belongs to.
            expires_at: Instant at which the code stops being valid.
            created_at: Issuance instant.

        Returns:
            Created VerificationCode.
        """
        record = VerificationCode(
            email=email,
            code=code,
            token=token,
            purpose=purpose.value,
            used=False,
            expires_at=expires_at,
            created_at=created_at,
        )
        db.add(record)
        await db.flush()
        return record

    @staticmethod
    async def token_exists(db: AsyncSession, token: str) -> bool:
        """Check whether any record, in any state, already uses a token."""
        stmt = select(exists().where(VerificationCode.token == token))
        result = await db.execute(stmt)
        return bool(result.scalar())

    @staticmethod
    async def get_by_token(
        db: AsyncSession,
        *,
        token: str,
        purpose: CodePurpose,
    ) -> VerificationCode | None:
        """Look up an unconsumed record by its token.

        Args:
            db: Async database session.
            token: Opaque token.
            purpose: Required purpose.

        Returns:
            VerificationCode if found, None otherwise.
        """
        stmt = select(VerificationCode).where(
            VerificationCode.token == token,
            VerificationCode.purpose == purpose.value,
            VerificationCode.used.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_unused_by_code_and_token(
        db: AsyncSession,
        *,
        code: str,
        token: str,
        purpose: CodePurpose,
    ) -> VerificationCode | None:
        """Look up an unconsumed record matching both code and token.

        Args:
            db: Async database session.
            code: Numeric code.
            token: Opaque token.
            purpose: Required purpose.

        Returns:
            VerificationCode if found, None otherwise.
        """
        stmt = select(VerificationCode).where(
            VerificationCode.code == code,
            VerificationCode.token == token,
            VerificationCode.purpose == purpose.value,
            VerificationCode.used.is_(False),
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_unused_by_email_and_code(
        db: AsyncSession,
        *,
        email: str,
        code: str,
        purpose: CodePurpose,
    ) -> VerificationCode | None:
        """Look up the newest unconsumed record for an email and code.

        Codes are short, so older history rows for the same email may
        share one. The most recent issuance wins.

        Args:
            db: Async database session.
            email: Normalized email address.
            code: Numeric code.
            purpose: Required purpose.

        Returns:
            VerificationCode if found, None otherwise.
        """
        stmt = (
            select(VerificationCode)
            .where(
                VerificationCode.email == email,
                VerificationCode.code == code,
                VerificationCode.purpose == purpose.value,
                VerificationCode.used.is_(False),
            )
            .order_by(VerificationCode.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def latest_created_at(
        db: AsyncSession,
        *,
        email: str,
        purpose: CodePurpose,
    ) -> datetime | None:
        """Return the newest issuance instant for (email, purpose).

        Used and expired records count: the cooldown applies to issuance,
        not to validity.

        Args:
            db: Async database session.
            email: Normalized email address.
            purpose: Purpose to inspect.

        Returns:
            created_at of the most recent record, or None without history.
        """
        stmt = (
            select(VerificationCode.created_at)
            .where(
                VerificationCode.email == email,
                VerificationCode.purpose == purpose.value,
            )
            .order_by(VerificationCode.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def mark_used(db: AsyncSession, record_id: uuid.UUID) -> bool:
        """Flip ``used`` from false to true in one conditional UPDATE.

        Args:
            db: Async database session.
            record_id: Primary key of the record to consume.

        Returns:
            True if this call performed the transition, False if the record
            was already used (or no longer exists).
        """
        stmt = (
            update(VerificationCode)
            .where(
                VerificationCode.id == record_id,
                VerificationCode.used.is_(False),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all records whose expiry has passed (periodic cleanup).

        Args:
            db: Async database session.
            now: Reference instant.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationCode).where(
            VerificationCode.expires_at < now,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
