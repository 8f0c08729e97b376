"""Repository for the revoked session token denylist."""

import uuid
from datetime import datetime

from sqlalchemy import delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.revoked_session_token import RevokedSessionToken


class RevokedTokenRepository:
    """Stateless repository for RevokedSessionToken table operations."""

    @staticmethod
    async def add(
        db: AsyncSession,
        *,
        jti: str,
        user_id: uuid.UUID,
        expires_at: datetime,
        revoked_at: datetime,
    ) -> None:
        """Record a token as revoked. Revoking twice is a no-op."""
        if await RevokedTokenRepository.is_revoked(db, jti):
            return
        db.add(
            RevokedSessionToken(
                jti=jti,
                user_id=user_id,
                expires_at=expires_at,
                revoked_at=revoked_at,
            )
        )
        await db.flush()

    @staticmethod
    async def is_revoked(db: AsyncSession, jti: str) -> bool:
        stmt = select(exists().where(RevokedSessionToken.jti == jti))
        result = await db.execute(stmt)
        return bool(result.scalar())

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete denylist rows for tokens that have expired on their own.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(RevokedSessionToken).where(RevokedSessionToken.expires_at < now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
