"""Retention cleanup service.

Periodic maintenance for the credential tables, invoked by an external
scheduler (``python -m scripts.run_maintenance``) or by staff through the
admin endpoints.

Cleanup jobs:
- Expired verification codes (daily): rows past expires_at
- Expired revoked session tokens (daily): denylist rows past expires_at
- Unverified users (weekly): still pending verification 7 days after
  registration

Functions do not commit; the caller owns the transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.errors import APIError
from app.repositories.revoked_token_repository import RevokedTokenRepository
from app.repositories.user_repository import UserRepository
from app.services.verification_store import VerificationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyCleanupResult:
    """Result of the daily cleanup run.

    Attributes:
        expired_verification_codes: Verification codes deleted.
        expired_revoked_tokens: Revoked session token rows deleted.
    """

    expired_verification_codes: int
    expired_revoked_tokens: int


@dataclass(frozen=True)
class UnverifiedUserPurgeResult:
    """Result of the weekly unverified user purge.

    Attributes:
        purged_users: Users deleted.
        cutoff: Users registered before this instant were eligible.
    """

    purged_users: int
    cutoff: datetime


class CleanupError(APIError):
    """Raised when a cleanup operation fails at the database level."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="CLEANUP_ERROR",
            message=message,
            status_code=500,
        )


async def cleanup_expired_verification_codes(
    db: AsyncSession, *, clock: Clock = utc_now
) -> int:
    """Delete verification codes whose expiry has passed.

    Args:
        db: Database session.
        clock: Time source.

    Returns:
        Number of codes deleted.

    Raises:
        CleanupError: If the database operation fails.
    """
    try:
        deleted = await VerificationStore(db, clock=clock).cleanup_expired()
    except SQLAlchemyError as exc:
        logger.error("Verification code cleanup failed: %s", exc)
        raise CleanupError("Verification code cleanup failed") from exc
    logger.info("Deleted %d expired verification codes", deleted)
    return deleted


async def cleanup_revoked_session_tokens(
    db: AsyncSession, *, clock: Clock = utc_now
) -> int:
    """Delete denylist rows for tokens that have expired on their own.

    Raises:
        CleanupError: If the database operation fails.
    """
    try:
        deleted = await RevokedTokenRepository.delete_expired(db, now=clock())
    except SQLAlchemyError as exc:
        logger.error("Revoked session token cleanup failed: %s", exc)
        raise CleanupError("Revoked session token cleanup failed") from exc
    logger.info("Deleted %d expired revoked session tokens", deleted)
    return deleted


async def purge_unverified_users(
    db: AsyncSession,
    *,
    clock: Clock = utc_now,
    retention_days: int | None = None,
) -> UnverifiedUserPurgeResult:
    """Delete users still pending verification after the retention window.

    Args:
        db: Database session.
        clock: Time source.
        retention_days: Window in days. Defaults to
            settings.unverified_user_retention_days.

    Returns:
        UnverifiedUserPurgeResult with the count and cutoff used.

    Raises:
        CleanupError: If the database operation fails.
    """
    days = retention_days
    if days is None:
        days = settings.unverified_user_retention_days
    cutoff = clock() - timedelta(days=days)
    try:
        purged = await UserRepository.delete_pending_created_before(db, cutoff)
    except SQLAlchemyError as exc:
        logger.error("Unverified user purge failed: %s", exc)
        raise CleanupError("Unverified user purge failed") from exc
    logger.info("Purged %d unverified users registered before %s", purged, cutoff)
    return UnverifiedUserPurgeResult(purged_users=purged, cutoff=cutoff)


async def run_daily_cleanup(
    db: AsyncSession, *, clock: Clock = utc_now
) -> DailyCleanupResult:
    """Run both daily cleanup jobs.

    Raises:
        CleanupError: If either database operation fails.
    """
    return DailyCleanupResult(
        expired_verification_codes=await cleanup_expired_verification_codes(
            db, clock=clock
        ),
        expired_revoked_tokens=await cleanup_revoked_session_tokens(db, clock=clock),
    )
