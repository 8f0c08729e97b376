"""Admin maintenance router.

Manual triggers for the scheduled retention jobs. Restricted to staff
roles (admin, support); unauthenticated callers get 401, other roles 403.
"""

import logging

from fastapi import APIRouter

from app.api.deps import DbSession, RequestClock, StaffUser
from app.core.responses import DataResponse
from app.schemas.admin import DailyCleanupResponse, UnverifiedUserPurgeResponse
from app.services.retention_cleanup import purge_unverified_users, run_daily_cleanup

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# POST /admin/maintenance/cleanup-verification-codes
# =============================================================================


@router.post("/maintenance/cleanup-verification-codes")
async def cleanup_verification_codes(
    staff: StaffUser,
    db: DbSession,
    clock: RequestClock,
) -> DataResponse[DailyCleanupResponse]:
    """Run the daily cleanup: expired codes and expired revoked tokens."""
    result = await run_daily_cleanup(db, clock=clock)
    logger.info("Daily cleanup triggered by %s", staff.id)
    return DataResponse(
        data=DailyCleanupResponse(
            expired_verification_codes=result.expired_verification_codes,
            expired_revoked_tokens=result.expired_revoked_tokens,
        )
    )


# =============================================================================
# POST /admin/maintenance/purge-unverified-users
# =============================================================================


@router.post("/maintenance/purge-unverified-users")
async def purge_unverified(
    staff: StaffUser,
    db: DbSession,
    clock: RequestClock,
) -> DataResponse[UnverifiedUserPurgeResponse]:
    """Run the weekly purge of users who never verified their email."""
    result = await purge_unverified_users(db, clock=clock)
    logger.info("Unverified user purge triggered by %s", staff.id)
    return DataResponse(
        data=UnverifiedUserPurgeResponse(
            purged_users=result.purged_users,
            cutoff=result.cutoff,
        )
    )
