"""Admin maintenance response schemas."""

from datetime import datetime

from pydantic import BaseModel


class DailyCleanupResponse(BaseModel):
    """Counts removed by the daily cleanup."""

    expired_verification_codes: int
    expired_revoked_tokens: int


class UnverifiedUserPurgeResponse(BaseModel):
    """Count removed by the weekly purge and the cutoff it used."""

    purged_users: int
    cutoff: datetime
