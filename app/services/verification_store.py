"""Verification store: the only owner of VerificationCode mutations.

Constructed per request with a database session and a clock, so several
stores can run side by side and tests can pin time. The store issues
records, looks them up by purpose, consumes them with a compare-and-set,
and deletes expired history.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.errors import GenerationError
from app.models.verification_code import CodePurpose, VerificationCode
from app.repositories.verification_code_repository import VerificationCodeRepository
from app.services import code_generator

logger = logging.getLogger(__name__)

_MAX_TOKEN_ATTEMPTS = 5
"""Regeneration budget when a token collides with an existing record."""


class VerificationStore:
    """Persistence and validity rules for verification records.

    Args:
        db: Async database session. The caller owns the transaction.
        clock: Time source for issuance, expiry and cleanup.
    """

    def __init__(self, db: AsyncSession, *, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def issue(
        self,
        email: str,
        purpose: CodePurpose,
        ttl: timedelta | None = None,
    ) -> VerificationCode:
        """Generate and persist a new, unused record.

        Older records for the same (email, purpose) are left untouched and
        remain consumable until they expire.

        Args:
            email: Normalized recipient address.
            purpose: Flow the record belongs to.
            ttl: Validity window. Defaults to the configured code TTL.

        Returns:
            The persisted VerificationCode.

        Raises:
            GenerationError: If no unique token could be produced.
        """
        if ttl is None:
            ttl = timedelta(minutes=settings.verification_code_ttl_minutes)

        for _ in range(_MAX_TOKEN_ATTEMPTS):
            credential = code_generator.generate(purpose)
            if await VerificationCodeRepository.token_exists(
                self._db, credential.token
            ):
                logger.warning("Verification token collision, regenerating")
                continue

            now = self._clock()
            return await VerificationCodeRepository.create(
                self._db,
                email=email,
                code=credential.code,
                token=credential.token,
                purpose=purpose,
                expires_at=now + ttl,
                created_at=now,
            )

        raise GenerationError("Could not generate a unique verification token")

    async def find_by_token(
        self, token: str, purpose: CodePurpose
    ) -> VerificationCode | None:
        """Find an unconsumed record by token for the given purpose."""
        return await VerificationCodeRepository.get_by_token(
            self._db, token=token, purpose=purpose
        )

    async def find_by_code_and_token(
        self, code: str, token: str, purpose: CodePurpose
    ) -> VerificationCode | None:
        """Find an unconsumed record matching both code and token."""
        return await VerificationCodeRepository.get_unused_by_code_and_token(
            self._db, code=code, token=token, purpose=purpose
        )

    async def find_by_email_and_code(
        self, email: str, code: str, purpose: CodePurpose
    ) -> VerificationCode | None:
        """Find the newest unconsumed record for an email and code."""
        return await VerificationCodeRepository.get_unused_by_email_and_code(
            self._db, email=email, code=code, purpose=purpose
        )

    async def latest_issued_at(
        self, email: str, purpose: CodePurpose
    ) -> datetime | None:
        """Newest issuance instant for (email, purpose), any state."""
        return await VerificationCodeRepository.latest_created_at(
            self._db, email=email, purpose=purpose
        )

    async def mark_used(self, record: VerificationCode) -> bool:
        """Consume a record.

        Returns:
            True if this caller flipped ``used``; False if another caller
            already had. Never raises for an already-used record.
        """
        won = await VerificationCodeRepository.mark_used(self._db, record.id)
        if won:
            set_committed_value(record, "used", True)
        return won

    def is_expired(self, record: VerificationCode) -> bool:
        """A record is expired at and after its expires_at instant."""
        return self._clock() >= record.expires_at

    def is_consumable(self, record: VerificationCode, purpose: CodePurpose) -> bool:
        return (
            not record.used
            and record.purpose == purpose.value
            and not self.is_expired(record)
        )

    async def cleanup_expired(self) -> int:
        """Delete records whose expiry has passed.

        Returns:
            Number of deleted records.
        """
        return await VerificationCodeRepository.delete_expired(
            self._db, now=self._clock()
        )
