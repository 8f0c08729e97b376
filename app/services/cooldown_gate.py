"""Resend cooldown gate.

Decides whether a new code may be issued for (email, purpose) based on the
most recent issuance, used or expired records included. Read-only: callers
that act on the answer must hold the identity row lock so two requests
cannot both pass the gate.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.models.verification_code import CodePurpose
from app.services.verification_store import VerificationStore


@dataclass(frozen=True)
class CooldownStatus:
    """Outcome of a cooldown check.

    Attributes:
        can_resend: True when no issuance happened within the window.
        remaining: Whole seconds left in the window, rounded up. 0 when
            can_resend is True.
    """

    can_resend: bool
    remaining: int


def evaluate_cooldown(
    last_issued_at: datetime | None,
    now: datetime,
    window: timedelta,
) -> CooldownStatus:
    """Compute cooldown status from the last issuance instant.

    Args:
        last_issued_at: created_at of the newest record, or None.
        now: Current instant.
        window: Minimum spacing between issuances.

    Returns:
        CooldownStatus for the given instant.
    """
    if last_issued_at is None:
        return CooldownStatus(can_resend=True, remaining=0)

    elapsed = now - last_issued_at
    if elapsed >= window:
        return CooldownStatus(can_resend=True, remaining=0)

    remaining = math.ceil((window - elapsed).total_seconds())
    return CooldownStatus(can_resend=False, remaining=max(remaining, 0))


class CooldownGate:
    """Cooldown check bound to a session and a clock."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        clock: Clock = utc_now,
        window: timedelta | None = None,
    ) -> None:
        self._store = VerificationStore(db, clock=clock)
        self._clock = clock
        if window is None:
            window = timedelta(seconds=settings.verification_resend_cooldown_seconds)
        self._window = window

    @property
    def window(self) -> timedelta:
        return self._window

    async def check_cooldown(self, email: str, purpose: CodePurpose) -> CooldownStatus:
        """Check whether a new code may be issued now.

        Args:
            email: Normalized email address.
            purpose: Flow being issued for.

        Returns:
            CooldownStatus relative to the clock's current instant.
        """
        last = await self._store.latest_issued_at(email, purpose)
        return evaluate_cooldown(last, self._clock(), self._window)
