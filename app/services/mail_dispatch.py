"""Mail dispatch policy: inline with a deadline, or in the background with retries.

Registration and resend wait for the mail collaborator and report failure
to the client. Password reset codes and password-changed notices go out
after the response, retried with exponential backoff and jitter. A failed
background send never touches the already-committed verification record.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from fastapi import BackgroundTasks

from app.core.config import settings

logger = logging.getLogger(__name__)

SendFn = Callable[[], Awaitable[bool]]


async def send_with_timeout(send: SendFn, *, description: str) -> bool:
    """Run one send attempt bounded by the configured mail timeout.

    Args:
        send: Zero-argument coroutine function returning success.
        description: Short label for log lines (never includes secrets).

    Returns:
        True on success; False on failure, timeout, or collaborator error.
    """
    try:
        return await asyncio.wait_for(send(), timeout=settings.mail_timeout_seconds)
    except TimeoutError:
        logger.warning("Mail dispatch timed out: %s", description)
        return False
    except Exception:
        logger.warning("Mail dispatch raised: %s", description, exc_info=True)
        return False


async def send_with_retries(
    send: SendFn,
    *,
    description: str,
    max_attempts: int | None = None,
) -> bool:
    """Send with exponential backoff and jitter between failed attempts.

    Args:
        send: Zero-argument coroutine function returning success.
        description: Short label for log lines.
        max_attempts: Attempt budget. Defaults to settings.mail_max_attempts.

    Returns:
        True once an attempt succeeds, False after the budget is exhausted.
    """
    attempts = max_attempts
    if attempts is None:
        attempts = settings.mail_max_attempts

    for attempt in range(attempts):
        if await send_with_timeout(send, description=description):
            return True

        if attempt == attempts - 1:
            break

        base_delay = settings.mail_retry_base_delay_ms * (2**attempt)
        jitter = random.uniform(0, base_delay * 0.1)  # nosec B311
        delay = min(base_delay + jitter, settings.mail_retry_max_delay_ms) / 1000

        logger.warning(
            "Mail dispatch failed (attempt %d/%d): %s. Retrying in %.2fs",
            attempt + 1,
            attempts,
            description,
            delay,
        )
        await asyncio.sleep(delay)

    logger.error("Mail dispatch gave up after %d attempts: %s", attempts, description)
    return False


class MailDispatcher:
    """Chooses between inline and background delivery.

    Args:
        background_tasks: Request background task queue. When None (scripts,
            service tests) background sends run to completion inline.
    """

    def __init__(self, background_tasks: BackgroundTasks | None = None) -> None:
        self._background_tasks = background_tasks

    async def send_now(self, send: SendFn, *, description: str) -> bool:
        """Single bounded attempt whose outcome the caller acts on."""
        return await send_with_timeout(send, description=description)

    async def send_later(self, send: SendFn, *, description: str) -> None:
        """Deliver after the response with retries. Outcome is only logged."""
        if self._background_tasks is None:
            await send_with_retries(send, description=description)
            return
        self._background_tasks.add_task(
            send_with_retries, send, description=description
        )
