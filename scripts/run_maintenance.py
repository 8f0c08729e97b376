"""Scheduled retention maintenance.

Standalone entry point for an external scheduler (cron, Kubernetes
CronJob). Each run opens its own session and commits on success.

Usage:
    python -m scripts.run_maintenance daily    # expired codes + revoked tokens
    python -m scripts.run_maintenance weekly   # unverified users > 7 days old

Suggested schedule: daily at 03:00, weekly on Sunday at 04:00.
"""

import argparse
import asyncio
import logging
import sys

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.database import session_scope
from app.services.retention_cleanup import (
    CleanupError,
    purge_unverified_users,
    run_daily_cleanup,
)

logger = structlog.get_logger()


async def run_job(
    job: str,
    *,
    factory: async_sessionmaker[AsyncSession] | None = None,
    clock: Clock = utc_now,
) -> dict[str, int]:
    """Run one maintenance job in its own transaction.

    Args:
        job: "daily" or "weekly".
        factory: Session factory. Defaults to the application factory.
        clock: Time source.

    Returns:
        Counts of deleted rows keyed by category.

    Raises:
        ValueError: Unknown job name.
        CleanupError: The database operation failed.
    """
    async with session_scope(factory) as session:
        if job == "daily":
            daily = await run_daily_cleanup(session, clock=clock)
            counts = {
                "expired_verification_codes": daily.expired_verification_codes,
                "expired_revoked_tokens": daily.expired_revoked_tokens,
            }
        elif job == "weekly":
            purge = await purge_unverified_users(session, clock=clock)
            counts = {"purged_users": purge.purged_users}
        else:
            msg = f"Unknown maintenance job: {job}"
            raise ValueError(msg)

    logger.info("Maintenance job complete", job=job, **counts)
    return counts


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("job", choices=["daily", "weekly"])
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(run_job(args.job))
    except CleanupError:
        logger.error("Maintenance job failed", job=args.job)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
