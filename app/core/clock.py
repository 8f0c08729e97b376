"""Injectable time source.

Services that compare timestamps (expiry, cooldown, retention) take a
``Clock`` instead of calling ``datetime.now`` directly, so tests can move
time forward without sleeping.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)
