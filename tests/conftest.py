import os
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.models.base import Base
from app.models.user import User, UserRole, UserStatus, VerificationStatus

# Test auth configuration
# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow
TEST_PASSWORD = "ValidPass123"  # nosec B105  # gitleaks:allow
TEST_BCRYPT_ROUNDS = 4  # Low cost factor for fast tests

# Fixed starting instant for the controllable clock
TEST_NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)

TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _test_database_url(tmp_path: Path) -> str:
    """TEST_DATABASE_URL from the environment, else a throwaway SQLite file.

    Point TEST_DATABASE_URL at a PostgreSQL database to exercise real
    row locking (e.g. postgresql+asyncpg://user:pw@localhost/rental_test).
    """
    return os.environ.get(
        "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    )


# =============================================================================
# Clock and mail doubles
# =============================================================================


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = TEST_NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingMailer:
    """Mailer that records every message instead of sending it.

    Set ``fail`` to make every send report failure, or ``fail_times`` to
    fail only the first N sends.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str | None]] = []
        self.attempts = 0
        self.fail = False
        self.fail_times = 0

    def _should_fail(self) -> bool:
        self.attempts += 1
        if self.fail:
            return True
        if self.fail_times > 0:
            self.fail_times -= 1
            return True
        return False

    def _record(self, kind: str, email: str, code: str | None) -> bool:
        if self._should_fail():
            return False
        self.sent.append((kind, email, code))
        return True

    async def send_confirmation(self, user, record) -> bool:
        return self._record("confirmation", user.email, record.code)

    async def send_resend(self, user, record) -> bool:
        return self._record("resend", user.email, record.code)

    async def send_password_reset(self, user, record) -> bool:
        return self._record("password_reset", user.email, record.code)

    async def send_password_changed_notice(self, user) -> bool:
        return self._record("password_changed", user.email, None)

    def of_kind(self, kind: str) -> list[tuple[str, str, str | None]]:
        return [m for m in self.sent if m[0] == kind]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(_test_database_url(tmp_path), echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession, clock: FrozenClock):
    """Factory that inserts a user directly, bypassing registration.

    Defaults to a verified, active regular user with TEST_PASSWORD.
    """
    from app.core.auth import hash_password

    counter = 0

    async def _make_user(**overrides) -> User:
        nonlocal counter
        counter += 1
        values = {
            "email": f"user{counter}@example.com",
            "name": f"User {counter}",
            "phone": f"300000{counter:04d}",
            "address": "123 Main Street",
            "id_document": f"DOC-{counter:04d}",
            "password_hash": hash_password(TEST_PASSWORD),
            "role": UserRole.USER.value,
            "status": UserStatus.ACTIVE.value,
            "verification_status": VerificationStatus.VERIFIED.value,
            "email_verified_at": clock(),
            "created_at": clock(),
            "updated_at": clock(),
        }
        values.update(overrides)
        user = User(**values)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def service(db_session: AsyncSession, mailer: RecordingMailer, clock: FrozenClock):
    """Credential lifecycle service bound to the test session and doubles."""
    from app.services.credential_lifecycle import CredentialLifecycleService

    return CredentialLifecycleService(db_session, mailer=mailer, clock=clock)


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    mailer: RecordingMailer,
    clock: FrozenClock,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database, clock and mailer.

    Overrides get_db, get_clock and get_mailer through
    app.dependency_overrides and clears them afterwards.
    """
    from app.api.deps import get_clock, get_mailer
    from app.core.database import get_db
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    """Authorization header for a session token."""
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def auth_settings() -> Iterator[None]:
    """Use a test signing secret, cheap bcrypt and near-instant mail retries.

    Yields:
        None (autouse fixture).
    """
    original = (
        settings.auth_secret,
        settings.bcrypt_rounds,
        settings.mail_retry_base_delay_ms,
        settings.mail_retry_max_delay_ms,
    )
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.bcrypt_rounds = TEST_BCRYPT_ROUNDS
    settings.mail_retry_base_delay_ms = 1
    settings.mail_retry_max_delay_ms = 5

    yield

    (
        settings.auth_secret,
        settings.bcrypt_rounds,
        settings.mail_retry_base_delay_ms,
        settings.mail_retry_max_delay_ms,
    ) = original


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from app.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled
