"""Tests for the admin maintenance router.

Both endpoints require a staff role: no token is 401, a regular user 403.
"""

from datetime import timedelta

import pytest

from app.core.session_tokens import SessionTokenIssuer
from app.models.user import UserRole, UserStatus, VerificationStatus
from app.models.verification_code import CodePurpose
from app.services.verification_store import VerificationStore
from tests.conftest import TEST_NOW, bearer

_PREFIX = "/api/v1/admin/maintenance"
_CLEANUP = f"{_PREFIX}/cleanup-verification-codes"
_PURGE = f"{_PREFIX}/purge-unverified-users"


@pytest.fixture
def token_for(db_session, clock):
    def _token_for(user) -> dict[str, str]:
        issued = SessionTokenIssuer(db_session, clock=clock).issue(user)
        return bearer(issued.token)

    return _token_for


class TestStaffGate:
    """Role gating shared by every maintenance endpoint."""

    @pytest.mark.parametrize("path", [_CLEANUP, _PURGE])
    async def test_unauthenticated_returns_401(self, client, path):
        response = await client.post(path)
        assert response.status_code == 401

    @pytest.mark.parametrize("path", [_CLEANUP, _PURGE])
    async def test_regular_user_returns_403(self, client, make_user, token_for, path):
        user = await make_user(role=UserRole.USER.value)

        response = await client.post(path, headers=token_for(user))

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "ROLE_REQUIRED"
        assert error["details"] == [{"required_roles": ["admin", "support"]}]

    @pytest.mark.parametrize("role", [UserRole.ADMIN.value, UserRole.SUPPORT.value])
    async def test_staff_roles_allowed(self, client, make_user, token_for, role):
        user = await make_user(role=role)

        response = await client.post(_CLEANUP, headers=token_for(user))

        assert response.status_code == 200


class TestCleanupVerificationCodes:
    """Tests for POST /admin/maintenance/cleanup-verification-codes."""

    async def test_deletes_expired_codes(
        self, client, make_user, token_for, db_session, clock
    ):
        admin = await make_user(role=UserRole.ADMIN.value)
        await VerificationStore(db_session, clock=clock).issue(
            "someone@example.com", CodePurpose.EMAIL_VERIFICATION
        )
        await db_session.commit()

        clock.advance(hours=1)
        response = await client.post(_CLEANUP, headers=token_for(admin))

        assert response.status_code == 200
        assert response.json()["data"] == {
            "expired_verification_codes": 1,
            "expired_revoked_tokens": 0,
        }


class TestPurgeUnverifiedUsers:
    """Tests for POST /admin/maintenance/purge-unverified-users."""

    async def test_purges_stale_pending_accounts(self, client, make_user, token_for):
        admin = await make_user(role=UserRole.ADMIN.value)
        await make_user(
            created_at=TEST_NOW - timedelta(days=8),
            verification_status=VerificationStatus.PENDING.value,
            status=UserStatus.INACTIVE.value,
            email_verified_at=None,
        )

        response = await client.post(_PURGE, headers=token_for(admin))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["purged_users"] == 1
        assert data["cutoff"].startswith("2026-02-23T12:00:00")
