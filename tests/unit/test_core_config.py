"""Tests for application configuration.

Settings for the database, authentication, mail delivery and the
verification code policy. Tests cover defaults and the startup validator.
"""

import pytest
from pydantic import ValidationError

from app.core.config import _INSECURE_DEFAULT_PASSWORD, Settings

# Reusable test constants
_SECURE_DB_PASSWORD = "my-secure-production-password-123!"  # nosec B105  # gitleaks:allow
_TEST_AUTH_SECRET = "a" * 64
_PRODUCTION = "production"


class TestDefaults:
    """Verification policy defaults."""

    def test_verification_defaults(self):
        s = Settings()
        assert s.verification_code_length == 6
        assert s.verification_code_ttl_minutes == 10
        assert s.verification_resend_cooldown_seconds == 60
        assert s.unverified_user_retention_days == 7

    def test_database_url_override_wins(self):
        s = Settings(database_url_override="sqlite+aiosqlite:///./dev.db")
        assert s.database_url == "sqlite+aiosqlite:///./dev.db"

    def test_database_url_from_fields(self):
        s = Settings(
            database_host="localhost",
            database_port=5432,
            database_user="u",
            database_password="p",
            database_name="d",
            database_url_override="",
        )
        assert s.database_url == "postgresql+asyncpg://u:p@localhost:5432/d"

    def test_env_vars_are_read(self, monkeypatch):
        monkeypatch.setenv("VERIFICATION_RESEND_COOLDOWN_SECONDS", "90")
        assert Settings().verification_resend_cooldown_seconds == 90


class TestPolicyValidation:
    """Invalid policy values fail at startup."""

    def test_code_length_below_four_rejected(self):
        with pytest.raises(ValidationError, match="VERIFICATION_CODE_LENGTH"):
            Settings(verification_code_length=3)

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_bcrypt_rounds_out_of_range(self, rounds):
        with pytest.raises(ValidationError, match="BCRYPT_ROUNDS"):
            Settings(bcrypt_rounds=rounds)

    @pytest.mark.parametrize(
        "field",
        [
            "verification_code_ttl_minutes",
            "verification_resend_cooldown_seconds",
            "unverified_user_retention_days",
            "session_ttl_minutes",
            "mail_max_attempts",
        ],
    )
    def test_non_positive_values_rejected(self, field):
        with pytest.raises(ValidationError, match="must be positive"):
            Settings(**{field: 0})

    def test_wildcard_cors_rejected(self):
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(allowed_origins=["*"])


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_allows_default_password_in_development(self):
        s = Settings(
            environment="development",
            database_password=_INSECURE_DEFAULT_PASSWORD,
        )
        assert s.database_password == _INSECURE_DEFAULT_PASSWORD

    def test_rejects_default_password_in_production(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                environment=_PRODUCTION,
                database_password=_INSECURE_DEFAULT_PASSWORD,
                auth_secret=_TEST_AUTH_SECRET,
            )

        assert "Cannot use default database password in production" in str(
            exc_info.value
        )

    def test_allows_secure_production_config(self):
        s = Settings(
            environment=_PRODUCTION,
            database_password=_SECURE_DB_PASSWORD,
            auth_secret=_TEST_AUTH_SECRET,
        )
        assert s.environment == _PRODUCTION

    def test_rejects_missing_auth_secret_in_production(self):
        with pytest.raises(ValidationError, match="AUTH_SECRET must be set"):
            Settings(environment=_PRODUCTION, database_password=_SECURE_DB_PASSWORD)

    def test_rejects_short_auth_secret_in_production(self):
        with pytest.raises(ValidationError, match="at least 32"):
            Settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                auth_secret="too-short",
            )
