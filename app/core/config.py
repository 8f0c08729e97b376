"""Application configuration loaded from environment variables.

Settings for the database, API, authentication, email delivery, and the
verification-code policy. Uses pydantic-settings for validation and .env
file support.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "rental_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "rental_platform"
    database_user: str = "rental_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; takes precedence over the individual fields when set
    database_url_override: str = ""

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Production: Set ALLOWED_ORIGINS to specific domain(s)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication (bearer session tokens)
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "rental-platform"
    auth_audience: str = "rental-platform-api"
    session_ttl_minutes: int = 60
    session_remember_ttl_days: int = 30
    # bcrypt cost factor for password hashing
    bcrypt_rounds: int = 12

    # Email (Resend API)
    email_from: str = "noreply@rental-platform.example"
    resend_api_key: SecretStr = SecretStr("")
    mail_timeout_seconds: float = 10.0
    mail_max_attempts: int = 3
    mail_retry_base_delay_ms: int = 500
    mail_retry_max_delay_ms: int = 5000

    # Frontend URL (links in outgoing emails)
    frontend_url: str = "http://localhost:3000"

    # Verification codes
    verification_code_length: int = 6
    verification_code_ttl_minutes: int = 10
    verification_resend_cooldown_seconds: int = 60
    unverified_user_retention_days: int = 7

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants and production security requirements.

        Checks:
        - Verification code length, TTL and cooldown must be positive
        - bcrypt cost factor must be within bcrypt's supported range
        - Session TTLs and mail attempts must be positive
        - CORS must not use wildcard origin
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if self.verification_code_length < 4:
            msg = (
                "VERIFICATION_CODE_LENGTH must be at least 4. "
                f"Got: {self.verification_code_length}"
            )
            raise ValueError(msg)

        if not 4 <= self.bcrypt_rounds <= 31:
            msg = f"BCRYPT_ROUNDS must be between 4 and 31. Got: {self.bcrypt_rounds}"
            raise ValueError(msg)

        positive_fields = {
            "VERIFICATION_CODE_TTL_MINUTES": self.verification_code_ttl_minutes,
            "VERIFICATION_RESEND_COOLDOWN_SECONDS": self.verification_resend_cooldown_seconds,
            "UNVERIFIED_USER_RETENTION_DAYS": self.unverified_user_retention_days,
            "SESSION_TTL_MINUTES": self.session_ttl_minutes,
            "SESSION_REMEMBER_TTL_DAYS": self.session_remember_ttl_days,
            "MAIL_MAX_ATTEMPTS": self.mail_max_attempts,
        }
        for name, value in positive_fields.items():
            if value <= 0:
                msg = f"{name} must be positive. Got: {value}"
                raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Bearer-authenticated browser clients need explicit origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if (
                not self.database_url_override
                and self.database_password == _INSECURE_DEFAULT_PASSWORD
            ):
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

        return self


settings = Settings()
