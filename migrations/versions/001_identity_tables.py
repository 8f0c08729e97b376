"""Create identity tables: users, verification_codes, revoked_session_tokens.

Revision ID: 001_identity_tables
Revises:
Create Date: 2026-10-19

- users: account, contact details, status, verification and role
- verification_codes: history of issued code/token pairs per purpose
- revoked_session_tokens: denylist of logged-out bearer tokens
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_identity_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # users
    # =========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("id_document", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("status", sa.String(20), nullable=False, server_default="inactive"),
        sa.Column(
            "verification_status",
            sa.String(20),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "session_version", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'suspended')",
            name="ck_users_status",
        ),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'verified')",
            name="ck_users_verification_status",
        ),
        sa.CheckConstraint(
            "role IN ('user', 'admin', 'support')",
            name="ck_users_role",
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("phone", name="uq_users_phone"),
        sa.UniqueConstraint("id_document", name="uq_users_id_document"),
    )
    # Weekly purge scans pending users by age
    op.create_index(
        "ix_users_verification_status", "users", ["verification_status"]
    )

    # =========================================================================
    # verification_codes
    # =========================================================================
    op.create_table(
        "verification_codes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("code", sa.String(12), nullable=False),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("purpose", sa.String(30), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "purpose IN ('email_verification', 'password_reset')",
            name="ck_verification_codes_purpose",
        ),
        sa.UniqueConstraint("token", name="uq_verification_codes_token"),
    )
    # Cooldown reads the newest issuance per (email, purpose)
    op.create_index(
        "ix_verification_codes_email_purpose_created",
        "verification_codes",
        ["email", "purpose", "created_at"],
    )
    op.create_index(
        "ix_verification_codes_expires_at", "verification_codes", ["expires_at"]
    )

    # =========================================================================
    # revoked_session_tokens
    # =========================================================================
    op.create_table(
        "revoked_session_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("jti", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("jti", name="uq_revoked_session_tokens_jti"),
    )
    op.create_index(
        "ix_revoked_session_tokens_user_id", "revoked_session_tokens", ["user_id"]
    )


def downgrade() -> None:
    op.drop_table("revoked_session_tokens")
    op.drop_index(
        "ix_verification_codes_expires_at", table_name="verification_codes"
    )
    op.drop_index(
        "ix_verification_codes_email_purpose_created",
        table_name="verification_codes",
    )
    op.drop_table("verification_codes")
    op.drop_index("ix_users_verification_status", table_name="users")
    op.drop_table("users")
