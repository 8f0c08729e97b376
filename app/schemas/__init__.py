"""Pydantic response schemas for API endpoints."""

from app.schemas.admin import DailyCleanupResponse, UnverifiedUserPurgeResponse
from app.schemas.auth import (
    AuthenticatedUserResponse,
    CodeIssuedResponse,
    MessageResponse,
    RegistrationResponse,
    SessionTokenResponse,
    UserResponse,
)

__all__ = [
    # Admin maintenance
    "DailyCleanupResponse",
    "UnverifiedUserPurgeResponse",
    # Auth
    "AuthenticatedUserResponse",
    "CodeIssuedResponse",
    "MessageResponse",
    "RegistrationResponse",
    "SessionTokenResponse",
    "UserResponse",
]
