"""Auth API response schemas.

Request bodies live next to their endpoints in app/api/v1/auth.py; the
shapes returned by several endpoints are shared here.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.core.session_tokens import IssuedToken


class UserResponse(BaseModel):
    """Public projection of a user. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    phone: str
    address: str
    role: str
    status: str
    verification_status: str
    email_verified_at: datetime | None
    created_at: datetime


class SessionTokenResponse(BaseModel):
    """Bearer session token as returned to the client.

    ``access_token`` is None only when verification succeeded but the
    session could not be signed; the client should then sign in.
    """

    access_token: str | None
    token_type: str = "bearer"
    expires_in: int | None

    @classmethod
    def from_issued(cls, issued: IssuedToken | None) -> "SessionTokenResponse":
        if issued is None:
            return cls(access_token=None, expires_in=None)
        return cls(
            access_token=issued.token,
            token_type=issued.token_type,
            expires_in=issued.expires_in,
        )


class AuthenticatedUserResponse(SessionTokenResponse):
    """Session token together with the user it belongs to."""

    user: UserResponse


class RegistrationResponse(BaseModel):
    """Result of a successful registration.

    The code itself is only delivered by email; the token lets the client
    pair the code with this registration.
    """

    user: UserResponse
    email: str
    verification_required: bool = True
    verification_token: str
    expires_in: int


class CodeIssuedResponse(BaseModel):
    """Acknowledgement for endpoints that (may) issue a code.

    ``expires_in`` is the code lifetime in seconds.
    """

    message: str
    expires_in: int


class MessageResponse(BaseModel):
    message: str
