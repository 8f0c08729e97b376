"""Authentication endpoints.

Registration, email verification, code resend, sign-in, password reset
and change, and bearer session management.

Security considerations:
- login: constant-time comparison via DUMMY_HASH prevents user enumeration
- forgot-password: identical response whether or not the email exists
- verify-email / reset-password: one generic error for every invalid code
- every endpoint that accepts a secret is rate limited per client
"""

from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from app.api.deps import BearerToken, CredentialService, CurrentUser
from app.core.config import settings
from app.core.errors import NotFoundError, UnauthorizedError
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
from app.models.verification_code import CodePurpose
from app.schemas.auth import (
    AuthenticatedUserResponse,
    CodeIssuedResponse,
    MessageResponse,
    RegistrationResponse,
    SessionTokenResponse,
    UserResponse,
)
from app.services.credential_lifecycle import RegistrationData

router = APIRouter()

_PHONE_PATTERN = r"^[0-9]{10,20}$"
_CODE_PATTERN = r"^[0-9]{4,12}$"
_PASSWORD_MISMATCH_MSG = "Password confirmation does not match"  # nosec B105

_FORGOT_PASSWORD_MSG = "If an account exists for this email, a reset code has been sent"


def _code_ttl_seconds() -> int:
    return settings.verification_code_ttl_minutes * 60


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(pattern=_PHONE_PATTERN)
    password: str = Field(min_length=8, max_length=72)
    address: str = Field(min_length=5, max_length=255)
    id_document: str = Field(min_length=1, max_length=50)


class VerifyEmailRequest(BaseModel):
    """Request body for POST /auth/verify-email."""

    model_config = ConfigDict(extra="forbid")

    code: str = Field(pattern=_CODE_PATTERN)
    token: str = Field(min_length=1, max_length=128)


class CheckTokenRequest(BaseModel):
    """Request body for POST /auth/verify-email-check."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(min_length=1, max_length=128)


class ResendCodeRequest(BaseModel):
    """Request body for POST /auth/resend-code."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    purpose: Literal["email_verification", "password_reset"] = "email_verification"


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    remember: bool = False


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password.

    Exactly one of ``code`` (typed from the email) or ``token`` (from the
    emailed link) identifies the reset record.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    code: str | None = Field(None, pattern=_CODE_PATTERN)
    token: str | None = Field(None, min_length=1, max_length=128)
    password: str = Field(min_length=8, max_length=72)
    password_confirmation: str = Field(min_length=1, max_length=72)

    @model_validator(mode="after")
    def check_reset_credentials(self) -> "ResetPasswordRequest":
        if (self.code is None) == (self.token is None):
            msg = "Provide either a code or a token"
            raise ValueError(msg)
        if self.password != self.password_confirmation:
            raise ValueError(_PASSWORD_MISMATCH_MSG)
        return self


class ChangePasswordRequest(BaseModel):
    """Request body for PUT /auth/password."""

    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=8, max_length=72)
    password_confirmation: str = Field(min_length=1, max_length=72)

    @model_validator(mode="after")
    def check_confirmation(self) -> "ChangePasswordRequest":
        if self.password != self.password_confirmation:
            raise ValueError(_PASSWORD_MISMATCH_MSG)
        return self


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201)
@limiter.limit("3/hour")
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    service: CredentialService,
) -> DataResponse[RegistrationResponse]:
    """Register a new user and send the confirmation code.

    Unauthenticated. The account starts inactive and pending verification.
    If the confirmation email cannot be sent, nothing is stored.

    Rate limit: 3 per hour per IP.
    """
    result = await service.register(
        RegistrationData(
            name=body.name,
            email=body.email,
            phone=body.phone,
            address=body.address,
            id_document=body.id_document,
            password=body.password,
        )
    )
    return DataResponse(
        data=RegistrationResponse(
            user=UserResponse.model_validate(result.user),
            email=result.user.email,
            verification_token=result.record.token,
            expires_in=_code_ttl_seconds(),
        )
    )


# ===================================================================
# POST /auth/verify-email
# ===================================================================


@router.post("/verify-email")
@limiter.limit("10/minute")
async def verify_email(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: VerifyEmailRequest,
    service: CredentialService,
) -> DataResponse[AuthenticatedUserResponse]:
    """Consume the emailed code with its token and start a session.

    Rate limit: 10 per minute per IP.
    """
    result = await service.verify_email(body.code, body.token)
    session = SessionTokenResponse.from_issued(result.session)
    return DataResponse(
        data=AuthenticatedUserResponse(
            **session.model_dump(),
            user=UserResponse.model_validate(result.user),
        )
    )


# ===================================================================
# POST /auth/verify-email-check
# ===================================================================


@router.post("/verify-email-check")
@limiter.limit("20/minute")
async def verify_email_check(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: CheckTokenRequest,
    service: CredentialService,
) -> DataResponse[dict]:
    """Check that a verification token is still usable without consuming it.

    Returns 404 for unknown, used or expired tokens.

    Rate limit: 20 per minute per IP.
    """
    if not await service.check_token(body.token):
        raise NotFoundError("Verification token")
    return DataResponse(data={"valid": True})


# ===================================================================
# POST /auth/resend-code
# ===================================================================


@router.post("/resend-code")
@limiter.limit("5/15minute")
async def resend_code(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResendCodeRequest,
    service: CredentialService,
) -> DataResponse[CodeIssuedResponse]:
    """Issue and email a fresh code, subject to the per-email cooldown.

    Rate limit: 5 per 15 minutes per IP.
    """
    purpose = CodePurpose(body.purpose)
    await service.resend(body.email, purpose)
    if purpose is CodePurpose.PASSWORD_RESET:
        message = _FORGOT_PASSWORD_MSG
    else:
        message = "A new verification code has been sent"
    return DataResponse(
        data=CodeIssuedResponse(message=message, expires_in=_code_ttl_seconds())
    )


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit("5/15minute")
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    service: CredentialService,
) -> DataResponse[AuthenticatedUserResponse]:
    """Sign in with email and password.

    ``remember`` selects the extended session lifetime.

    Rate limit: 5 per 15 minutes per IP.
    """
    result = await service.login(body.email, body.password, remember=body.remember)
    session = SessionTokenResponse.from_issued(result.session)
    return DataResponse(
        data=AuthenticatedUserResponse(
            **session.model_dump(),
            user=UserResponse.model_validate(result.user),
        )
    )


# ===================================================================
# POST /auth/forgot-password
# ===================================================================


@router.post("/forgot-password")
@limiter.limit("5/hour")
async def forgot_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ForgotPasswordRequest,
    service: CredentialService,
) -> DataResponse[CodeIssuedResponse]:
    """Request a password reset code.

    Always returns the same body (enumeration defense). The email is sent
    as a background task.

    Rate limit: 5 per hour per IP.
    """
    await service.forgot_password(body.email)
    return DataResponse(
        data=CodeIssuedResponse(
            message=_FORGOT_PASSWORD_MSG, expires_in=_code_ttl_seconds()
        )
    )


# ===================================================================
# POST /auth/reset-password
# ===================================================================


@router.post("/reset-password")
@limiter.limit("10/15minute")
async def reset_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResetPasswordRequest,
    service: CredentialService,
) -> DataResponse[MessageResponse]:
    """Set a new password with a reset code or token.

    Signs the user out everywhere.

    Rate limit: 10 per 15 minutes per IP.
    """
    await service.reset_password(
        body.email,
        body.password,
        code=body.code,
        token=body.token,
    )
    return DataResponse(data=MessageResponse(message="Password has been reset"))


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def me(user: CurrentUser) -> DataResponse[UserResponse]:
    """Return the authenticated user."""
    return DataResponse(data=UserResponse.model_validate(user))


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(
    user: CurrentUser,  # noqa: ARG001 - rejects invalid tokens with 401
    token: BearerToken,
    service: CredentialService,
) -> DataResponse[MessageResponse]:
    """Revoke the bearer token used for this request."""
    await service.logout(token)
    return DataResponse(data=MessageResponse(message="Logged out"))


# ===================================================================
# POST /auth/refresh
# ===================================================================


@router.post("/refresh")
@limiter.limit("30/minute")
async def refresh(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    token: BearerToken,
    service: CredentialService,
) -> DataResponse[SessionTokenResponse]:
    """Exchange a valid bearer token for a new one.

    The presented token is revoked. Expired or revoked tokens get 401.

    Rate limit: 30 per minute per client.
    """
    issued = await service.refresh(token)
    if issued is None:
        raise UnauthorizedError("Session expired")
    return DataResponse(data=SessionTokenResponse.from_issued(issued))


# ===================================================================
# PUT /auth/password
# ===================================================================


@router.put("/password")
@limiter.limit("5/hour")
async def change_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ChangePasswordRequest,
    user: CurrentUser,
    service: CredentialService,
) -> DataResponse[SessionTokenResponse]:
    """Change the password of the authenticated user.

    Other sessions are revoked; the returned token replaces the one used
    for this request.

    Rate limit: 5 per hour per user.
    """
    issued = await service.change_password(user, body.current_password, body.password)
    return DataResponse(data=SessionTokenResponse.from_issued(issued))
