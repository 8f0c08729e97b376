"""Tests for API error classes.

Each credential failure maps to one code and status.
"""

import pytest

from app.core.errors import (
    AccountInactiveError,
    AlreadyVerifiedError,
    APIError,
    ConflictError,
    EmailNotVerifiedError,
    ForbiddenError,
    GenerationError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    MailDispatchError,
    NoChangeError,
    NotFoundError,
    RateLimitedError,
    RoleRequiredError,
    UnauthorizedError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("error", "code", "status"),
    [
        (ValidationError("bad"), "VALIDATION_ERROR", 400),
        (InvalidOrExpiredError(), "INVALID_OR_EXPIRED", 400),
        (UnauthorizedError(), "UNAUTHORIZED", 401),
        (InvalidCredentialsError(), "INVALID_CREDENTIALS", 401),
        (ForbiddenError(), "FORBIDDEN", 403),
        (EmailNotVerifiedError("a@example.com"), "EMAIL_NOT_VERIFIED", 403),
        (AccountInactiveError(), "ACCOUNT_INACTIVE", 403),
        (RoleRequiredError(("admin",)), "ROLE_REQUIRED", 403),
        (NotFoundError("User"), "NOT_FOUND", 404),
        (AlreadyVerifiedError(), "ALREADY_VERIFIED", 409),
        (NoChangeError(), "PASSWORD_UNCHANGED", 422),
        (RateLimitedError(12), "RATE_LIMITED", 429),
        (GenerationError(), "GENERATION_FAILED", 500),
        (MailDispatchError(), "MAIL_DISPATCH_FAILED", 502),
    ],
)
def test_code_and_status(error, code, status):
    assert isinstance(error, APIError)
    assert error.code == code
    assert error.status_code == status


class TestErrorDetails:
    def test_forbidden_subclasses_are_forbidden(self):
        assert isinstance(EmailNotVerifiedError("a@example.com"), ForbiddenError)
        assert isinstance(RoleRequiredError(("admin",)), ForbiddenError)

    def test_already_verified_is_a_conflict(self):
        assert isinstance(AlreadyVerifiedError(), ConflictError)

    def test_not_found_with_id(self):
        assert NotFoundError("User", "42").message == "User with id '42' not found"

    def test_rate_limited_carries_retry_after(self):
        error = RateLimitedError(45)
        assert error.retry_after == 45
        assert error.details == [{"retry_after": 45}]
        assert "45 seconds" in error.message

    def test_message_is_exception_text(self):
        assert str(InvalidCredentialsError()) == "Invalid email or password"
