"""API error classes.

Every failure the credential lifecycle can produce is a typed subclass of
APIError. The exception handlers in app.main turn them into the
``{"error": {...}}`` envelope, so services never decide status codes by
inspecting generic exceptions.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class InvalidCredentialsError(APIError):
    """Email/password pair or current password did not match (401).

    The message is identical for unknown emails and wrong passwords.
    """

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but user lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class EmailNotVerifiedError(ForbiddenError):
    """Sign-in attempted before the email address was verified (403).

    Carries the email so the client can offer a resend.
    """

    def __init__(self, email: str) -> None:
        APIError.__init__(
            self,
            code="EMAIL_NOT_VERIFIED",
            message="Please verify your email before signing in.",
            status_code=403,
            details=[{"email": email, "verification_required": True}],
        )


class AccountInactiveError(ForbiddenError):
    """Account exists and is verified but is not active (403)."""

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="ACCOUNT_INACTIVE",
            message="This account is not active. Contact support.",
            status_code=403,
        )


class RoleRequiredError(ForbiddenError):
    """Authenticated user lacks every role the endpoint accepts (403).

    Args:
        roles: Roles that would have been accepted.
    """

    def __init__(self, roles: tuple[str, ...]) -> None:
        APIError.__init__(
            self,
            code="ROLE_REQUIRED",
            message="You do not have permission to perform this action",
            status_code=403,
            details=[{"required_roles": list(roles)}],
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Use when requested resource doesn't exist OR doesn't belong to user.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Use for duplicate entries, conflicting state, etc.
    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class AlreadyVerifiedError(ConflictError):
    """Verification resend requested for an already verified identity (409)."""

    def __init__(self) -> None:
        super().__init__(
            code="ALREADY_VERIFIED",
            message="This email address is already verified",
        )


class InvalidOrExpiredError(APIError):
    """Verification code or token cannot be consumed (400).

    Raised for unknown, mismatched, expired, already used, or
    wrong-purpose credentials alike. The message never says which.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OR_EXPIRED",
            message="Invalid or expired verification code",
            status_code=400,
        )


class NoChangeError(APIError):
    """New password equals the current one (422)."""

    def __init__(self) -> None:
        super().__init__(
            code="PASSWORD_UNCHANGED",
            message="The new password must be different from the current password",
            status_code=422,
        )


class RateLimitedError(APIError):
    """Resend requested before the cooldown window elapsed (429).

    Args:
        remaining: Whole seconds until a new code may be issued.
    """

    def __init__(self, remaining: int) -> None:
        self.retry_after = remaining
        super().__init__(
            code="RATE_LIMITED",
            message=f"Please wait {remaining} seconds before requesting a new code",
            status_code=429,
            details=[{"retry_after": remaining}],
        )


class GenerationError(APIError):
    """Secure random source failed or no unique token could be produced (500)."""

    def __init__(self, message: str = "Could not generate a verification code") -> None:
        super().__init__(
            code="GENERATION_FAILED",
            message=message,
            status_code=500,
        )


class MailDispatchError(APIError):
    """Mail collaborator reported failure or timed out (502)."""

    def __init__(
        self, message: str = "The verification email could not be sent"
    ) -> None:
        super().__init__(
            code="MAIL_DISPATCH_FAILED",
            message=message,
            status_code=502,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
