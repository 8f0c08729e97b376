"""Shared dependencies for API endpoints.

Authentication reads the bearer session token from the Authorization
header. The clock and the mailer are dependencies too, so tests can pin
time and capture outgoing mail through ``app.dependency_overrides``.
"""

from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.database import get_db
from app.core.email import Mailer, ResendMailer
from app.core.errors import RoleRequiredError, UnauthorizedError
from app.core.rate_limiting import bearer_token_from_request
from app.core.session_tokens import SessionTokenIssuer
from app.models.user import User, UserRole
from app.services.credential_lifecycle import CredentialLifecycleService


def get_clock() -> Clock:
    """Time source for the request."""
    return utc_now


def get_mailer() -> Mailer:
    """Mail collaborator for the request."""
    return ResendMailer()


DbSession = Annotated[AsyncSession, Depends(get_db)]
RequestClock = Annotated[Clock, Depends(get_clock)]


def get_bearer_token(request: Request) -> str:
    """Raw bearer token from the Authorization header.

    Raises:
        UnauthorizedError: Header missing or not a bearer credential.
    """
    token = bearer_token_from_request(request)
    if token is None:
        raise UnauthorizedError()
    return token


BearerToken = Annotated[str, Depends(get_bearer_token)]


async def get_current_user(
    token: BearerToken,
    db: DbSession,
    clock: RequestClock,
) -> User:
    """Resolve the authenticated user from the bearer token.

    Validation: signature, aud/iss, expiry, jti denylist, and
    session version. Every failure is the same generic 401.

    Raises:
        UnauthorizedError: For any auth failure.
    """
    user = await SessionTokenIssuer(db, clock=clock).authenticate(token)
    if user is None:
        raise UnauthorizedError()
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(
    *roles: str,
) -> Callable[[User], Coroutine[Any, Any, User]]:
    """Build a dependency that admits only users holding one of ``roles``.

    Unauthenticated requests fail with 401 before the role is checked.

    Usage:
        @router.post("/maintenance/...")
        async def run(user: Annotated[User, Depends(require_roles("admin"))]):
            ...
    """

    async def _require_roles(user: CurrentUser) -> User:
        if user.role not in roles:
            raise RoleRequiredError(roles)
        return user

    return _require_roles


def get_credential_service(
    db: DbSession,
    clock: RequestClock,
    mailer: Annotated[Mailer, Depends(get_mailer)],
    background_tasks: BackgroundTasks,
) -> CredentialLifecycleService:
    """Per-request credential lifecycle service."""
    return CredentialLifecycleService(
        db,
        mailer=mailer,
        clock=clock,
        background_tasks=background_tasks,
    )


CredentialService = Annotated[
    CredentialLifecycleService, Depends(get_credential_service)
]
StaffUser = Annotated[
    User, Depends(require_roles(UserRole.ADMIN.value, UserRole.SUPPORT.value))
]
