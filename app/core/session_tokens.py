"""Session token issuance, validation, revocation and refresh.

Session tokens are HS256 JWTs carried in the ``Authorization: Bearer``
header. Each token has a ``jti`` so a single token can be revoked on
logout, and a ``ver`` claim holding the user's ``session_version`` so every
token of a user can be revoked at once (password reset or change).

Expiry is checked against the injected clock rather than the wall clock
PyJWT would use, so the same clock governs codes and sessions.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.models.user import User
from app.repositories.revoked_token_repository import RevokedTokenRepository
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "exp", "iat", "jti", "ver"]


@dataclass(frozen=True)
class IssuedToken:
    """A signed session token ready to hand to the client.

    Attributes:
        token: Encoded JWT.
        expires_in: Lifetime in seconds.
        token_type: Always "bearer".
    """

    token: str
    expires_in: int
    token_type: str = "bearer"


def session_ttl(*, remember: bool) -> timedelta:
    """Lifetime of a session token, extended when the user asked to be remembered."""
    if remember:
        return timedelta(days=settings.session_remember_ttl_days)
    return timedelta(minutes=settings.session_ttl_minutes)


class SessionTokenIssuer:
    """Issues and checks bearer session tokens.

    Args:
        db: Async database session for the revocation denylist.
        clock: Time source for iat/exp.
    """

    def __init__(self, db: AsyncSession, *, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    def issue(self, user: User, *, remember: bool = False) -> IssuedToken:
        """Sign a new session token for a user.

        Args:
            user: Authenticated user.
            remember: Use the extended lifetime.

        Returns:
            IssuedToken with the encoded JWT and its lifetime.
        """
        now = self._clock().replace(microsecond=0)
        ttl = session_ttl(remember=remember)
        payload = {
            "sub": str(user.id),
            "aud": settings.auth_audience,
            "iss": settings.auth_issuer,
            "iat": now,
            "exp": now + ttl,
            "jti": uuid.uuid4().hex,
            "rmb": remember,
            "ver": user.session_version,
        }
        token = jwt.encode(
            payload, settings.auth_secret.get_secret_value(), algorithm=_ALGORITHM
        )
        return IssuedToken(token=token, expires_in=int(ttl.total_seconds()))

    def decode(self, token: str) -> dict[str, Any] | None:
        """Verify signature, audience, issuer and expiry.

        Returns:
            Claims dict, or None for any invalid or expired token.
        """
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                settings.auth_secret.get_secret_value(),
                algorithms=[_ALGORITHM],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
                # exp/iat are checked against the injected clock below
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": _REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidTokenError:
            return None

        if self._clock().timestamp() >= claims["exp"]:
            return None
        return claims

    async def authenticate(self, token: str) -> User | None:
        """Resolve a bearer token to its user.

        Rejects tokens that are malformed, expired, individually revoked,
        carry an outdated session version, or whose user no longer exists.

        Args:
            token: Encoded JWT from the Authorization header.

        Returns:
            The User, or None when the token must be refused.
        """
        claims = self.decode(token)
        if claims is None:
            return None

        try:
            user_id = uuid.UUID(claims["sub"])
        except ValueError:
            return None

        if await RevokedTokenRepository.is_revoked(self._db, claims["jti"]):
            return None

        user = await UserRepository.get_by_id(self._db, user_id)
        if user is None:
            return None

        if claims["ver"] != user.session_version:
            return None

        return user

    async def invalidate(self, token: str) -> bool:
        """Revoke a single token until its natural expiry.

        Returns:
            True if the token was valid and is now revoked, False if it
            was already unusable.
        """
        claims = self.decode(token)
        if claims is None:
            return False

        await RevokedTokenRepository.add(
            self._db,
            jti=claims["jti"],
            user_id=uuid.UUID(claims["sub"]),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=UTC),
            revoked_at=self._clock(),
        )
        return True

    async def refresh(self, token: str) -> IssuedToken | None:
        """Exchange a valid token for a fresh one and revoke the old one.

        The new token keeps the lifetime class (remember or not) of the
        token it replaces.

        Returns:
            New IssuedToken, or None if the presented token is not valid.
        """
        user = await self.authenticate(token)
        if user is None:
            return None

        claims = self.decode(token)
        remember = bool(claims.get("rmb", False)) if claims else False
        await self.invalidate(token)
        logger.info("Session token refreshed for user %s", user.id)
        return self.issue(user, remember=remember)
