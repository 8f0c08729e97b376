"""Rate limiting configuration using slowapi.

Security: Throttles credential endpoints (login, register, code entry)
against brute force and mail flooding. This is a coarse per-client limit
in front of the per-email resend cooldown enforced by the service layer.

Requests carrying a valid bearer token are keyed on the token subject so
users behind a shared IP do not throttle each other; everything else is
keyed on the client IP.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit("5/15minute")
    async def login(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.config import settings

_BEARER_PREFIX = "bearer "


def bearer_token_from_request(request: Request) -> str | None:
    """Extract the raw token from an ``Authorization: Bearer`` header."""
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Signed bearer token (expired included): "user:{sub}"
    - No/invalid token: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    # Note: No revocation or expiry check here. Rate limiting only needs a
    # signed sub claim for keying. Full auth validation happens in deps.py.
    token = bearer_token_from_request(request)
    if token:
        try:
            payload = jwt.decode(
                token,
                settings.auth_secret.get_secret_value(),
                algorithms=["HS256"],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
                options={"verify_exp": False, "verify_iat": False},
            )
            sub = payload["sub"]
            # Defense-in-depth: validate sub looks like a UUID (36 chars)
            if len(sub) <= 36:
                return f"user:{sub}"
        except (jwt.InvalidTokenError, KeyError):
            pass

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Retry-After is the window of the exceeded limit, e.g. 900 for "5/15minute".
    # Fallback to 60 seconds if the limit is not available
    try:
        retry_after = str(int(exc.limit.limit.get_expiry()))
    except (AttributeError, TypeError, ValueError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "TOO_MANY_REQUESTS",
                "message": f"Rate limit exceeded: {exc.detail}",
                "details": None,
            }
        },
        headers={"Retry-After": retry_after},
    )
