"""Transactional email via the Resend API.

Four messages leave the credential lifecycle: the registration
confirmation, a resent verification code, a password reset code, and the
notice that a password was changed. Each send returns True on success and
False on any failure, which is logged here. Whether a failure matters is
the caller's decision.
"""

import logging
from typing import Protocol
from urllib.parse import quote, urlencode

import httpx

from app.core.config import settings
from app.models.user import User
from app.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"


class Mailer(Protocol):
    """Mail collaborator used by the credential lifecycle."""

    async def send_confirmation(self, user: User, record: VerificationCode) -> bool:
        ...

    async def send_resend(self, user: User, record: VerificationCode) -> bool:
        ...

    async def send_password_reset(self, user: User, record: VerificationCode) -> bool:
        ...

    async def send_password_changed_notice(self, user: User) -> bool:
        ...


def _frontend_link(path: str, **params: str) -> str:
    query = urlencode(params, quote_via=quote)
    return f"{settings.frontend_url}{path}?{query}"


def _code_body(intro: str, record: VerificationCode, link: str) -> str:
    minutes = settings.verification_code_ttl_minutes
    return (
        f"{intro}\n\n"
        f"Your code is: {record.code}\n\n"
        f"Or open this link:\n\n{link}\n\n"
        f"This code expires in {minutes} minutes. "
        "If you didn't request this, you can safely ignore this email."
    )


class ResendMailer:
    """Mailer backed by the Resend HTTP API.

    Args:
        client: Shared httpx client. A short-lived client is opened per
            message when omitted.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def _post(self, *, to_email: str, subject: str, text: str) -> bool:
        payload = {
            "from": settings.email_from,
            "to": to_email,
            "subject": subject,
            "text": text,
        }
        headers = {
            "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
        }
        try:
            if self._client is not None:
                resp = await self._client.post(
                    _RESEND_API_URL,
                    headers=headers,
                    json=payload,
                    timeout=settings.mail_timeout_seconds,
                )
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.post(
                        _RESEND_API_URL,
                        headers=headers,
                        json=payload,
                        timeout=settings.mail_timeout_seconds,
                    )
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Failed to send email: %s", subject, exc_info=True)
            return False
        return True

    async def send_confirmation(self, user: User, record: VerificationCode) -> bool:
        link = _frontend_link("/verify-email", token=record.token)
        return await self._post(
            to_email=user.email,
            subject="Confirm your email address",
            text=_code_body(
                f"Hi {user.name}, welcome! Please confirm your email address.",
                record,
                link,
            ),
        )

    async def send_resend(self, user: User, record: VerificationCode) -> bool:
        link = _frontend_link("/verify-email", token=record.token)
        return await self._post(
            to_email=user.email,
            subject="Your new verification code",
            text=_code_body(
                f"Hi {user.name}, here is your new verification code.",
                record,
                link,
            ),
        )

    async def send_password_reset(self, user: User, record: VerificationCode) -> bool:
        link = _frontend_link("/reset-password", token=record.token, email=user.email)
        return await self._post(
            to_email=user.email,
            subject="Reset your password",
            text=_code_body(
                f"Hi {user.name}, we received a request to reset your password.",
                record,
                link,
            ),
        )

    async def send_password_changed_notice(self, user: User) -> bool:
        return await self._post(
            to_email=user.email,
            subject="Your password was changed",
            text=(
                f"Hi {user.name}, the password for your account was just changed.\n\n"
                "If this wasn't you, reset your password immediately and contact support."
            ),
        )
