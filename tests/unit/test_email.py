"""Tests for the Resend-backed mailer.

HTTP traffic is served by httpx.MockTransport; nothing leaves the process.
"""

import json
import uuid
from datetime import timedelta

import httpx
from pydantic import SecretStr

from app.core.config import settings
from app.core.email import ResendMailer
from app.models.user import User
from app.models.verification_code import CodePurpose, VerificationCode
from tests.conftest import TEST_NOW

_API_KEY = "re_test_key"  # nosec B105  # gitleaks:allow


def _user() -> User:
    return User(id=uuid.uuid4(), email="ana@example.com", name="Ana")


def _record(purpose: CodePurpose) -> VerificationCode:
    return VerificationCode(
        email="ana@example.com",
        code="048213",
        token="tok_abc-123",
        purpose=purpose.value,
        used=False,
        created_at=TEST_NOW,
        expires_at=TEST_NOW + timedelta(minutes=10),
    )


def _mailer(handler) -> ResendMailer:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResendMailer(client=client)


class _Capture:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"id": "email_1"})

    @property
    def payload(self) -> dict:
        return json.loads(self.requests[-1].content)


class TestResendMailer:
    """Tests for ResendMailer message composition and failure handling."""

    async def test_confirmation_contains_code_and_link(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr(_API_KEY))
        capture = _Capture()

        ok = await _mailer(capture).send_confirmation(
            _user(), _record(CodePurpose.EMAIL_VERIFICATION)
        )

        assert ok is True
        request = capture.requests[0]
        assert request.url == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == f"Bearer {_API_KEY}"
        payload = capture.payload
        assert payload["to"] == "ana@example.com"
        assert payload["from"] == settings.email_from
        assert "048213" in payload["text"]
        assert f"{settings.frontend_url}/verify-email?token=tok_abc-123" in payload["text"]

    async def test_resend_uses_its_own_subject(self):
        capture = _Capture()
        await _mailer(capture).send_resend(
            _user(), _record(CodePurpose.EMAIL_VERIFICATION)
        )
        assert capture.payload["subject"] == "Your new verification code"

    async def test_password_reset_link_carries_email(self):
        capture = _Capture()
        await _mailer(capture).send_password_reset(
            _user(), _record(CodePurpose.PASSWORD_RESET)
        )

        text = capture.payload["text"]
        assert "048213" in text
        assert "/reset-password?token=tok_abc-123&email=ana%40example.com" in text

    async def test_password_changed_notice_has_no_code(self):
        capture = _Capture()
        ok = await _mailer(capture).send_password_changed_notice(_user())

        assert ok is True
        assert capture.payload["subject"] == "Your password was changed"
        assert "048213" not in capture.payload["text"]

    async def test_http_error_status_returns_false(self):
        ok = await _mailer(_Capture(status_code=500)).send_confirmation(
            _user(), _record(CodePurpose.EMAIL_VERIFICATION)
        )
        assert ok is False

    async def test_transport_error_returns_false(self):
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        ok = await _mailer(_fail).send_password_changed_notice(_user())
        assert ok is False
