"""Credential lifecycle orchestration.

Drives every flow that issues or consumes a verification code, plus the
password and session operations around them:

- register: create an inactive, pending user and mail a confirmation code
- resend: issue a fresh code behind the cooldown gate
- verify_email: consume a code/token pair and activate the user
- check_token: non-consuming validity probe for a verification token
- forgot_password: enumeration-safe reset code issuance
- reset_password: consume a reset code (or token) and set a new password
- change_password: authenticated password change
- login / logout / refresh: bearer session handling

Per (email, purpose) a code moves NoPending -> Issued -> Consumed, Expired,
or Superseded (a newer issuance exists; the older one stays consumable
until it expires). Identity changes that depend on a code are written in
the same transaction as the code's compare-and-set, so a lost race leaves
nothing behind.
"""

import logging
from dataclasses import dataclass

import jwt
from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import hash_password, validate_password_strength, verify_password
from app.core.clock import Clock, utc_now
from app.core.email import Mailer
from app.core.errors import (
    AccountInactiveError,
    AlreadyVerifiedError,
    ConflictError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    MailDispatchError,
    NoChangeError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from app.core.session_tokens import IssuedToken, SessionTokenIssuer
from app.models.user import User, UserStatus, VerificationStatus
from app.models.verification_code import CodePurpose, VerificationCode
from app.repositories.user_repository import UserRepository, normalize_email
from app.services import code_generator
from app.services.cooldown_gate import CooldownGate
from app.services.mail_dispatch import MailDispatcher
from app.services.verification_store import VerificationStore

logger = logging.getLogger(__name__)


# =============================================================================
# Inputs and results
# =============================================================================


@dataclass(frozen=True)
class RegistrationData:
    """Validated registration input.

    Attributes:
        name: Display name.
        email: Email address (normalized by the service).
        phone: Digits-only phone number.
        address: Postal address.
        id_document: Identity document number.
        password: Plain-text password.
    """

    name: str
    email: str
    phone: str
    address: str
    id_document: str
    password: str


@dataclass(frozen=True)
class RegistrationResult:
    """New pending user and the confirmation record mailed to them."""

    user: User
    record: VerificationCode


@dataclass(frozen=True)
class VerificationResult:
    """Verified user and the session token issued after commit.

    ``session`` is None when signing the token failed; the verification
    itself still stands.
    """

    user: User
    session: IssuedToken | None


@dataclass(frozen=True)
class SessionResult:
    """Authenticated user and their new session token."""

    user: User
    session: IssuedToken


# =============================================================================
# Service
# =============================================================================


class CredentialLifecycleService:
    """Orchestrates registration, verification, password and session flows.

    Constructed per request. Commits at the transaction boundaries each
    flow needs; the request dependency commits or rolls back whatever is
    left.

    Args:
        db: Async database session.
        mailer: Mail collaborator.
        clock: Time source shared by the store, cooldown gate and sessions.
        background_tasks: Request task queue for after-response mail.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        mailer: Mailer,
        clock: Clock = utc_now,
        background_tasks: BackgroundTasks | None = None,
    ) -> None:
        self._db = db
        self._mailer = mailer
        self._clock = clock
        self._dispatch = MailDispatcher(background_tasks)
        self.store = VerificationStore(db, clock=clock)
        self.cooldown = CooldownGate(db, clock=clock)
        self.sessions = SessionTokenIssuer(db, clock=clock)

    # -------------------------------------------------------------------------
    # Registration and email verification
    # -------------------------------------------------------------------------

    async def register(self, data: RegistrationData) -> RegistrationResult:
        """Create a pending user and send the confirmation code.

        The confirmation mail is sent before commit. If it fails or times
        out, the user and the record are rolled back together.

        Raises:
            ValidationError: Password does not meet the rules.
            ConflictError: Email, phone or identity document already in use.
            GenerationError: No code could be generated.
            MailDispatchError: Confirmation mail failed or timed out.
        """
        validate_password_strength(data.password)
        email = normalize_email(data.email)

        taken = await UserRepository.find_taken_fields(
            self._db, email=email, phone=data.phone, id_document=data.id_document
        )
        if taken:
            raise ConflictError(
                code="ALREADY_REGISTERED",
                message="An account with these details already exists",
                details=[{"field": field, "msg": "already taken"} for field in taken],
            )

        try:
            user = await UserRepository.create(
                self._db,
                email=email,
                name=data.name,
                phone=data.phone,
                address=data.address,
                id_document=data.id_document,
                password_hash=hash_password(data.password),
                created_at=self._clock(),
            )
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError(
                code="ALREADY_REGISTERED",
                message="An account with these details already exists",
            ) from exc

        record = await self.store.issue(email, CodePurpose.EMAIL_VERIFICATION)

        sent = await self._dispatch.send_now(
            lambda: self._mailer.send_confirmation(user, record),
            description="registration confirmation",
        )
        if not sent:
            await self._db.rollback()
            raise MailDispatchError()

        await self._db.commit()
        logger.info("Registered user %s (pending verification)", user.id)
        return RegistrationResult(user=user, record=record)

    async def resend(
        self,
        email: str,
        purpose: CodePurpose = CodePurpose.EMAIL_VERIFICATION,
    ) -> VerificationCode | None:
        """Issue a fresh code for (email, purpose) and mail it.

        The identity row is locked before the cooldown is read, so two
        concurrent resends cannot both pass the gate. The new record is
        committed before mailing; a mail failure is reported but the
        record stays issued.

        A password reset resend is handled exactly like forgot_password:
        no error for unknown emails, cooldown or mail failure.

        Returns:
            The new email verification record, or None for a password
            reset resend.

        Raises:
            NotFoundError: Unknown email for an email verification resend.
            AlreadyVerifiedError: Email verification resend for a verified user.
            RateLimitedError: Cooldown window has not elapsed.
            MailDispatchError: Mail failed or timed out.
        """
        if purpose is CodePurpose.PASSWORD_RESET:
            await self.forgot_password(email)
            return None

        email = normalize_email(email)
        user = await UserRepository.get_by_email(self._db, email, for_update=True)

        if user is None:
            raise NotFoundError("User")

        if user.is_verified:
            raise AlreadyVerifiedError()

        status = await self.cooldown.check_cooldown(email, purpose)
        if not status.can_resend:
            logger.info(
                "Resend blocked by cooldown for user %s (%ds remaining)",
                user.id,
                status.remaining,
            )
            await self._db.rollback()
            raise RateLimitedError(status.remaining)

        record = await self.store.issue(email, purpose)
        await self._db.commit()

        sent = await self._dispatch.send_now(
            lambda: self._mailer.send_resend(user, record),
            description="verification code resend",
        )
        if not sent:
            raise MailDispatchError()
        return record

    async def verify_email(self, code: str, token: str) -> VerificationResult:
        """Consume an email verification code/token pair.

        Raises:
            InvalidOrExpiredError: Pair unknown, expired, already used, or
                lost a concurrent consumption race.
        """
        record = await self.store.find_by_code_and_token(
            code, token, CodePurpose.EMAIL_VERIFICATION
        )
        if record is None or self.store.is_expired(record):
            raise InvalidOrExpiredError()

        user = await UserRepository.get_by_email(
            self._db, record.email, for_update=True
        )
        if user is None:
            raise InvalidOrExpiredError()

        if not await self.store.mark_used(record):
            await self._db.rollback()
            raise InvalidOrExpiredError()

        user = await UserRepository.update(
            self._db,
            user.id,
            verification_status=VerificationStatus.VERIFIED.value,
            status=UserStatus.ACTIVE.value,
            email_verified_at=self._clock(),
        )
        await self._db.commit()
        logger.info("Email verified for user %s", user.id)

        try:
            session = self.sessions.issue(user)
        except jwt.PyJWTError:
            logger.exception("Session issuance failed after verification")
            session = None
        return VerificationResult(user=user, session=session)

    async def check_token(self, token: str) -> bool:
        """Report whether an email verification token is still consumable."""
        record = await self.store.find_by_token(token, CodePurpose.EMAIL_VERIFICATION)
        return record is not None and not self.store.is_expired(record)

    # -------------------------------------------------------------------------
    # Password flows
    # -------------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        """Issue and mail a password reset code when appropriate.

        Returns the same way whether the email is unknown, in cooldown,
        or served. Code generation runs on every path so timing does not
        reveal which one was taken. Mail goes out after the response.
        """
        email = normalize_email(email)
        user = await UserRepository.get_by_email(self._db, email, for_update=True)

        if user is None:
            code_generator.generate(CodePurpose.PASSWORD_RESET)
            return

        status = await self.cooldown.check_cooldown(email, CodePurpose.PASSWORD_RESET)
        if not status.can_resend:
            logger.info("Password reset not reissued: cooldown active for %s", user.id)
            code_generator.generate(CodePurpose.PASSWORD_RESET)
            await self._db.rollback()
            return

        record = await self.store.issue(email, CodePurpose.PASSWORD_RESET)
        await self._db.commit()

        await self._dispatch.send_later(
            lambda: self._mailer.send_password_reset(user, record),
            description="password reset",
        )

    async def reset_password(
        self,
        email: str,
        new_password: str,
        *,
        code: str | None = None,
        token: str | None = None,
    ) -> User:
        """Set a new password using a password reset code or token.

        Exactly one of ``code`` or ``token`` must be given. The password
        change, the record consumption and the revocation of existing
        sessions commit together.

        Raises:
            ValidationError: Neither or both of code/token, or weak password.
            InvalidOrExpiredError: Credential unknown, expired, used, issued
                for another email, or lost a consumption race.
        """
        if (code is None) == (token is None):
            raise ValidationError("Provide either a code or a token")
        validate_password_strength(new_password)

        email = normalize_email(email)
        if code is not None:
            record = await self.store.find_by_email_and_code(
                email, code, CodePurpose.PASSWORD_RESET
            )
        else:
            record = await self.store.find_by_token(token, CodePurpose.PASSWORD_RESET)
            if record is not None and record.email != email:
                record = None

        if record is None or self.store.is_expired(record):
            raise InvalidOrExpiredError()

        user = await UserRepository.get_by_email(self._db, email, for_update=True)
        if user is None:
            raise InvalidOrExpiredError()

        if not await self.store.mark_used(record):
            await self._db.rollback()
            raise InvalidOrExpiredError()

        user = await UserRepository.update(
            self._db,
            user.id,
            password_hash=hash_password(new_password),
            session_version=user.session_version + 1,
        )
        await self._db.commit()
        logger.info("Password reset for user %s", user.id)

        await self._dispatch.send_later(
            lambda: self._mailer.send_password_changed_notice(user),
            description="password changed notice",
        )
        return user

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
    ) -> IssuedToken:
        """Change the password of an authenticated user.

        All other sessions are revoked; the returned token keeps the
        caller signed in.

        Raises:
            InvalidCredentialsError: Current password does not match.
            NoChangeError: New password equals the current one.
            ValidationError: New password does not meet the rules.
        """
        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")
        if new_password == current_password:
            raise NoChangeError()
        validate_password_strength(new_password)

        user = await UserRepository.update(
            self._db,
            user.id,
            password_hash=hash_password(new_password),
            session_version=user.session_version + 1,
        )
        await self._db.commit()

        await self._dispatch.send_later(
            lambda: self._mailer.send_password_changed_notice(user),
            description="password changed notice",
        )
        return self.sessions.issue(user)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def login(
        self, email: str, password: str, *, remember: bool = False
    ) -> SessionResult:
        """Authenticate with email and password.

        The password is checked before account state, so unverified or
        inactive accounts are only revealed to someone holding the password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            EmailNotVerifiedError: Email not verified yet.
            AccountInactiveError: Account verified but not active.
        """
        user = await UserRepository.get_by_email(self._db, email)
        if not verify_password(password, user.password_hash if user else None):
            raise InvalidCredentialsError()

        if not user.is_verified:
            raise EmailNotVerifiedError(user.email)
        if not user.is_active:
            raise AccountInactiveError()

        session = self.sessions.issue(user, remember=remember)
        return SessionResult(user=user, session=session)

    async def logout(self, token: str) -> None:
        """Revoke the presented session token."""
        await self.sessions.invalidate(token)
        await self._db.commit()

    async def refresh(self, token: str) -> IssuedToken | None:
        """Replace a valid session token with a new one."""
        issued = await self.sessions.refresh(token)
        await self._db.commit()
        return issued
