"""Verification code and token generation.

Produces the two independent secrets of an issuance: a short numeric code
meant to be typed by a human, and a long URL-safe token meant to be held by
the client. Both come from the operating system CSPRNG via ``secrets``.
"""

import secrets
from dataclasses import dataclass

from app.core.config import settings
from app.core.errors import GenerationError
from app.models.verification_code import CodePurpose

_TOKEN_BYTES = 32
"""Entropy of the opaque token (256 bits)."""


@dataclass(frozen=True)
class GeneratedCredential:
    """A freshly generated code/token pair.

    Attributes:
        code: Zero-padded numeric string of the configured length.
        token: URL-safe base64 token.
    """

    code: str
    token: str


def generate_code(length: int | None = None) -> str:
    """Return a uniformly random numeric code, zero-padded to ``length``.

    Args:
        length: Number of digits. Defaults to settings.verification_code_length.
    """
    digits = settings.verification_code_length if length is None else length
    return f"{secrets.randbelow(10**digits):0{digits}d}"


def generate(purpose: CodePurpose) -> GeneratedCredential:  # noqa: ARG001
    """Generate a code/token pair for a verification purpose.

    The purpose does not change the format today. It is accepted so callers
    state which flow they are issuing for.

    Args:
        purpose: Flow the credential will be issued for.

    Returns:
        GeneratedCredential with an independent code and token.

    Raises:
        GenerationError: If the secure random source is unavailable.
    """
    try:
        return GeneratedCredential(
            code=generate_code(),
            token=secrets.token_urlsafe(_TOKEN_BYTES),
        )
    except (OSError, NotImplementedError) as exc:
        raise GenerationError() from exc
