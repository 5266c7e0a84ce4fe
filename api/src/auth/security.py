"""Access token validation.

Access tokens are issued by the hosted auth provider and signed with a
shared secret. This module only validates them; ``create_access_token`` mints
tokens with the same claims for local development and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from src.config.settings import get_settings


# Default lifetime for locally minted tokens
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


def create_access_token(
    subject: str,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create an access token shaped like the auth provider's.

    Args:
        subject: Auth user id (``sub`` claim)
        email: User email (``email`` claim)
        expires_delta: Token lifetime (default one hour)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    now = datetime.now(UTC)
    payload = {
        "sub": subject,
        "email": email,
        "aud": settings.auth_audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + (expires_delta or DEFAULT_TOKEN_LIFETIME),
    }
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates signature, expiration and audience, and requires a subject.

    Raises:
        JWTError: If token is invalid, expired, or lacks a subject
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_jwt_secret,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
    )

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise JWTError(msg)

    return payload
