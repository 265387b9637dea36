"""Bearer token authentication.

Tokens are HS256 JWTs whose ``sub`` claim is the account email and whose
``role`` claim is the account role. Password login and account storage live
in the auth service; this module only mints (for development) and verifies
tokens.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import jwt
from fastapi import Request  # noqa: TC002

from pdf_annotator_jobs.jobs.exceptions import UnauthenticatedError
from pdf_annotator_jobs.jobs.models import Identity, normalize_email
from pdf_annotator_jobs.observability import get_logger


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import AuthConfig, Settings


__all__ = [
    "JWT_ALGORITHM",
    "create_access_token",
    "decode_access_token",
    "get_bearer_token",
    "require_identity",
]

JWT_ALGORITHM = "HS256"

logger = get_logger(__name__)


def create_access_token(
    email: str,
    config: AuthConfig,
    *,
    role: str = "user",
    expires_in: timedelta | None = None,
) -> str:
    """Mint a signed access token.

    Args:
        email: Account email, stored lowercased in ``sub``.
        config: The ``auth`` settings section.
        role: Account role claim.
        expires_in: Token lifetime. Defaults to ``jwt_expires_minutes``.

    Returns:
        The encoded JWT.
    """
    now = datetime.now(UTC)
    lifetime = expires_in or timedelta(minutes=config.jwt_expires_minutes)
    claims = {
        "sub": normalize_email(email),
        "role": role,
        "iat": now,
        "exp": now + lifetime,
        "iss": config.issuer,
        "aud": config.audience,
    }
    return jwt.encode(claims, config.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, config: AuthConfig) -> Identity:
    """Verify a token and return the identity it asserts.

    Raises:
        UnauthenticatedError: The token is malformed, forged, expired or
            issued for another audience.
    """
    try:
        claims = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=config.issuer,
            audience=config.audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.InvalidTokenError as exc:
        logger.info("token_rejected", reason=type(exc).__name__)
        msg = "Invalid or expired token"
        raise UnauthenticatedError(msg) from exc

    email = normalize_email(claims.get("sub"))
    if not email:
        msg = "Invalid or expired token"
        raise UnauthenticatedError(msg)
    return Identity(email=email, role=str(claims.get("role") or "user"))


def get_bearer_token(request: Request) -> str:
    """Return the bearer token from the Authorization header, or ``""``."""
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return ""
    return token.strip()


async def require_identity(request: Request) -> Identity:
    """FastAPI dependency: authenticate the caller.

    Raises:
        UnauthenticatedError: No bearer token, or the token is invalid.
    """
    token = get_bearer_token(request)
    if not token:
        msg = "Missing bearer token"
        raise UnauthenticatedError(msg)

    settings: Settings = request.app.state.settings
    return decode_access_token(token, settings.auth)
