"""
Exam Portal - Security Module
Verification of identity provider JWTs

Tokens are issued by the external identity provider and signed with a shared
secret. Only the `sub` claim is trusted; any role claim is ignored and roles
are always resolved from the profiles table.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None
) -> str:
    """
    Create a JWT access token in the identity provider's format.

    Used by local tooling and tests; production tokens come from the provider.

    Args:
        subject: The identity id
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional JWT claims (e.g. email)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
    }
    if settings.JWT_AUDIENCE:
        to_encode["aud"] = settings.JWT_AUDIENCE

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except JWTError:
        return None


def verify_token(token: str) -> str | None:
    """Verify a token and return the identity id (subject) if valid."""
    payload = decode_token(token)
    if payload is None:
        return None
    return payload.get("sub")
