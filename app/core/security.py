"""Security utilities for JWT and password handling."""

import hashlib
import re
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from app.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

_ALPHANUMERIC = re.compile(r"^[A-Za-z0-9]+$")


class TokenPair(BaseModel):
    """Access and refresh tokens issued together at login."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def password_meets_policy(password: str) -> bool:
    """
    Check the account password policy.

    Letters and digits only, at least ``PASSWORD_MIN_LENGTH`` characters and
    at most 100, with at least one letter and one digit.
    """
    if not settings.password_min_length <= len(password) <= 100:
        return False
    if not _ALPHANUMERIC.match(password):
        return False
    has_letter = any(ch.isalpha() for ch in password)
    has_digit = any(ch.isdigit() for ch in password)
    return has_letter and has_digit


def _encode(claims: dict[str, Any], key: str, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(UTC)
    to_encode = claims.copy()
    to_encode.update(
        {
            "type": token_type,
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": now,
            "exp": now + expires_delta,
        }
    )
    return jwt.encode(to_encode, key, algorithm=settings.jwt_algorithm)


def _decode(token: str, key: str, token_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError:
        return None

    # Verify token type
    if payload.get("type") != token_type:
        return None

    return payload


def issue_access_token(
    claims: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed access token.

    Args:
        claims: Identity claims (``sub``, ``email``, ``role``)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    data = {
        "sub": str(claims["sub"]),
        "email": claims["email"],
        "role": claims["role"],
    }
    return _encode(
        data,
        settings.jwt_secret_key,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def issue_refresh_token(
    claims: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed refresh token.

    The refresh token carries no role; the role is read from the account
    when a new access token is minted.

    Args:
        claims: Identity claims (``sub``, ``email``)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT refresh token
    """
    data = {"sub": str(claims["sub"]), "email": claims["email"]}
    return _encode(
        data,
        settings.jwt_refresh_secret_key,
        REFRESH_TOKEN_TYPE,
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def issue_token_pair(claims: dict[str, Any]) -> TokenPair:
    """Create access and refresh tokens for the same identity."""
    return TokenPair(
        access_token=issue_access_token(claims),
        refresh_token=issue_refresh_token(claims),
    )


def verify_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate an access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    return _decode(token, settings.jwt_secret_key, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a refresh token.

    Args:
        token: JWT refresh token to decode

    Returns:
        Decoded payload or None if invalid
    """
    return _decode(token, settings.jwt_refresh_secret_key, REFRESH_TOKEN_TYPE)


def _code_digest(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def issue_password_reset_token(email: str, code: str) -> str:
    """Create a short-lived token binding a verified recovery code to its e-mail."""
    return _encode(
        {"sub": email, "code": _code_digest(code)},
        settings.jwt_secret_key,
        PASSWORD_RESET_TOKEN_TYPE,
        timedelta(minutes=settings.code_expire_minutes),
    )


def verify_password_reset_token(token: str, email: str, code: str) -> bool:
    """Check that ``token`` was issued for exactly this e-mail and code."""
    payload = _decode(token, settings.jwt_secret_key, PASSWORD_RESET_TOKEN_TYPE)
    if payload is None:
        return False
    return payload.get("sub") == email and payload.get("code") == _code_digest(code)
