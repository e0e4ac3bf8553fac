"""Security utilities: JWT session tokens, password hashing, cookie settings."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from jwt.exceptions import PyJWTError

from tipqr.core.config import settings

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hash.

    Uses bcrypt's built-in timing-safe comparison.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:MAX_PASSWORD_BYTES],
            hashed_password.encode("utf-8"),
        )
    except ValueError as e:
        logger.warning(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode("utf-8")[:MAX_PASSWORD_BYTES],
        bcrypt.gensalt(),
    ).decode("utf-8")


def generate_session_token() -> str:
    """Random identifier for a server-side session row."""
    return secrets.token_urlsafe(32)


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    jti: str | None = None,
) -> str:
    """Create a signed JWT.

    ``jti`` ties the token to an ``AuthSession`` row; a token whose session
    row is gone is rejected by the session resolver even while the
    signature is still valid.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.session_expire_minutes)

    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": jti or secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT. Returns None on any failure."""
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub", "jti"]},
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None


def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def generate_verification_token() -> str:
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Cookie configuration
# ---------------------------------------------------------------------------
COOKIE_SESSION_NAME = settings.cookie_name
COOKIE_CSRF_NAME = "csrf_token"
COOKIE_SECURE = not settings.debug  # Secure=True in production
COOKIE_SAMESITE = "lax"
SESSION_MAX_AGE = settings.session_expire_minutes * 60  # in seconds
