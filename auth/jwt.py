"""
JWT session token creation and verification.

Tokens are HS256 JWTs carrying ``sub`` (user id), ``email``, ``iat`` and
``exp``.  Secret and lifetime come from ``config.jwt_secret`` /
``config.jwt_expiry_seconds`` (env vars: ``JWT_SECRET``, ``JWT_EXPIRY_SECONDS``).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import jwt

from config.settings import Settings, config
from core.errors import AuthenticationError


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    issued_at: int
    expires_at: int


def create_token(user_id: str, email: str, *, settings: Optional[Settings] = None) -> str:
    """Create a signed token for ``user_id``."""
    settings = settings or config
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + settings.jwt_expiry_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, *, settings: Optional[Settings] = None) -> TokenPayload:
    """
    Verify token and return its payload.

    Raises ``AuthenticationError`` on invalid, expired or incomplete tokens.
    """
    settings = settings or config
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Invalid or expired token", details="token expired")
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid or expired token", details=str(exc))

    return TokenPayload(
        user_id=claims["sub"],
        email=claims.get("email", ""),
        issued_at=claims["iat"],
        expires_at=claims["exp"],
    )
