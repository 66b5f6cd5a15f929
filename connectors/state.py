"""
OAuth ``state`` parameter — CSRF protection for the connect flow.

The state binds a random nonce to the initiating user and is round-tripped
through the provider's redirect.  Nothing is stored server-side: the token is
``base64url(json) + "." + hmac_sha256_hex`` so a client cannot forge a state
pointing at another user's id.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import secrets
import time
import uuid
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from typing import Optional

from core.errors import InvalidStateError

NONCE_BYTES = 32


@dataclass(frozen=True)
class OAuthState:
    nonce: str
    user_id: str
    expires_at: int


class StateCodec:
    def __init__(self, secret: str, ttl_seconds: int = 600):
        if not secret:
            raise ValueError("OAuth state secret must not be empty")
        self._secret = secret.encode()
        self._ttl = ttl_seconds

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def encode(self, user_id: str, *, nonce: Optional[str] = None, now: Optional[float] = None) -> str:
        """Create an opaque, signed state string for ``user_id``."""
        issued = int(now if now is not None else time.time())
        payload = {
            "nonce": nonce or secrets.token_hex(NONCE_BYTES),
            "user_id": str(user_id),
            "exp": issued + self._ttl,
        }
        raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode()
        return urlsafe_b64encode(raw).decode().rstrip("=") + "." + self._sign(raw)

    def decode(self, state: str, *, now: Optional[float] = None) -> OAuthState:
        """
        Verify ``state`` and return its contents.

        Raises ``InvalidStateError`` on a bad format, bad signature, expired
        token or missing / malformed fields.
        """
        body, sep, sig = (state or "").partition(".")
        if not sep or not body or not sig:
            raise InvalidStateError(details="bad format")

        try:
            raw = urlsafe_b64decode(body + "=" * (-len(body) % 4))
        except (binascii.Error, ValueError):
            raise InvalidStateError(details="bad encoding")

        if not hmac.compare_digest(sig, self._sign(raw)):
            raise InvalidStateError(details="bad signature")

        try:
            payload = json.loads(raw)
        except ValueError:
            raise InvalidStateError(details="bad payload")
        if not isinstance(payload, dict):
            raise InvalidStateError(details="bad payload")

        nonce = payload.get("nonce")
        user_id = payload.get("user_id")
        exp = payload.get("exp")
        if not nonce or not user_id or not isinstance(exp, int):
            raise InvalidStateError(details="missing fields")
        try:
            uuid.UUID(str(user_id))
        except ValueError:
            raise InvalidStateError(details="malformed user id")

        current = now if now is not None else time.time()
        if exp < current:
            raise InvalidStateError(details="state expired")

        return OAuthState(nonce=str(nonce), user_id=str(user_id), expires_at=exp)
