"""
FastAPI dependencies for authentication.

Provides ``get_current_user``, used across all protected routes.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import get_context
from auth.jwt import TokenPayload, verify_token
from core.context import AppContext
from core.errors import AuthenticationError

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    ctx: AppContext = Depends(get_context),
) -> TokenPayload:
    """
    Extract and verify the Bearer token, returning its payload
    (``user_id`` + ``email``).
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    payload = verify_token(credentials.credentials, settings=ctx.settings)
    try:
        uuid.UUID(payload.user_id)
    except ValueError:
        raise AuthenticationError("Invalid or expired token", details="malformed subject")
    return payload
