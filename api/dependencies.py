"""
FastAPI dependencies (shared across routes).

The ``AppContext`` built in the lifespan lives on ``app.state.context``;
tests swap it via ``app.dependency_overrides[get_context]``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.service import IdentityService
from connectors.service import OAuthService
from core.context import AppContext


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_identity_service(ctx: AppContext = Depends(get_context)) -> IdentityService:
    return IdentityService(ctx.session_factory, bcrypt_rounds=ctx.settings.bcrypt_rounds)


def get_oauth_service(ctx: AppContext = Depends(get_context)) -> OAuthService:
    return OAuthService(ctx)
