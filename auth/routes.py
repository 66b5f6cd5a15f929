"""
Auth API routes — register, login, current user, preferences.

Route prefix: /auth
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from api.dependencies import get_context, get_identity_service
from api.schemas import (
    AuthData,
    Envelope,
    LoginRequest,
    PreferencesUpdate,
    RegisterRequest,
    UserOut,
)
from auth.dependencies import get_current_user
from auth.jwt import TokenPayload, create_token
from auth.service import IdentityService
from core.context import AppContext
from core.errors import UserNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post(
    "/register",
    response_model=Envelope[AuthData],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    req: RegisterRequest,
    identity: IdentityService = Depends(get_identity_service),
    ctx: AppContext = Depends(get_context),
) -> Envelope[AuthData]:
    """Register a new user and return a session token."""
    user = await identity.register(req.email, req.name, req.password)
    token = create_token(str(user.user_id), user.email, settings=ctx.settings)
    return Envelope(
        message="User registered successfully",
        data=AuthData(user=UserOut.from_user(user), token=token),
    )


@router.post("/login", response_model=Envelope[AuthData], response_model_exclude_none=True)
async def login(
    req: LoginRequest,
    identity: IdentityService = Depends(get_identity_service),
    ctx: AppContext = Depends(get_context),
) -> Envelope[AuthData]:
    """Login with email + password."""
    user = await identity.login(req.email, req.password)
    token = create_token(str(user.user_id), user.email, settings=ctx.settings)
    return Envelope(
        message="Login successful",
        data=AuthData(user=UserOut.from_user(user), token=token),
    )


@router.get("/me", response_model=Envelope[UserOut], response_model_exclude_none=True)
async def me(
    current: TokenPayload = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> Envelope[UserOut]:
    user = await identity.get_by_id(current.user_id)
    if user is None:
        raise UserNotFoundError()
    return Envelope(data=UserOut.from_user(user, with_preferences=True))


@router.patch("/me/preferences", response_model=Envelope[UserOut], response_model_exclude_none=True)
async def update_preferences(
    req: PreferencesUpdate,
    current: TokenPayload = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> Envelope[UserOut]:
    user = await identity.update_preferences(current.user_id, req.model_dump(exclude_unset=True))
    return Envelope(
        message="Preferences updated",
        data=UserOut.from_user(user, with_preferences=True),
    )
