"""
Connector API routes — OAuth connect / callback / status / refresh / disconnect.

Route prefix: /auth.  One set of routes is mounted per provider
(``/auth/linkedin``, ``/auth/linkedin/callback`` …).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_context, get_oauth_service
from api.schemas import CallbackData, ConnectData, Envelope, ProviderInfo, StatusData
from auth.dependencies import get_current_user
from auth.jwt import TokenPayload
from connectors.service import ConnectionStatus, OAuthService
from core.context import AppContext
from core.errors import InvalidStateError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connectors"])


def _status_data(status: ConnectionStatus) -> StatusData:
    return StatusData(
        connected=status.connected,
        can_post=status.can_post,
        expires_at=status.expires_at,
        scopes=status.scopes,
        needs_refresh=status.needs_refresh,
    )


@router.get("/providers", response_model=Envelope[List[ProviderInfo]])
async def list_providers(ctx: AppContext = Depends(get_context)) -> Envelope[List[ProviderInfo]]:
    """
    List all known OAuth providers and whether they are configured.
    No auth required — used by the frontend to show available connections.
    """
    return Envelope(data=[ProviderInfo(**p) for p in ctx.registry.list_providers()])


def build_provider_router(provider: str, display_name: str) -> APIRouter:
    """Routes for one OAuth provider, mounted under ``/{provider}``."""
    r = APIRouter(prefix=f"/{provider}", tags=["connectors"])

    @r.get("", response_model=Envelope[ConnectData], name=f"{provider}_connect")
    async def connect(
        current: TokenPayload = Depends(get_current_user),
        oauth: OAuthService = Depends(get_oauth_service),
    ) -> Envelope[ConnectData]:
        """
        Start the OAuth flow.

        Frontend should redirect (or open a popup) to ``authUrl``.
        """
        start = oauth.start_connect(current.user_id, provider)
        return Envelope(data=ConnectData(auth_url=start.auth_url, state=start.state))

    @r.get(
        "/callback",
        response_model=Envelope[CallbackData],
        response_model_exclude_none=True,
        name=f"{provider}_callback",
    )
    async def callback(
        code: Optional[str] = Query(None),
        state: Optional[str] = Query(None),
        error: Optional[str] = Query(None),
        error_description: Optional[str] = Query(None),
        oauth: OAuthService = Depends(get_oauth_service),
    ) -> Envelope[CallbackData]:
        """
        OAuth callback — the provider redirects here after consent.

        Verifies state, exchanges the code, stores the connection.
        """
        if error:
            # User denied consent or the provider refused the request.
            raise ValidationError(
                f"{display_name} authorization was not granted",
                details={"error": error, "errorDescription": error_description},
            )
        if not code or not state:
            raise InvalidStateError("Missing code or state parameter")

        result = await oauth.complete_callback(provider, code, state)
        return Envelope(
            message=f"{display_name} account connected successfully",
            data=CallbackData(
                provider=result.provider,
                connected_email=result.connected_email,
                connected_name=result.connected_name,
            ),
        )

    @r.get(
        "/status",
        response_model=Envelope[StatusData],
        response_model_exclude_none=True,
        name=f"{provider}_status",
    )
    async def connection_status(
        current: TokenPayload = Depends(get_current_user),
        oauth: OAuthService = Depends(get_oauth_service),
    ) -> Envelope[StatusData]:
        status = await oauth.status(current.user_id, provider)
        return Envelope(data=_status_data(status))

    @r.post(
        "/refresh",
        response_model=Envelope[StatusData],
        response_model_exclude_none=True,
        name=f"{provider}_refresh",
    )
    async def refresh(
        current: TokenPayload = Depends(get_current_user),
        oauth: OAuthService = Depends(get_oauth_service),
    ) -> Envelope[StatusData]:
        status = await oauth.refresh(current.user_id, provider)
        return Envelope(message=f"{display_name} token refreshed", data=_status_data(status))

    @r.delete("", response_model=Envelope[None], response_model_exclude_none=True, name=f"{provider}_disconnect")
    async def disconnect(
        current: TokenPayload = Depends(get_current_user),
        oauth: OAuthService = Depends(get_oauth_service),
    ) -> Envelope[None]:
        await oauth.disconnect(current.user_id, provider)
        return Envelope(message=f"{display_name} account disconnected successfully")

    return r


router.include_router(build_provider_router("linkedin", "LinkedIn"))
