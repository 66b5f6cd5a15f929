"""
OAuthService — drives the connect → callback → status → disconnect flow.

Per attempt the flow moves ``Unconnected → AwaitingCallback → Connected``.
The service is stateless between requests: everything needed to resume after
the provider redirect travels in the signed ``state`` parameter.  A failed
exchange or profile fetch leaves the database untouched; the upsert happens
only after both provider calls succeed.

Token refresh is an explicit operation (``refresh``); status checks never
refresh on their own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from connectors.base import BaseConnector
from connectors.state import StateCodec
from connectors.store import CredentialStore, StoredConnection, is_expired
from core.context import AppContext
from core.errors import NotFoundError, ProviderError, ProviderRefreshError
from database.session import transaction

logger = logging.getLogger(__name__)


# ── Result types ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectStart:
    auth_url: str
    state: str


@dataclass(frozen=True)
class ConnectResult:
    provider: str
    connected_email: str
    connected_name: str


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    can_post: bool
    expires_at: Optional[datetime] = None
    scopes: Optional[List[str]] = None
    needs_refresh: Optional[bool] = None

    @classmethod
    def disconnected(cls) -> "ConnectionStatus":
        return cls(connected=False, can_post=False)


@dataclass
class OAuthService:
    ctx: AppContext
    state_codec: StateCodec = field(init=False)

    def __post_init__(self) -> None:
        self.state_codec = StateCodec(
            self.ctx.settings.oauth_state_secret,
            ttl_seconds=self.ctx.settings.oauth_state_ttl_seconds,
        )

    def _connector(self, provider: str) -> BaseConnector:
        connector = self.ctx.registry.get(provider)
        if connector is None:
            raise NotFoundError(f"Provider '{provider}' not found or not configured")
        return connector

    # ── Unconnected → AwaitingCallback ──────────────────────────────────

    def start_connect(self, user_id: str, provider: str) -> ConnectStart:
        connector = self._connector(provider)
        state = self.state_codec.encode(user_id)
        auth_url = connector.build_authorization_url(state)
        logger.info("OAuth connect started: user=%s provider=%s", user_id, provider)
        return ConnectStart(auth_url=auth_url, state=state)

    # ── AwaitingCallback → Connected ────────────────────────────────────

    async def complete_callback(self, provider: str, code: str, state: str) -> ConnectResult:
        # 1. Verify state → user_id (InvalidStateError before any I/O)
        decoded = self.state_codec.decode(state)
        connector = self._connector(provider)

        # 2. Exchange code + fetch profile
        try:
            grant = await connector.exchange_code(code)
            profile = await connector.fetch_profile(grant.access_token)
        except ProviderError as exc:
            logger.error(
                "OAuth callback failed for %s (user %s): %s — %s",
                provider, decoded.user_id, exc.message, exc.details,
            )
            raise

        # 3. Persist
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in)
        async with transaction(self.ctx.session_factory) as session:
            store = CredentialStore(session, self.ctx.cipher)
            await store.upsert(
                decoded.user_id,
                provider,
                provider_user_id=profile.provider_user_id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                token_expires_at=expires_at,
                scopes=grant.scopes,
            )

        logger.info(
            "OAuth connected: user=%s provider=%s account=%s",
            decoded.user_id, provider, profile.email or profile.provider_user_id,
        )
        return ConnectResult(
            provider=provider,
            connected_email=profile.email,
            connected_name=profile.display_name,
        )

    # ── Connected → Connected (query) ───────────────────────────────────

    async def status(self, user_id: str, provider: str) -> ConnectionStatus:
        async with transaction(self.ctx.session_factory) as session:
            conn = await CredentialStore(session, self.ctx.cipher).get(user_id, provider)
        if conn is None:
            return ConnectionStatus.disconnected()
        return self._status_of(conn)

    def _status_of(self, conn: StoredConnection) -> ConnectionStatus:
        expired = is_expired(conn)
        connector = self.ctx.registry.get(conn.provider)
        posting_scope = connector.posting_scope if connector else None
        return ConnectionStatus(
            connected=True,
            can_post=not expired and posting_scope is not None and posting_scope in conn.scopes,
            expires_at=conn.token_expires_at,
            scopes=list(conn.scopes),
            needs_refresh=expired,
        )

    # ── Connected → Unconnected ─────────────────────────────────────────

    async def disconnect(self, user_id: str, provider: str) -> bool:
        async with transaction(self.ctx.session_factory) as session:
            removed = await CredentialStore(session, self.ctx.cipher).remove(user_id, provider)
        logger.info("OAuth disconnect: user=%s provider=%s removed=%s", user_id, provider, removed)
        return removed

    # ── Explicit refresh ────────────────────────────────────────────────

    async def refresh(self, user_id: str, provider: str) -> ConnectionStatus:
        """
        Trade the stored refresh token for a new access token.

        ``NotFoundError`` when nothing is connected; ``ProviderRefreshError``
        when there is no refresh token or the provider rejects it, meaning
        the user has to run the connect flow again.
        """
        connector = self._connector(provider)

        async with transaction(self.ctx.session_factory) as session:
            conn = await CredentialStore(session, self.ctx.cipher).get(user_id, provider)
        if conn is None:
            raise NotFoundError(f"No {provider} connection for this user")
        if not conn.refresh_token:
            raise ProviderRefreshError(
                "No refresh token stored; reconnect required", provider=provider
            )

        try:
            refreshed = await connector.refresh_token(conn.refresh_token)
        except ProviderError as exc:
            logger.warning("Token refresh failed for %s/%s: %s", provider, user_id, exc.details)
            raise

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=refreshed.expires_in)
        async with transaction(self.ctx.session_factory) as session:
            updated = await CredentialStore(session, self.ctx.cipher).update_tokens(
                user_id,
                provider,
                access_token=refreshed.access_token,
                token_expires_at=expires_at,
                refresh_token=refreshed.refresh_token,
            )
        if updated is None:
            raise NotFoundError(f"No {provider} connection for this user")

        logger.info("Refreshed %s token for user %s", provider, user_id)
        return self._status_of(updated)
