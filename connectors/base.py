"""
BaseConnector — abstract interface for all OAuth2 provider adapters.

Every provider (LinkedIn, Google, …) subclasses this and implements the
four core operations.  Each operation is a single request/response mapping:
no retries, no caching.  Failures surface as the operation-specific
``ProviderError`` subclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import httpx


@dataclass(frozen=True)
class TokenGrant:
    """Result of exchanging an authorization code."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    scopes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProviderProfile:
    provider_user_id: str
    email: str
    display_name: str


@dataclass(frozen=True)
class RefreshedToken:
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None


class BaseConnector(ABC):
    """Abstract base for all OAuth2 connectors."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._http = http_client

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug: 'linkedin', 'google'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'LinkedIn', 'Google'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes requested by this connector."""
        ...

    @property
    def posting_scope(self) -> Optional[str]:
        """Scope that must be granted before the app may publish on the user's behalf."""
        return None

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def build_authorization_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Opaque state string (encodes user_id + CSRF nonce).

        Returns
        -------
        The full URL to redirect the user to.
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> TokenGrant:
        """
        Exchange the authorization code for tokens.

        Raises ``ProviderExchangeError`` with the provider's raw body on
        a non-2xx response.
        """
        ...

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        """Fetch the connected account's identity; ``ProviderProfileError`` on failure."""
        ...

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> RefreshedToken:
        """
        Trade a refresh token for a new access token.

        ``ProviderRefreshError`` means the refresh token was rejected and the
        user must run the full connect flow again.
        """
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """
        Return True if this connector has all required config
        (client ID, client secret, …).
        """
        return True
