"""
LinkedInConnector — OAuth2 authorization-code flow for LinkedIn.

Requests OpenID Connect identity scopes plus ``w_member_social`` so the
connected account can later be posted to.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List
from urllib.parse import urlencode

import httpx

from config.settings import Settings
from connectors.base import BaseConnector, ProviderProfile, RefreshedToken, TokenGrant
from core.errors import (
    ProviderExchangeError,
    ProviderProfileError,
    ProviderRefreshError,
)

logger = logging.getLogger(__name__)

# LinkedIn OAuth2 endpoints
_LI_AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
_LI_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
_LI_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"

POSTING_SCOPE = "w_member_social"
_DEFAULT_EXPIRES_IN = 5184000  # 60 days, LinkedIn's standard member token lifetime


def _split_scopes(raw: str) -> List[str]:
    # LinkedIn answers with commas; RFC 6749 uses spaces.
    return [s for s in re.split(r"[,\s]+", raw) if s]


class LinkedInConnector(BaseConnector):
    """OAuth2 connector for LinkedIn."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ):
        super().__init__(http_client)
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> "LinkedInConnector":
        return cls(
            http_client,
            client_id=settings.linkedin_client_id,
            client_secret=settings.linkedin_client_secret,
            redirect_uri=settings.linkedin_callback_url,
        )

    @property
    def provider_name(self) -> str:
        return "linkedin"

    @property
    def display_name(self) -> str:
        return "LinkedIn"

    @property
    def scopes(self) -> List[str]:
        return ["openid", "profile", "email", POSTING_SCOPE]

    @property
    def posting_scope(self) -> str:
        return POSTING_SCOPE

    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def build_authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "state": state,
            "scope": " ".join(self.scopes),
        }
        return f"{_LI_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange auth code for tokens. Authorization codes are single-use, so no retry."""
        data = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": self._redirect_uri,
            },
            error_cls=ProviderExchangeError,
            what="exchange code",
        )
        granted = data.get("scope")
        return TokenGrant(
            access_token=data["access_token"],
            expires_in=data["expires_in"],
            refresh_token=data.get("refresh_token") or None,
            scopes=_split_scopes(granted) if granted else list(self.scopes),
        )

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        try:
            resp = await self._http.get(
                _LI_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            raise ProviderProfileError(
                "Failed to fetch LinkedIn profile", details=str(exc), provider=self.provider_name
            ) from exc

        if not resp.is_success:
            raise ProviderProfileError(
                "Failed to fetch LinkedIn profile", details=resp.text, provider=self.provider_name
            )

        try:
            user = resp.json()
            provider_user_id = str(user["sub"])
            email = user.get("email") or ""
            name = user.get("name") or " ".join(
                part for part in (user.get("given_name"), user.get("family_name")) if part
            )
            if not isinstance(email, str) or not isinstance(name, str):
                raise TypeError("email and name must be strings")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ProviderProfileError(
                "Malformed LinkedIn profile response", details=resp.text, provider=self.provider_name
            ) from exc
        return ProviderProfile(
            provider_user_id=provider_user_id,
            email=email,
            display_name=name,
        )

    async def refresh_token(self, refresh_token: str) -> RefreshedToken:
        """
        Refresh the access token.

        Note: LinkedIn only issues refresh tokens to apps approved for
        programmatic refresh; everyone else has to reconnect after 60 days.
        """
        data = await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
            },
            error_cls=ProviderRefreshError,
            what="refresh token",
        )
        return RefreshedToken(
            access_token=data["access_token"],
            expires_in=data["expires_in"],
            refresh_token=data.get("refresh_token") or None,
        )

    async def _post_token(self, form: Dict[str, str], *, error_cls, what: str) -> Dict[str, Any]:
        """POST to the token endpoint; return the JSON body or raise ``error_cls``."""
        try:
            resp = await self._http.post(
                _LI_TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as exc:
            raise error_cls(
                f"Failed to {what}", details=str(exc), provider=self.provider_name
            ) from exc

        if not resp.is_success:
            raise error_cls(f"Failed to {what}", details=resp.text, provider=self.provider_name)

        try:
            data = resp.json()
        except ValueError as exc:
            raise error_cls(
                f"Failed to {what}: response is not JSON", details=resp.text, provider=self.provider_name
            ) from exc

        if not isinstance(data, dict) or not data.get("access_token"):
            raise error_cls(
                f"Failed to {what}: no access_token in response",
                details=resp.text,
                provider=self.provider_name,
            )

        try:
            data["expires_in"] = int(data.get("expires_in") or _DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError) as exc:
            raise error_cls(
                f"Failed to {what}: invalid expires_in in response",
                details=resp.text,
                provider=self.provider_name,
            ) from exc
        return data
