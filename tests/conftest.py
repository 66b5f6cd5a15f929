"""
Shared fixtures: in-memory SQLite database, stubbed LinkedIn endpoints,
an ``AppContext`` wired to both, and an HTTP client driving the app.
"""

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from config.settings import Settings
from core.context import AppContext
from database.session import create_all
from main import create_app


@dataclass
class FakeLinkedIn:
    """Programmable stand-in for LinkedIn's token and userinfo endpoints."""

    access_token: str = "li-access-token"
    refresh_token: Optional[str] = "li-refresh-token"
    expires_in: int = 5184000
    scope: Optional[str] = "email,openid,profile,w_member_social"
    profile: Dict[str, Any] = field(default_factory=lambda: {
        "sub": "li-member-42",
        "email": "member@example.com",
        "name": "Ada Lovelace",
    })
    token_status: int = 200
    token_body: Optional[str] = None
    userinfo_status: int = 200
    refresh_status: int = 200
    requests: List[httpx.Request] = field(default_factory=list)

    def forms(self) -> List[Dict[str, str]]:
        return [
            {k: v[0] for k, v in parse_qs(r.content.decode()).items()}
            for r in self.requests
            if r.url.path.endswith("/accessToken")
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/v2/accessToken":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            if form.get("grant_type") == "refresh_token":
                if self.refresh_status != 200:
                    return httpx.Response(self.refresh_status, text='{"error":"invalid_grant"}')
                return httpx.Response(200, json={
                    "access_token": "li-refreshed-token",
                    "expires_in": 3600,
                })
            if self.token_status != 200:
                return httpx.Response(
                    self.token_status,
                    text=self.token_body or '{"error":"invalid_request","error_description":"bad code"}',
                )
            body: Dict[str, Any] = {"access_token": self.access_token, "expires_in": self.expires_in}
            if self.refresh_token:
                body["refresh_token"] = self.refresh_token
            if self.scope:
                body["scope"] = self.scope
            return httpx.Response(200, json=body)
        if request.url.path == "/v2/userinfo":
            if self.userinfo_status != 200:
                return httpx.Response(self.userinfo_status, text='{"message":"Unauthorized"}')
            return httpx.Response(200, json=self.profile)
        return httpx.Response(404)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite://",
        jwt_secret="test-jwt-secret",
        oauth_state_secret="test-state-secret",
        token_encryption_key=Fernet.generate_key().decode(),
        bcrypt_rounds=4,
        linkedin_client_id="li-client-id",
        linkedin_client_secret="li-client-secret",
        linkedin_callback_url="http://testserver/auth/linkedin/callback",
    )


@pytest.fixture
def fake_linkedin() -> FakeLinkedIn:
    return FakeLinkedIn()


@pytest_asyncio.fixture
async def ctx(settings, fake_linkedin):
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_all(engine)
    context = AppContext.build(
        settings,
        engine=engine,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_linkedin)),
    )
    yield context
    await context.aclose()


@pytest_asyncio.fixture
async def client(settings, ctx):
    app = create_app(settings, context=ctx)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def register_user(client):
    async def _register(email="a@b.com", password="password123", name="Ada") -> Dict[str, Any]:
        resp = await client.post(
            "/auth/register", json={"email": email, "name": name, "password": password}
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _register
