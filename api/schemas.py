"""
Pydantic request / response schemas for the HTTP surface.

Every success body is an ``Envelope`` (``{data?, message?}``); errors are
built by ``api.errors`` as ``{error, message, details?}``.  Payload keys are
camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(BaseModel, Generic[T]):
    data: Optional[T] = None
    message: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=255)
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class PreferencesUpdate(BaseModel):
    """Partial preference bag; unknown keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    brand_voice: Optional[str] = None
    tone: Optional[str] = None
    default_hashtags: Optional[List[str]] = None
    banned_phrases: Optional[List[str]] = None


class UserOut(CamelModel):
    id: str
    email: str
    name: str
    created_at: Optional[datetime] = None
    preferences: Optional[dict] = None

    @classmethod
    def from_user(cls, user, *, with_preferences: bool = False) -> "UserOut":
        return cls(
            id=str(user.user_id),
            email=user.email,
            name=user.display_name,
            created_at=user.created_at,
            preferences=dict(user.preferences or {}) if with_preferences else None,
        )


class AuthData(CamelModel):
    user: UserOut
    token: str


# ═══════════════════════════════════════════════════════════════════════════════
# OAuth connections
# ═══════════════════════════════════════════════════════════════════════════════


class ConnectData(CamelModel):
    auth_url: str
    state: str


class CallbackData(CamelModel):
    provider: str
    connected_email: str
    connected_name: str


class StatusData(CamelModel):
    connected: bool
    can_post: bool
    expires_at: Optional[datetime] = None
    scopes: Optional[List[str]] = None
    needs_refresh: Optional[bool] = None


class ProviderInfo(CamelModel):
    provider: str
    display_name: str
    configured: bool
