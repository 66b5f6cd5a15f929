"""
Tests for IdentityService (register / login / lookup / preferences).
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import select

from auth.service import DEFAULT_PREFERENCES, IdentityService
from core.errors import (
    AuthenticationError,
    DuplicateEmailError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from database.models import User
from database.session import transaction


@pytest_asyncio.fixture
async def identity(ctx):
    return IdentityService(ctx.session_factory, bcrypt_rounds=4)


class TestRegisterLogin:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,name,password",
        [
            ("a@b.com", "Ada", "password123"),
            ("grace.hopper@navy.mil", "Grace Hopper", "c0b0l-rulez!"),
            ("Mixed.Case@Example.org", "Al", "ünïcødé-pässwörd"),
        ],
    )
    async def test_register_then_login_returns_same_user(self, identity, email, name, password):
        user = await identity.register(email, name, password)
        logged_in = await identity.login(email, password)
        assert logged_in.user_id == user.user_id

    @pytest.mark.asyncio
    async def test_register_stores_hash_and_default_preferences(self, identity):
        user = await identity.register("a@b.com", "Ada", "password123")
        assert user.password_hash and user.password_hash != "password123"
        assert user.preferences == DEFAULT_PREFERENCES
        assert user.email == "a@b.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected_without_mutation(self, identity, ctx):
        original = await identity.register("a@b.com", "Ada", "password123")
        with pytest.raises(DuplicateEmailError):
            await identity.register("A@B.com", "Impostor", "otherpassword")

        async with transaction(ctx.session_factory) as session:
            rows = (await session.execute(select(User))).scalars().all()
        assert len(rows) == 1
        assert rows[0].display_name == "Ada"
        assert rows[0].password_hash == original.password_hash

    @pytest.mark.asyncio
    async def test_unique_constraint_race_is_duplicate_email(self, identity, ctx, monkeypatch):
        await identity.register("a@b.com", "Ada", "password123")

        async def not_found(session, email):
            return None

        monkeypatch.setattr(identity, "_find_by_email", not_found)
        with pytest.raises(DuplicateEmailError):
            await identity.register("a@b.com", "Impostor", "otherpassword")

        async with transaction(ctx.session_factory) as session:
            rows = (await session.execute(select(User))).scalars().all()
        assert [r.display_name for r in rows] == ["Ada"]

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_are_indistinguishable(self, identity):
        await identity.register("a@b.com", "Ada", "password123")

        with pytest.raises(InvalidCredentialsError) as wrong_pw:
            await identity.login("a@b.com", "nope-nope")
        with pytest.raises(InvalidCredentialsError) as unknown:
            await identity.login("nobody@b.com", "password123")

        assert type(wrong_pw.value) is type(unknown.value)
        assert wrong_pw.value.message == unknown.value.message
        assert isinstance(wrong_pw.value, AuthenticationError)

    @pytest.mark.asyncio
    async def test_passwordless_user_cannot_login(self, identity, ctx):
        async with transaction(ctx.session_factory) as session:
            session.add(User(user_id=uuid.uuid4(), email="sso@b.com", display_name="SSO", password_hash=None))
        with pytest.raises(InvalidCredentialsError):
            await identity.login("sso@b.com", "anything")


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_by_id_and_email(self, identity):
        user = await identity.register("a@b.com", "Ada", "password123")
        assert (await identity.get_by_id(str(user.user_id))).email == "a@b.com"
        assert (await identity.get_by_email("A@b.com")).user_id == user.user_id

    @pytest.mark.asyncio
    async def test_absent(self, identity):
        assert await identity.get_by_id(str(uuid.uuid4())) is None
        assert await identity.get_by_id("not-a-uuid") is None
        assert await identity.get_by_email("ghost@b.com") is None


class TestPreferences:
    @pytest.mark.asyncio
    async def test_shallow_merge(self, identity):
        user = await identity.register("a@b.com", "Ada", "password123")
        updated = await identity.update_preferences(
            str(user.user_id), {"tone": "playful", "banned_phrases": ["synergy"]}
        )
        assert updated.preferences == {
            "brand_voice": "professional",
            "tone": "playful",
            "default_hashtags": [],
            "banned_phrases": ["synergy"],
        }
        reloaded = await identity.get_by_id(str(user.user_id))
        assert reloaded.preferences["tone"] == "playful"

    @pytest.mark.asyncio
    async def test_missing_user(self, identity):
        with pytest.raises(UserNotFoundError):
            await identity.update_preferences(str(uuid.uuid4()), {"tone": "x"})
