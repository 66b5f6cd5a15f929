"""
Tests for the credential store (one OAuth connection per user + provider).
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from connectors.store import CredentialStore, StoredConnection, is_expired
from database.models import OAuthConnection, User
from database.session import transaction


@pytest_asyncio.fixture
async def user_id(ctx):
    uid = uuid.uuid4()
    async with transaction(ctx.session_factory) as session:
        session.add(User(user_id=uid, email=f"{uid.hex[:8]}@example.org", display_name="U"))
    return str(uid)


def _expiry(seconds: int) -> datetime:
    return (datetime.now(timezone.utc) + timedelta(seconds=seconds)).replace(microsecond=0)


async def _upsert(ctx, user_id, **fields):
    async with transaction(ctx.session_factory) as session:
        return await CredentialStore(session, ctx.cipher).upsert(user_id, "linkedin", **fields)


async def _get(ctx, user_id, provider="linkedin"):
    async with transaction(ctx.session_factory) as session:
        return await CredentialStore(session, ctx.cipher).get(user_id, provider)


class TestUpsertAndGet:
    @pytest.mark.asyncio
    async def test_round_trip(self, ctx, user_id):
        expires = _expiry(3600)
        await _upsert(
            ctx, user_id,
            provider_user_id="li-1",
            access_token="at-1",
            refresh_token="rt-1",
            token_expires_at=expires,
            scopes=["openid", "w_member_social"],
        )
        conn = await _get(ctx, user_id)

        assert conn.user_id == user_id
        assert conn.provider == "linkedin"
        assert conn.provider_user_id == "li-1"
        assert conn.access_token == "at-1"
        assert conn.refresh_token == "rt-1"
        assert conn.token_expires_at == expires
        assert conn.scopes == ["openid", "w_member_social"]

    @pytest.mark.asyncio
    async def test_absent(self, ctx, user_id):
        assert await _get(ctx, user_id) is None
        assert await _get(ctx, user_id, provider="google") is None

    @pytest.mark.asyncio
    async def test_tokens_encrypted_at_rest(self, ctx, user_id):
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-plain", refresh_token="rt-plain")
        async with transaction(ctx.session_factory) as session:
            row = (await session.execute(select(OAuthConnection))).scalar_one()
        assert row.access_token != "at-plain"
        assert row.refresh_token != "rt-plain"

    @pytest.mark.asyncio
    async def test_reconnect_updates_in_place(self, ctx, user_id):
        first = await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-1", scopes=["openid"])
        second = await _upsert(
            ctx, user_id, provider_user_id="li-1", access_token="at-2", scopes=["openid", "w_member_social"]
        )

        assert second.connection_id == first.connection_id
        assert second.access_token == "at-2"
        assert second.scopes == ["openid", "w_member_social"]
        async with transaction(ctx.session_factory) as session:
            count = (await session.execute(select(func.count()).select_from(OAuthConnection))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_reconnect_without_refresh_token_keeps_old_one(self, ctx, user_id):
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-1", refresh_token="rt-1")
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-2", refresh_token=None)

        conn = await _get(ctx, user_id)
        assert conn.access_token == "at-2"
        assert conn.refresh_token == "rt-1"

    @pytest.mark.asyncio
    async def test_reconnect_with_new_refresh_token_replaces_it(self, ctx, user_id):
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-1", refresh_token="rt-1")
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-2", refresh_token="rt-2")
        assert (await _get(ctx, user_id)).refresh_token == "rt-2"

    @pytest.mark.asyncio
    async def test_update_tokens(self, ctx, user_id):
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-1", refresh_token="rt-1")
        expires = _expiry(60)
        async with transaction(ctx.session_factory) as session:
            updated = await CredentialStore(session, ctx.cipher).update_tokens(
                user_id, "linkedin", access_token="at-new", token_expires_at=expires
            )
        assert updated.access_token == "at-new"
        assert updated.refresh_token == "rt-1"
        assert updated.token_expires_at == expires

    @pytest.mark.asyncio
    async def test_insert_race_falls_back_to_update(self, ctx, user_id, monkeypatch):
        first = await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-1", refresh_token="rt-1")

        async with transaction(ctx.session_factory) as session:
            store = CredentialStore(session, ctx.cipher)
            real_get_row = store._get_row
            lookups = []

            async def stale_get_row(uid, provider):
                lookups.append(provider)
                if len(lookups) == 1:
                    return None
                return await real_get_row(uid, provider)

            monkeypatch.setattr(store, "_get_row", stale_get_row)
            second = await store.upsert(user_id, "linkedin", provider_user_id="li-1", access_token="at-2")

        assert len(lookups) == 2
        assert second.connection_id == first.connection_id
        assert second.access_token == "at-2"
        assert second.refresh_token == "rt-1"
        async with transaction(ctx.session_factory) as session:
            count = (await session.execute(select(func.count()).select_from(OAuthConnection))).scalar_one()
        assert count == 1


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_existing(self, ctx, user_id):
        await _upsert(ctx, user_id, provider_user_id="li-1", access_token="at-1")
        async with transaction(ctx.session_factory) as session:
            assert await CredentialStore(session, ctx.cipher).remove(user_id, "linkedin") is True
        assert await _get(ctx, user_id) is None

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, ctx, user_id):
        async with transaction(ctx.session_factory) as session:
            store = CredentialStore(session, ctx.cipher)
            assert await store.remove(user_id, "linkedin") is False
            assert await store.remove(user_id, "linkedin") is False


def _conn(expires_at):
    return StoredConnection(
        connection_id="c",
        user_id="u",
        provider="linkedin",
        provider_user_id="p",
        access_token="a",
        refresh_token=None,
        token_expires_at=expires_at,
    )


class TestIsExpired:
    def test_no_expiry_counts_as_expired(self):
        assert is_expired(_conn(None)) is True

    def test_past(self):
        assert is_expired(_conn(datetime.now(timezone.utc) - timedelta(seconds=1))) is True

    def test_future(self):
        assert is_expired(_conn(datetime.now(timezone.utc) + timedelta(hours=1))) is False

    def test_exactly_now_is_expired(self):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert is_expired(_conn(now), now=now) is True

    def test_naive_timestamp_treated_as_utc(self):
        naive_future = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
        assert is_expired(_conn(naive_future)) is False

    def test_available_on_store(self):
        assert CredentialStore.is_expired(_conn(None)) is True
