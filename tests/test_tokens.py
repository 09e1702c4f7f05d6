"""
Tests for one-time invitation and reset tokens.
"""

from datetime import timedelta

import pytest

from aiquiz.auth.passwords import hash_password
from aiquiz.auth.tokens import (
    TOKEN_FIELDS,
    TokenPurpose,
    clear_token_fields,
    find_user_by_token,
    hash_token,
    issue_token,
    purge_expired_tokens,
    token_ttl,
)
from aiquiz.core.models import User, UserRole
from aiquiz.core.utils import utc_now


async def create_user(users, email="pending@upm.es", active=False):
    return await users.create(User(
        name="Pending",
        email=email,
        role=UserRole.PROFESSOR,
        password_hash=hash_password("irrelevant-1"),
        is_active=active,
    ))


class TestIssue:
    @pytest.mark.asyncio
    async def test_stores_only_the_hash(self, users):
        user = await create_user(users)

        token = await issue_token(users, user.id, TokenPurpose.INVITATION, timedelta(days=7))

        assert len(token) == 64
        stored = await users.get(user.id)
        assert stored.invitation_token == hash_token(token)
        assert stored.invitation_token != token
        assert stored.invitation_expires > utc_now() + timedelta(days=6)

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, users):
        user = await create_user(users)

        first = await issue_token(users, user.id, TokenPurpose.RESET, timedelta(hours=1))
        second = await issue_token(users, user.id, TokenPurpose.RESET, timedelta(hours=1))

        assert first != second

    def test_ttl_from_settings(self, settings):
        assert token_ttl(TokenPurpose.INVITATION, settings) == timedelta(days=7)
        assert token_ttl(TokenPurpose.RESET, settings) == timedelta(minutes=60)


class TestVerify:
    @pytest.mark.asyncio
    async def test_finds_holder(self, users):
        user = await create_user(users)
        token = await issue_token(users, user.id, TokenPurpose.RESET, timedelta(hours=1))

        found = await find_user_by_token(users, token, TokenPurpose.RESET)

        assert found is not None
        assert found.id == user.id

    @pytest.mark.asyncio
    async def test_purposes_do_not_mix(self, users):
        user = await create_user(users)
        token = await issue_token(users, user.id, TokenPurpose.INVITATION, timedelta(days=7))

        assert await find_user_by_token(users, token, TokenPurpose.RESET) is None

    @pytest.mark.asyncio
    async def test_reissue_invalidates_previous(self, users):
        user = await create_user(users)

        first = await issue_token(users, user.id, TokenPurpose.INVITATION, timedelta(days=7))
        second = await issue_token(users, user.id, TokenPurpose.INVITATION, timedelta(days=7))

        assert await find_user_by_token(users, first, TokenPurpose.INVITATION) is None
        assert (await find_user_by_token(users, second, TokenPurpose.INVITATION)).id == user.id

    @pytest.mark.asyncio
    async def test_expired_matches_nothing(self, users):
        user = await create_user(users)
        token = await issue_token(users, user.id, TokenPurpose.RESET, timedelta(hours=1))

        await users.update(user.id, {"reset_password_expires": utc_now() - timedelta(seconds=1)})

        assert await find_user_by_token(users, token, TokenPurpose.RESET) is None

    @pytest.mark.asyncio
    async def test_fabricated_token(self, users):
        await create_user(users)
        assert await find_user_by_token(users, "f" * 64, TokenPurpose.RESET) is None

    @pytest.mark.asyncio
    async def test_cleared_token_matches_nothing(self, users):
        user = await create_user(users)
        token = await issue_token(users, user.id, TokenPurpose.RESET, timedelta(hours=1))

        await users.update(user.id, clear_token_fields(TokenPurpose.RESET))

        assert await find_user_by_token(users, token, TokenPurpose.RESET) is None
        stored = await users.get(user.id)
        assert stored.reset_password_token is None
        assert stored.reset_password_expires is None


class TestPurge:
    @pytest.mark.asyncio
    async def test_purges_only_expired(self, users):
        stale = await create_user(users, "stale@upm.es")
        live = await create_user(users, "live@upm.es")

        await issue_token(users, stale.id, TokenPurpose.INVITATION, timedelta(days=7))
        live_token = await issue_token(users, live.id, TokenPurpose.INVITATION, timedelta(days=7))
        await users.update(stale.id, {"invitation_expires": utc_now() - timedelta(days=1)})

        assert await purge_expired_tokens(users) == 1

        hash_field, expires_field = TOKEN_FIELDS[TokenPurpose.INVITATION]
        purged = await users.get(stale.id)
        assert getattr(purged, hash_field) is None
        assert getattr(purged, expires_field) is None
        assert (await find_user_by_token(users, live_token, TokenPurpose.INVITATION)).id == live.id

    @pytest.mark.asyncio
    async def test_purges_beyond_one_page(self, users):
        expired = utc_now() - timedelta(hours=1)
        for i in range(1005):
            user = User(
                name=f"Reset {i}",
                email=f"reset{i}@upm.es",
                password_hash="unused",
                reset_password_token=hash_token(f"token-{i}"),
                reset_password_expires=expired,
            )
            await users.metadata.save(users.collection, user.id, user.to_document())

        assert await purge_expired_tokens(users) == 1005
        assert await users.find({"reset_password_token": {"$ne": None}}) == []

    @pytest.mark.asyncio
    async def test_nothing_to_purge(self, users):
        await create_user(users)
        assert await purge_expired_tokens(users) == 0
