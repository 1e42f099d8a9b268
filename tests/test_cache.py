"""
Invite Tracker - Invite Usage Cache Tests
=========================================
"""

import pytest
import discord

from tracking.cache import InviteUsageCache
from fakes import make_guild, make_http_error, make_invite


class TestRefresh:
    """Tests for fetching a guild's invites into the cache."""

    @pytest.mark.asyncio
    async def test_keys_are_exactly_live_codes(self):
        """Test a successful refresh mirrors the live invite list."""
        guild = make_guild(invites=[make_invite("aaa", 5), make_invite("bbb", 0)])
        cache = InviteUsageCache()

        assert await cache.refresh(guild) is True
        assert cache.get(guild.id) == {"aaa": 5, "bbb": 0}

    @pytest.mark.asyncio
    async def test_missing_uses_stored_as_zero(self):
        guild = make_guild(invites=[make_invite("aaa", None)])
        cache = InviteUsageCache()

        await cache.refresh(guild)
        assert cache.get(guild.id) == {"aaa": 0}

    @pytest.mark.asyncio
    async def test_refresh_replaces_previous_entry(self):
        """Test codes that disappeared upstream do not linger."""
        guild = make_guild(invites=[make_invite("aaa", 1), make_invite("old", 3)])
        cache = InviteUsageCache()
        await cache.refresh(guild)

        guild.live_invites = [make_invite("aaa", 2)]
        await cache.refresh(guild)
        assert cache.get(guild.id) == {"aaa": 2}

    @pytest.mark.asyncio
    async def test_missing_permission_clears_entry(self):
        """Test losing Manage Guild drops the cached mapping without fetching."""
        guild = make_guild(invites=[make_invite("aaa", 1)])
        cache = InviteUsageCache()
        await cache.refresh(guild)

        guild.me.guild_permissions.manage_guild = False
        guild.invites.reset_mock()

        assert await cache.refresh(guild) is False
        assert cache.get(guild.id) is None
        guild.invites.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_error_clears_entry(self):
        guild = make_guild(invites=[make_invite("aaa", 1)])
        cache = InviteUsageCache()
        await cache.refresh(guild)

        guild.invites.side_effect = make_http_error(discord.Forbidden, 403, 50013, 'Missing Permissions')

        assert await cache.refresh(guild) is False
        assert guild.id not in cache


class TestEnsure:
    """Tests for lazy cache establishment."""

    @pytest.mark.asyncio
    async def test_returns_cached_without_fetching(self):
        guild = make_guild(invites=[make_invite("aaa", 1)])
        cache = InviteUsageCache()
        cache.store(guild.id, [make_invite("aaa", 0)])

        assert await cache.ensure(guild) == {"aaa": 0}
        guild.invites.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refreshes_once_when_missing(self):
        guild = make_guild(invites=[make_invite("aaa", 4)])
        cache = InviteUsageCache()

        assert await cache.ensure(guild) == {"aaa": 4}
        assert guild.invites.await_count == 1

    @pytest.mark.asyncio
    async def test_none_when_refresh_fails(self):
        guild = make_guild(manage_guild=False)
        cache = InviteUsageCache()

        assert await cache.ensure(guild) is None


class TestInvalidateAndEvents:
    """Tests for invalidation and gateway invite events."""

    def test_invalidate_drops_entry(self):
        cache = InviteUsageCache()
        cache.store(1, [make_invite("aaa", 1)])

        cache.invalidate(1)
        cache.invalidate(1)  # second call is a no-op

        assert cache.get(1) is None
        assert len(cache) == 0

    def test_created_invite_added_to_existing_entry(self):
        guild = make_guild(guild_id=7)
        cache = InviteUsageCache()
        cache.store(7, [make_invite("aaa", 2)])

        cache.note_invite_created(make_invite("new", 0, guild=guild))
        assert cache.get(7) == {"aaa": 2, "new": 0}

    def test_created_invite_ignored_without_entry(self):
        """Test an event never fabricates a partial cache entry."""
        guild = make_guild(guild_id=7)
        cache = InviteUsageCache()

        cache.note_invite_created(make_invite("new", 0, guild=guild))
        assert cache.get(7) is None

    def test_deleted_invite_removed(self):
        guild = make_guild(guild_id=7)
        cache = InviteUsageCache()
        cache.store(7, [make_invite("aaa", 2), make_invite("bbb", 1)])

        cache.note_invite_deleted(make_invite("bbb", 1, guild=guild))
        assert cache.get(7) == {"aaa": 2}
