#!/usr/bin/env python3
"""
Invite Usage Cache

Keeps, per guild, the last observed use count of every invite. When a
member joins, the counts Discord reports now are compared against these
to work out which invite was used.

The cache is a plain in-memory mapping owned by one InviteUsageCache
instance created at startup. It is never persisted; whenever an entry is
missing it is rebuilt from Discord, and it is dropped when the bot loses
the Manage Guild permission or leaves the guild.
"""

import logging

from tracking.errors import is_permission_error

logger = logging.getLogger(__name__)


class InviteUsageCache:
    """
    Per-guild map of invite code -> use count

    Structure: {guild_id (int): {invite_code (str): uses (int)}}
    """

    def __init__(self):
        self._uses = {}

    def __contains__(self, guild_id):
        return guild_id in self._uses

    def __len__(self):
        return len(self._uses)

    @staticmethod
    def can_manage_invites(guild) -> bool:
        """Listing every invite of a guild requires Manage Guild"""
        me = guild.me
        return bool(me is not None and me.guild_permissions.manage_guild)

    def get(self, guild_id):
        """Cached mapping for a guild, or None if there is no entry"""
        return self._uses.get(guild_id)

    def store(self, guild_id, invites):
        """
        Replace a guild's entry from an already fetched invite list

        Args:
            guild_id: The Discord guild ID
            invites: Iterable of discord.Invite (anything with .code and .uses)

        Returns:
            dict: The new code -> uses mapping
        """
        uses_map = {invite.code: invite.uses or 0 for invite in invites}
        self._uses[guild_id] = uses_map
        return uses_map

    def invalidate(self, guild_id):
        """Drop a guild's entry; a no-op when there is none"""
        if self._uses.pop(guild_id, None) is not None:
            logger.debug(f"[InviteCache][Guild:{guild_id}] Entry invalidated")

    async def refresh(self, guild) -> bool:
        """
        Fetch all invites of a guild from Discord and cache their use counts

        Returns:
            bool: True on success; False when the permission is missing or the
            fetch failed, in which case any existing entry is cleared so a
            stale mapping is never compared against
        """
        log_prefix = f"[InviteCache][Guild:{guild.id}]"

        if not self.can_manage_invites(guild):
            logger.warning(f"{log_prefix} Missing 'Manage Guild' permission, cannot cache invites")
            self.invalidate(guild.id)
            return False

        try:
            invites = await guild.invites()
        except Exception as e:
            if is_permission_error(e):
                logger.warning(f"{log_prefix} Permission denied while fetching invites: {str(e)}")
            else:
                logger.error(f"{log_prefix} Error caching invites: {str(e)}")
            self.invalidate(guild.id)
            return False

        uses_map = self.store(guild.id, invites)
        logger.debug(f"{log_prefix} Cached {len(uses_map)} invite use count(s)")
        return True

    async def ensure(self, guild):
        """
        Return the cached mapping for a guild, refreshing once if it is missing

        Returns:
            dict: The mapping, or None if it could not be established
        """
        uses_map = self._uses.get(guild.id)
        if uses_map is not None:
            return uses_map

        logger.warning(f"[InviteCache][Guild:{guild.id}] Cache missing, attempting to cache now")
        if not await self.refresh(guild):
            return None
        return self._uses.get(guild.id)

    # ============================================================================
    # GATEWAY INVITE EVENTS SECTION
    # ============================================================================

    def note_invite_created(self, invite):
        """Record a newly created invite in an existing guild entry"""
        guild = invite.guild
        if guild is None:
            return
        uses_map = self._uses.get(guild.id)
        if uses_map is not None:
            uses_map[invite.code] = invite.uses or 0

    def note_invite_deleted(self, invite):
        """Forget a deleted invite"""
        guild = invite.guild
        if guild is None:
            return
        uses_map = self._uses.get(guild.id)
        if uses_map is not None:
            uses_map.pop(invite.code, None)
