#!/usr/bin/env python3
"""
Invite Tracking Cog - Join Attribution and Validation Scheduling

This cog connects discord.py's gateway events to the tracking handlers:
- Member joins are attributed to the invite that was used
- Member leaves mark pending joins as left early
- Guild joins/removals refresh or drop the invite cache
- Invite create/delete events keep the cache current
- A background loop validates pending joins on a fixed interval

All logic lives in the tracking package; this cog only adapts events.
"""

import asyncio
import logging

from discord.ext import commands, tasks

from tracking.handlers import (
    handle_guild_join,
    handle_guild_remove,
    handle_member_join,
    handle_member_leave,
)
from tracking.validation import validate_pending_joins

logger = logging.getLogger(__name__)


class InviteTrackingCog(commands.Cog):
    """
    Invite tracking cog that handles member join/leave events and validation

    This cog provides:
    - Automatic attribution of each new member to a tracked invite
    - Leave tracking for pending joins
    - Invite cache maintenance
    - Periodic validation of pending joins
    """

    def __init__(self, bot):
        """
        Initialize the invite tracking cog

        Args:
            bot: The Discord bot instance (must carry a `tracking` services bundle)
        """
        self.bot = bot
        self.services = bot.tracking
        self.validation_loop.change_interval(
            minutes=self.services.settings.validation_check_interval_minutes
        )
        logger.info("Invite tracking cog initialized")

    async def cog_load(self):
        self.validation_loop.start()
        logger.info(
            f"⏱️ Validation check every {self.services.settings.validation_check_interval_minutes} minute(s), "
            f"first run {self.services.settings.initial_validation_delay_seconds:.0f}s after startup"
        )

    async def cog_unload(self):
        self.validation_loop.cancel()

    # ============================================================================
    # MEMBER JOIN / LEAVE SECTION
    # ============================================================================

    @commands.Cog.listener()
    async def on_member_join(self, member):
        """Attribute the join to a tracked invite"""
        try:
            await handle_member_join(member, self.services)
        except Exception as e:
            logger.error(f'❌ Error handling member join: {str(e)}')

    @commands.Cog.listener()
    async def on_raw_member_remove(self, payload):
        """
        Handle member leaves

        The raw event fires even when the member was not cached, and always
        carries the guild ID and the user.
        """
        user = getattr(payload, 'user', None)
        user_id = user.id if user is not None else None
        try:
            await handle_member_leave(payload.guild_id, user_id, self.services)
        except Exception as e:
            logger.error(f'❌ Error handling member leave: {str(e)}')

    # ============================================================================
    # GUILD MEMBERSHIP SECTION
    # ============================================================================

    @commands.Cog.listener()
    async def on_guild_join(self, guild):
        try:
            await handle_guild_join(guild, self.services)
        except Exception as e:
            logger.error(f'❌ Error caching invites for new guild {guild.id}: {str(e)}')

    @commands.Cog.listener()
    async def on_guild_remove(self, guild):
        guild_id = getattr(guild, 'id', None)
        if guild_id is None:
            logger.info("Left a guild without an ID available, cleanup skipped")
            return
        try:
            await handle_guild_remove(guild_id, self.services)
        except Exception as e:
            logger.error(f'❌ Error cleaning up guild {guild_id}: {str(e)}')

    # ============================================================================
    # INVITE CACHE MANAGEMENT SECTION
    # ============================================================================

    @commands.Cog.listener()
    async def on_invite_create(self, invite):
        """Start tracking a new invite's use count from its creation"""
        self.services.invite_cache.note_invite_created(invite)
        logger.debug(f'📝 New invite created: {invite.code}')

    @commands.Cog.listener()
    async def on_invite_delete(self, invite):
        self.services.invite_cache.note_invite_deleted(invite)
        logger.debug(f'🗑️ Invite deleted: {invite.code}')

    # ============================================================================
    # VALIDATION TASK SECTION
    # ============================================================================

    @tasks.loop(minutes=60)
    async def validation_loop(self):
        try:
            await validate_pending_joins(self.services)
        except Exception as e:
            logger.error(f"Validation task error: {str(e)}")

    @validation_loop.before_loop
    async def before_validation_loop(self):
        # The first pass picks up joins that became due while the bot was offline
        await self.bot.wait_until_ready()
        await asyncio.sleep(self.services.settings.initial_validation_delay_seconds)
        logger.info("Validation task is ready")

# ============================================================================
# COG SETUP SECTION
# ============================================================================

async def setup(bot):
    """
    Setup function called by Discord.py to load this cog

    Args:
        bot: The Discord bot instance
    """
    await bot.add_cog(InviteTrackingCog(bot))
    logger.info("Invite tracking cog setup complete")
