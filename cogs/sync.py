#!/usr/bin/env python3
"""
Sync Cog - Command Synchronization System

This cog pushes the bot's slash command definitions (/invite,
/leaderboard, /check) to Discord. It only needs running after command
definitions change, so it is restricted to the bot owner.
"""

from discord.ext import commands
import logging

from utils.translator import t

logger = logging.getLogger(__name__)

class SyncCog(commands.Cog):
    """Owner-only slash command synchronization"""

    def __init__(self, bot):
        """
        Initialize the sync cog

        Args:
            bot: The Discord bot instance
        """
        self.bot = bot
        logger.info("Sync cog initialized")

    # ============================================================================
    # SYNCHRONIZATION COMMANDS SECTION
    # ============================================================================

    @commands.hybrid_command(name="sync", description="Sync slash commands (Owner only)")
    @commands.is_owner()
    async def sync_commands(self, ctx):
        """Sync slash commands with Discord (Owner only)"""
        try:
            await ctx.send(t('sync.started'), ephemeral=True)

            synced = await self.bot.tree.sync()
            logger.info(f"Synced {len(synced)} command(s) with Discord")

            await ctx.send(t('sync.done', count=len(synced)), ephemeral=True)

        except Exception as e:
            await ctx.send(t('sync.failed'), ephemeral=True)
            logger.error(f"Error syncing commands: {str(e)}")

# ============================================================================
# COG SETUP SECTION
# ============================================================================

async def setup(bot):
    """Setup function called by Discord.py to load this cog"""
    await bot.add_cog(SyncCog(bot))
    logger.info("Sync cog setup complete")
