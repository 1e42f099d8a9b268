#!/usr/bin/env python3
"""
Discord Bot Core - Bot creation, database wiring and core event handlers

This file contains:
- Bot creation and configuration (intents, command prefix)
- MongoDB connection setup and collection wiring
- The TrackingServices bundle shared by cogs and the web server
- Core event handlers (ready, disconnect, resume, command errors)
- Cog loading system

Feature logic lives in cogs/ and the tracking package.
"""

import logging

import discord
from discord.ext import commands

from tracking.cache import InviteUsageCache
from tracking.handlers import bootstrap_invite_cache
from tracking.services import TrackingServices
from utils.config import load_settings
from utils.database import TRACKED_JOINS, USER_INVITES, create_mongo_client, ensure_indexes
from utils.translator import t

logger = logging.getLogger(__name__)

def attach_database(bot, client, db_name):
    """Attach the motor client and collections to the bot and its services bundle"""
    db = client[db_name]
    bot.mongo_client = client
    bot.db = db
    bot.user_invites = db[USER_INVITES]      # Per-user generated invite codes
    bot.tracked_joins = db[TRACKED_JOINS]    # Attributed joins and their status
    if getattr(bot, 'tracking', None) is not None:
        bot.tracking.user_invites = bot.user_invites
        bot.tracking.tracked_joins = bot.tracked_joins


def create_bot(settings=None):
    """
    Create and configure the Discord bot instance

    This function:
    1. Sets up bot intents and configuration
    2. Establishes MongoDB connection
    3. Builds the invite cache and tracking services
    4. Defines core event handlers
    """
    settings = settings or load_settings()

    # ============================================================================
    # BOT CONFIGURATION SECTION
    # ============================================================================

    # Configure Discord bot intents (permissions)
    intents = discord.Intents.default()
    intents.members = True          # Required for member join/leave events (privileged)
    intents.invites = True          # Required for invite create/delete events
    intents.guilds = True
    intents.presences = False       # Not needed, saves resources

    bot = commands.Bot(
        command_prefix=settings.command_prefix,
        intents=intents,
        help_command=None
    )
    bot.settings = settings

    # ============================================================================
    # DATABASE CONNECTION SECTION
    # ============================================================================

    try:
        client = create_mongo_client(settings.mongo_uri)
        attach_database(bot, client, settings.database_name)
        logger.info("🔌 MongoDB connection established")
    except Exception as e:
        logger.error(f"❌ Failed to connect to MongoDB: {str(e)}")
        logger.error("Please check your MONGO_URI and MongoDB Atlas configuration")
        raise

    # ============================================================================
    # TRACKING SERVICES SECTION
    # ============================================================================

    bot.invite_cache = InviteUsageCache()
    bot.tracking = TrackingServices(
        client=bot,
        invite_cache=bot.invite_cache,
        user_invites=bot.user_invites,
        tracked_joins=bot.tracked_joins,
        settings=settings,
    )

    # Flag to prevent duplicate startup work on reconnect
    bot.startup_complete = False

    # ============================================================================
    # CORE EVENT HANDLERS SECTION
    # ============================================================================

    @bot.event
    async def setup_hook():
        """Runs once before connecting: indexes and cogs"""
        try:
            await ensure_indexes(bot.db)
        except Exception as e:
            logger.error(f"❌ Could not ensure MongoDB indexes: {str(e)}")
        await load_cogs(bot)

    @bot.event
    async def on_ready():
        """
        Called when the bot successfully connects to Discord

        This event handler:
        1. Logs successful connection
        2. Caches invites for every guild (baseline for attribution)
        """
        logger.info(f"🤖 Bot is ready! Logged in as {bot.user}")
        logger.info(f"📊 Connected to {len(bot.guilds)} guilds")

        if not bot.startup_complete:
            try:
                await bot.change_presence(
                    activity=discord.Activity(type=discord.ActivityType.listening, name="your invites")
                )
            except Exception as e:
                logger.error(f"Error setting bot activity: {str(e)}")

        # Refresh on every ready: invite counts may have moved while disconnected
        logger.info("📋 Starting invite caching for all guilds...")
        await bootstrap_invite_cache(bot.guilds, bot.tracking)
        bot.startup_complete = True

    @bot.event
    async def on_disconnect():
        """
        Called when the bot disconnects from Discord

        The MongoDB connection is kept alive during temporary disconnects.
        """
        logger.warning("🔌 Bot disconnected from Discord")

    @bot.event
    async def on_resumed():
        """
        Called when the bot resumes connection after a disconnect

        Verifies the MongoDB connection is still alive and reconnects if
        necessary.
        """
        logger.info("🔄 Bot resumed connection to Discord")

        try:
            await bot.mongo_client.admin.command('ping')
            logger.info("✅ MongoDB connection verified after resume")
        except Exception as e:
            logger.error(f"❌ MongoDB connection lost during disconnect: {str(e)}")
            try:
                bot.mongo_client.close()
                client = create_mongo_client(settings.mongo_uri)
                attach_database(bot, client, settings.database_name)
                logger.info("✅ MongoDB connection re-established")
            except Exception as reconnect_error:
                logger.error(f"❌ Failed to reconnect to MongoDB: {str(reconnect_error)}")

    # ============================================================================
    # COMMAND ERROR HANDLING SECTION
    # ============================================================================

    @bot.event
    async def on_command_error(ctx, error):
        """
        Handle command errors and reply with a short message

        Permission and context failures get a specific message; anything
        else is logged and answered with the generic error text.
        """
        if isinstance(error, commands.CommandNotFound):
            return

        if isinstance(error, commands.NoPrivateMessage):
            message = t('general.error_guild_only')
        elif isinstance(error, commands.NotOwner):
            message = t('general.error_owner_only')
        elif isinstance(error, (commands.MissingPermissions, commands.CheckFailure)):
            message = t('general.error_missing_permissions')
        else:
            logger.error(f"Command error in {ctx.command}: {error}")
            message = t('general.error_command_execution')

        try:
            await ctx.send(message, ephemeral=True)
        except discord.HTTPException as reply_error:
            logger.error(f"Failed to send error reply: {str(reply_error)}")

    return bot

# ============================================================================
# COG LOADING SECTION
# ============================================================================

async def load_cogs(bot):
    """
    Load all cogs (feature modules) into the bot

    Cogs:
    - invite_tracking: join attribution, leave tracking, validation loop
    - invites: /invite, /leaderboard and /check commands
    - sync: slash command synchronization
    """
    cogs = [
        'cogs.invite_tracking',  # Join attribution and validation task
        'cogs.invites',          # User and admin invite commands
        'cogs.sync',             # Command synchronization with Discord
    ]

    loaded_cogs = 0
    total_cogs = len(cogs)

    for cog in cogs:
        try:
            await bot.load_extension(cog)
            logger.info(f'✅ Loaded cog: {cog}')
            loaded_cogs += 1
        except Exception as e:
            logger.error(f'❌ Failed to load cog {cog}: {str(e)}')
            # Continue loading other cogs even if one fails

    logger.info(f'📦 Loaded {loaded_cogs}/{total_cogs} cogs successfully')

    if loaded_cogs < total_cogs:
        logger.warning(f'⚠️ {total_cogs - loaded_cogs} cog(s) failed to load')
