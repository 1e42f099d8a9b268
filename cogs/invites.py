#!/usr/bin/env python3
"""
Invites Cog - Personal Invite Links, Leaderboard and Admin Stats

This cog provides the user-facing commands of the invite tracker:
- /invite: your personal tracked link with validated and pending counts
- /leaderboard: top inviters by validated joins
- /check: validated and pending counts for any user (bot admin only)

A join only counts once the invited member has stayed for the validation
period; until then it shows as pending.
"""

import logging
from datetime import datetime

import discord
from discord.ext import commands

from tracking.aggregation import get_invite_counts, get_leaderboard
from tracking.errors import is_member_gone, is_unknown_invite
from utils.config import INVITE_EMBED_COLOR, LEADERBOARD_EMBED_COLOR
from utils.database import delete_user_invite, get_user_invite, save_user_invite
from utils.timezone import IST
from utils.translator import t

logger = logging.getLogger(__name__)

EMBED_DESCRIPTION_LIMIT = 4096


class InviteUnavailable(Exception):
    """Raised when no invite link can be produced; carries a translation key"""

    def __init__(self, message_key, **kwargs):
        super().__init__(message_key)
        self.message_key = message_key
        self.kwargs = kwargs


class InvitesCog(commands.Cog):
    """
    Invite command cog

    This cog provides:
    - Personal invite link generation and reuse
    - Per-user validated / pending counts
    - Server leaderboard of validated invites
    """

    def __init__(self, bot):
        """
        Initialize the invites cog

        Args:
            bot: The Discord bot instance
        """
        self.bot = bot
        self.services = bot.tracking
        logger.info("Invites cog initialized")

    # ============================================================================
    # INVITE LINK MANAGEMENT SECTION
    # ============================================================================

    async def _stored_code_is_live(self, guild, user_id, code, log_prefix) -> bool:
        """Check a stored code still exists, deleting its record if Discord says it does not"""
        try:
            await self.bot.fetch_invite(code)
            return True
        except Exception as e:
            if is_unknown_invite(e) or isinstance(e, discord.NotFound):
                logger.info(f"{log_prefix} Stored invite {code} no longer exists, removing record")
                await delete_user_invite(self.services.user_invites, str(guild.id), user_id, code)
                return False
            # Keep the stored link; a transient error should not replace it
            logger.error(f"{log_prefix} Unexpected error verifying stored invite {code}: {str(e)}")
            return True

    async def ensure_user_invite(self, guild, channel, user) -> str:
        """
        Return the user's tracked invite code, creating one if needed

        New links never expire and have unlimited uses.

        Raises:
            InviteUnavailable: If the bot cannot create an invite here
        """
        user_id = str(user.id)
        log_prefix = f"[InviteCmd][Guild:{guild.id}][User:{user_id}]"

        record = await get_user_invite(self.services.user_invites, str(guild.id), user_id)
        code = record.get("invite_code") if record else None

        if code and await self._stored_code_is_live(guild, user_id, code, log_prefix):
            return code

        logger.info(f"{log_prefix} No valid invite on record, creating one")

        me = guild.me
        if me is None or not channel.permissions_for(me).create_instant_invite:
            logger.warning(f"{log_prefix} Missing Create Invite permission in #{channel}")
            raise InviteUnavailable('invite.error_no_create_permission', channel=str(channel))

        try:
            new_invite = await channel.create_invite(
                max_age=0,
                max_uses=0,
                unique=True,
                reason=f"Generated for {user} ({user_id}) via /invite (validated tracking)",
            )
        except discord.Forbidden:
            logger.warning(f"{log_prefix} Forbidden creating invite in #{channel}")
            raise InviteUnavailable('invite.error_no_create_permission', channel=str(channel))

        await save_user_invite(self.services.user_invites, str(guild.id), user_id, new_invite.code)
        self.services.invite_cache.note_invite_created(new_invite)
        logger.info(f"{log_prefix} Created invite {new_invite.code}")
        return new_invite.code

    # ============================================================================
    # USER COMMANDS SECTION
    # ============================================================================

    @commands.hybrid_command(name="invite", description="Show your invite link with validated and pending counts")
    @commands.guild_only()
    async def invite_command(self, ctx):
        """
        Show the caller's personal invite link

        The link is created on first use and reused afterwards. Validated
        counts members who stayed past the validation period; pending counts
        those still within it.
        """
        guild = ctx.guild
        user = ctx.author
        log_prefix = f"[InviteCmd][Guild:{guild.id}][User:{user.id}]"

        await ctx.defer(ephemeral=True)

        try:
            code = await self.ensure_user_invite(guild, ctx.channel, user)
        except InviteUnavailable as e:
            await ctx.send(t(e.message_key, **e.kwargs), ephemeral=True)
            return
        except Exception as e:
            logger.error(f"{log_prefix} Failed to get or create invite: {str(e)}")
            await ctx.send(t('general.error_command_execution'), ephemeral=True)
            return

        counts = await get_invite_counts(self.services.tracked_joins, str(guild.id), str(user.id))
        days = self.services.settings.validation_period_days

        embed = discord.Embed(
            title=t('invite.embed_title', username=user.name),
            description=t('invite.embed_description', guild_name=guild.name, days=f"{days:g}"),
            color=INVITE_EMBED_COLOR,
            timestamp=datetime.now(IST)
        )
        embed.add_field(name=t('invite.link_field_name'), value=f"https://discord.gg/{code}", inline=False)
        embed.add_field(name=t('invite.validated_field_name'), value=f"`{counts.validated}`", inline=True)
        embed.add_field(name=t('invite.pending_field_name'), value=f"`{counts.pending}`", inline=True)
        embed.set_footer(
            text=t('invite.footer_db_error') if counts.failed else t('invite.footer_success', days=f"{days:g}")
        )

        await ctx.send(embed=embed, ephemeral=True)

    async def _display_name(self, guild, user_id: str) -> str:
        member = guild.get_member(int(user_id))
        if member is not None:
            return str(member)
        try:
            member = await guild.fetch_member(int(user_id))
            return str(member)
        except Exception as e:
            if is_member_gone(e):
                return t('leaderboard.left_user_format', user_id=user_id)
            logger.error(f"[LeaderboardCmd][Guild:{guild.id}] Error fetching member {user_id}: {str(e)}")
            return t('leaderboard.unknown_user_format', user_id=user_id)

    @commands.hybrid_command(name="leaderboard", description="Show the top inviters by validated invites")
    @commands.guild_only()
    async def leaderboard_command(self, ctx):
        """Show the top inviters of this server ranked by validated joins"""
        guild = ctx.guild
        log_prefix = f"[LeaderboardCmd][Guild:{guild.id}]"

        await ctx.defer()

        try:
            entries = await get_leaderboard(
                self.services.tracked_joins, str(guild.id), self.services.settings.leaderboard_limit
            )
        except Exception as e:
            logger.error(f"{log_prefix} Failed to aggregate leaderboard: {str(e)}")
            await ctx.send(t('leaderboard.error_critical'))
            return

        if not entries:
            await ctx.send(t('leaderboard.no_data'), ephemeral=True)
            return

        lines = []
        for rank, entry in enumerate(entries, start=1):
            username = await self._display_name(guild, entry.inviter_id)
            lines.append(t('leaderboard.entry_format', rank=rank, username=username, count=entry.count))

        description = "\n".join(lines)
        if len(description) > EMBED_DESCRIPTION_LIMIT:
            logger.warning(f"{log_prefix} Leaderboard description too long, truncating")
            description = description[:EMBED_DESCRIPTION_LIMIT - 6] + "\n..."

        embed = discord.Embed(
            title=t('leaderboard.embed_title', guild_name=guild.name),
            description=description,
            color=LEADERBOARD_EMBED_COLOR,
            timestamp=datetime.now(IST)
        )
        embed.set_footer(text=t('leaderboard.footer_text', count=len(entries)))
        await ctx.send(embed=embed)

    # ============================================================================
    # ADMIN COMMANDS SECTION
    # ============================================================================

    @commands.hybrid_command(name="check", description="[Admin Only] Check a user's validated and pending invites")
    @commands.guild_only()
    async def check_command(self, ctx, user: discord.User):
        """
        Show another user's invite link and counts (bot admin only)

        Args:
            user: The user whose stats to show
        """
        guild = ctx.guild
        admin_id = self.services.settings.admin_id
        log_prefix = f"[CheckCmd][Guild:{guild.id}][Admin:{ctx.author.id}]"

        if not admin_id:
            logger.warning(f"{log_prefix} Used while ADMIN_ID is not configured")
            await ctx.send(t('check.error_admin_id_not_set'), ephemeral=True)
            return
        if str(ctx.author.id) != str(admin_id):
            logger.warning(f"{log_prefix} Unauthorized use attempt")
            await ctx.send(t('check.error_permission_admin'), ephemeral=True)
            return

        await ctx.defer(ephemeral=True)

        try:
            record = await get_user_invite(self.services.user_invites, str(guild.id), str(user.id))
        except Exception as e:
            logger.error(f"{log_prefix} Failed to load invite record for {user.id}: {str(e)}")
            await ctx.send(t('general.error_command_execution'), ephemeral=True)
            return

        if not record:
            await ctx.send(t('check.error_no_invite', user_tag=str(user)), ephemeral=True)
            return

        counts = await get_invite_counts(self.services.tracked_joins, str(guild.id), str(user.id))

        embed = discord.Embed(
            title=t('check.embed_title', username=user.name),
            description=t('check.embed_description', user_tag=str(user), guild_name=guild.name),
            color=INVITE_EMBED_COLOR,
            timestamp=datetime.now(IST)
        )
        embed.add_field(name=t('check.link_field_name'), value=f"https://discord.gg/{record['invite_code']}", inline=False)
        embed.add_field(name=t('check.validated_field_name'), value=f"`{counts.validated}`", inline=True)
        embed.add_field(name=t('check.pending_field_name'), value=f"`{counts.pending}`", inline=True)
        embed.set_thumbnail(url=user.display_avatar.url)
        footer_key = 'check.footer_db_error' if counts.failed else 'check.footer_success'
        embed.set_footer(text=t(footer_key, admin_tag=str(ctx.author)))

        await ctx.send(embed=embed, ephemeral=True)
        logger.info(f"{log_prefix} Displayed stats for {user.id}")

# ============================================================================
# COG SETUP SECTION
# ============================================================================

async def setup(bot):
    """
    Setup function called by Discord.py to load this cog

    Args:
        bot: The Discord bot instance
    """
    await bot.add_cog(InvitesCog(bot))
    logger.info("Invites cog setup complete")
