#!/usr/bin/env python3
"""
Tracking Event Handlers

Coroutines that carry out the tracker's reaction to each gateway event.
The invite tracking cog forwards discord.py events here together with
the TrackingServices bundle; nothing in this module touches the bot
object directly.

Every handler catches its own errors and logs them, so a failure affects
only the event being processed.
"""

import asyncio
import logging

from tracking.attribution import attribute_join
from tracking.errors import is_permission_error
from tracking.lifecycle import record_join, record_leave
from utils.database import list_guild_invites, purge_guild

logger = logging.getLogger(__name__)

# ============================================================================
# MEMBER JOIN SECTION
# ============================================================================

async def handle_member_join(member, services):
    """
    Attribute a new member to a tracked invite and record the join

    Steps:
    1. Check the bot may list invites (Manage Guild)
    2. Wait for Discord's use counts to settle
    3. Fetch live invites and make sure a cached baseline exists
    4. Compare the two over the guild's tracked invite records
    5. Queue deletion of records whose invite vanished
    6. Upsert a pending tracked join for the attributed inviter
    7. Store the live counts as the new baseline

    Returns:
        AttributionResult, or None if no comparison could be made
    """
    guild = member.guild
    log_prefix = f"[MemberJoin][Guild:{guild.id}][User:{member.id}]"
    logger.info(f"{log_prefix} {member} joined")

    cache = services.invite_cache

    if not cache.can_manage_invites(guild):
        logger.warning(f"{log_prefix} Cannot determine inviter: missing 'Manage Guild' permission")
        cache.invalidate(guild.id)
        return None

    await asyncio.sleep(services.settings.join_settle_seconds)

    try:
        live_invites = await guild.invites()
    except Exception as e:
        if is_permission_error(e):
            logger.warning(f"{log_prefix} Permission lost while fetching invites: {str(e)}")
            cache.invalidate(guild.id)
        else:
            logger.error(f"{log_prefix} Error fetching invites on join: {str(e)}")
        return None

    cached_uses = await cache.ensure(guild)
    if cached_uses is None:
        logger.error(f"{log_prefix} Failed to establish invite cache, cannot attribute join")
        return None

    try:
        invite_records = await list_guild_invites(services.user_invites, str(guild.id))
    except Exception as e:
        logger.error(f"{log_prefix} Database error fetching invite records: {str(e)}")
        cache.store(guild.id, live_invites)
        return None

    live_uses = {invite.code: invite.uses or 0 for invite in live_invites}
    result = attribute_join(live_uses, cached_uses, invite_records, log_prefix=log_prefix)

    if result.stale_ids:
        services.spawn(
            delete_stale_invites(services.user_invites, str(guild.id), list(result.stale_ids)),
            name=f"stale-invites-{guild.id}",
        )

    attribution = result.attribution
    if attribution:
        try:
            await record_join(
                services.tracked_joins,
                str(guild.id),
                str(member.id),
                attribution.inviter_id,
                attribution.invite_code,
            )
        except Exception as e:
            logger.error(f"{log_prefix} Failed to record tracked join: {str(e)}")
    elif invite_records:
        logger.info(f"{log_prefix} No tracked invite increased, join not attributed")

    cache.store(guild.id, live_invites)
    return result


async def delete_stale_invites(user_invites_collection, guild_id: str, record_ids):
    """Delete invite records whose code no longer exists on Discord"""
    try:
        result = await user_invites_collection.delete_many({"_id": {"$in": list(record_ids)}})
        logger.info(f"[StaleInvites][Guild:{guild_id}] Deleted {result.deleted_count} stale invite record(s)")
        return result.deleted_count
    except Exception as e:
        logger.error(f"[StaleInvites][Guild:{guild_id}] Failed to delete stale invite records: {str(e)}")
        return 0

# ============================================================================
# MEMBER LEAVE SECTION
# ============================================================================

async def handle_member_leave(guild_id, user_id, services) -> int:
    """
    Mark a departing member's pending joins as left_early

    Works from bare IDs so that leaves of members missing from the cache
    (raw gateway payloads) are handled the same way.

    Returns:
        int: Number of records modified
    """
    if not guild_id or not user_id:
        logger.error(f"[MemberLeave] Missing guild or user ID (guild={guild_id}, user={user_id}), ignoring")
        return 0

    try:
        return await record_leave(services.tracked_joins, str(guild_id), str(user_id))
    except Exception as e:
        logger.error(f"[MemberLeave][Guild:{guild_id}][User:{user_id}] Error updating join status on leave: {str(e)}")
        return 0

# ============================================================================
# GUILD MEMBERSHIP SECTION
# ============================================================================

async def bootstrap_invite_cache(guilds, services):
    """
    Cache invites for every guild at startup

    Guilds are processed one by one with a short pause to stay clear of
    rate limits.

    Returns:
        tuple: (cached, failed) guild counts
    """
    cached = 0
    failed = 0
    delay = services.settings.invite_cache_guild_delay_seconds

    for guild in list(guilds):
        if await services.invite_cache.refresh(guild):
            cached += 1
        else:
            failed += 1
        if delay:
            await asyncio.sleep(delay)

    logger.info(f"📋 Initial invite caching complete. Success: {cached}, Failed/No Perms: {failed}")
    return cached, failed


async def handle_guild_join(guild, services) -> bool:
    logger.info(f"➕ Joined new guild: {guild.name} (ID: {guild.id})")
    return await services.invite_cache.refresh(guild)


async def handle_guild_remove(guild_id, services):
    """
    Forget a guild the bot left

    The cache entry is always dropped; stored records are deleted only
    when purge_on_guild_remove is enabled.
    """
    services.invite_cache.invalidate(guild_id)
    logger.info(f"➖ Left guild {guild_id}, cleared invite cache")

    if not services.settings.purge_on_guild_remove:
        logger.info(f"[GuildCleanup][Guild:{guild_id}] Database cleanup disabled")
        return None

    logger.info(f"[GuildCleanup][Guild:{guild_id}] Initiating database cleanup")
    return await purge_guild(services.user_invites, services.tracked_joins, str(guild_id))
