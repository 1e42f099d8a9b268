#!/usr/bin/env python3
"""
Database Utility Module

This module provides database utility functions for the invite tracker.
It owns the MongoDB connection settings, the index definitions for the
two collections, and the helpers for the per-user invite records.

Collections:
    user_invites:   one document per (user_id, guild_id) holding the
                    invite code the bot generated for that user
    tracked_joins:  one document per attributed join and its
                    pending / validated / left_early status

The helpers take the collection as their first argument so they can be
used from cogs, the web server, and tests alike.
"""

import logging

import motor.motor_asyncio
from pymongo import ASCENDING

from utils.timezone import utcnow

logger = logging.getLogger(__name__)

USER_INVITES = 'user_invites'
TRACKED_JOINS = 'tracked_joins'

# ============================================================================
# CONNECTION SECTION
# ============================================================================

def create_mongo_client(mongo_uri: str):
    """
    Create the motor client with settings tuned for MongoDB Atlas

    tz_aware=True makes every datetime read back carry UTC, matching the
    aware timestamps the tracker writes.
    """
    return motor.motor_asyncio.AsyncIOMotorClient(
        mongo_uri,
        serverSelectionTimeoutMS=5000,    # 5 second timeout for server selection
        connectTimeoutMS=10000,           # 10 second timeout for initial connection
        socketTimeoutMS=10000,            # 10 second timeout for operations
        maxPoolSize=10,                   # Maximum 10 connections in pool
        retryWrites=True,                 # Automatically retry failed writes
        retryReads=True,                  # Automatically retry failed reads
        w='majority',                     # Wait for majority of replicas
        tz_aware=True,
    )


async def ensure_indexes(db):
    """
    Create the indexes both collections rely on

    - user_invites (user_id, guild_id) unique: one link per user per guild
    - tracked_joins (status, join_timestamp): validation task range scan
    - tracked_joins (guild_id, inviter_id, status): per-inviter counts
    - tracked_joins (guild_id, invitee_id): join upsert / leave update
    """
    await db[USER_INVITES].create_index(
        [("user_id", ASCENDING), ("guild_id", ASCENDING)],
        unique=True,
        name="user_guild_unique",
    )
    await db[USER_INVITES].create_index([("guild_id", ASCENDING)], name="guild")
    await db[TRACKED_JOINS].create_index(
        [("status", ASCENDING), ("join_timestamp", ASCENDING)],
        name="status_join_timestamp",
    )
    await db[TRACKED_JOINS].create_index(
        [("guild_id", ASCENDING), ("inviter_id", ASCENDING), ("status", ASCENDING)],
        name="guild_inviter_status",
    )
    await db[TRACKED_JOINS].create_index(
        [("guild_id", ASCENDING), ("invitee_id", ASCENDING)],
        name="guild_invitee",
    )
    logger.info("✅ MongoDB indexes ensured")

# ============================================================================
# USER INVITE RECORD SECTION
# ============================================================================

async def get_user_invite(user_invites_collection, guild_id: str, user_id: str):
    """
    Retrieve the invite record a user owns in a guild

    Args:
        user_invites_collection: MongoDB collection of invite records
        guild_id: The Discord guild ID as a string
        user_id: The Discord user ID as a string

    Returns:
        dict: The invite record, or None if the user has no link yet
    """
    return await user_invites_collection.find_one({"guild_id": guild_id, "user_id": user_id})


async def list_guild_invites(user_invites_collection, guild_id: str):
    """All invite records for a guild, in insertion order"""
    cursor = user_invites_collection.find({"guild_id": guild_id})
    return await cursor.to_list(length=None)


async def save_user_invite(user_invites_collection, guild_id: str, user_id: str, invite_code: str):
    """
    Store (or replace) the invite code owned by a user in a guild

    Upserting on the (user_id, guild_id) pair keeps the record unique
    even if two /invite commands race each other.
    """
    now = utcnow()
    result = await user_invites_collection.update_one(
        {"user_id": user_id, "guild_id": guild_id},
        {
            "$set": {"invite_code": invite_code, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )
    return result.acknowledged


async def delete_user_invite(user_invites_collection, guild_id: str, user_id: str, invite_code: str = None):
    """Delete a user's invite record; with invite_code, only if it still holds that code"""
    query = {"guild_id": guild_id, "user_id": user_id}
    if invite_code is not None:
        query["invite_code"] = invite_code
    result = await user_invites_collection.delete_one(query)
    return result.deleted_count


async def purge_guild(user_invites_collection, tracked_joins_collection, guild_id: str):
    """
    Delete every record the bot holds for a guild

    Each collection is cleaned independently so a failure on one does not
    leave the other untouched.

    Returns:
        tuple: (deleted tracked joins, deleted invite records); -1 marks a failure
    """
    deleted_joins = -1
    deleted_invites = -1

    try:
        result = await tracked_joins_collection.delete_many({"guild_id": guild_id})
        deleted_joins = result.deleted_count
        logger.info(f"[GuildCleanup][Guild:{guild_id}] Deleted {deleted_joins} tracked join(s)")
    except Exception as e:
        logger.error(f"[GuildCleanup][Guild:{guild_id}] Failed to delete tracked joins: {str(e)}")

    try:
        result = await user_invites_collection.delete_many({"guild_id": guild_id})
        deleted_invites = result.deleted_count
        logger.info(f"[GuildCleanup][Guild:{guild_id}] Deleted {deleted_invites} invite record(s)")
    except Exception as e:
        logger.error(f"[GuildCleanup][Guild:{guild_id}] Failed to delete invite records: {str(e)}")

    return deleted_joins, deleted_invites
