#!/usr/bin/env python3
"""
Join Record Lifecycle

Writes for the tracked_joins collection driven by gateway events. Both
operations are safe to repeat, since Discord may deliver the same join or
leave more than once.
"""

import logging

from tracking.models import JoinStatus
from utils.timezone import utcnow

logger = logging.getLogger(__name__)


async def record_join(tracked_joins_collection, guild_id: str, invitee_id: str,
                      inviter_id: str, invite_code: str, now=None):
    """
    Upsert the tracked join for a member as pending

    The document is keyed on (guild_id, invitee_id). A member who leaves
    and rejoins gets the same document back in pending state with a fresh
    join timestamp, attributed to whichever invite they used this time.

    Returns:
        The pymongo UpdateResult
    """
    now = now or utcnow()
    result = await tracked_joins_collection.update_one(
        {"guild_id": guild_id, "invitee_id": invitee_id},
        {
            "$set": {
                "guild_id": guild_id,
                "invitee_id": invitee_id,
                "inviter_id": inviter_id,
                "invite_code_used": invite_code,
                "join_timestamp": now,
                "status": JoinStatus.PENDING.value,
                "updated_at": now,
            },
            "$unset": {"validation_timestamp": "", "leave_timestamp": ""},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )
    logger.info(
        f"[JoinRecord][Guild:{guild_id}][User:{invitee_id}] Tracked join via {invite_code} "
        f"(Inviter: {inviter_id}) as pending"
    )
    return result


async def record_leave(tracked_joins_collection, guild_id: str, invitee_id: str, now=None) -> int:
    """
    Mark every pending join of a member as left_early

    Validated and already left_early records are untouched.

    Returns:
        int: Number of documents modified (0 when nothing was pending)
    """
    now = now or utcnow()
    result = await tracked_joins_collection.update_many(
        {"guild_id": guild_id, "invitee_id": invitee_id, "status": JoinStatus.PENDING.value},
        {"$set": {
            "status": JoinStatus.LEFT_EARLY.value,
            "leave_timestamp": now,
            "updated_at": now,
        }},
    )

    log_prefix = f"[JoinRecord][Guild:{guild_id}][User:{invitee_id}]"
    if result.modified_count > 0:
        logger.info(f"{log_prefix} Marked {result.modified_count} pending join(s) as left_early")
    else:
        logger.debug(f"{log_prefix} No pending join to mark as left_early")
    return result.modified_count
