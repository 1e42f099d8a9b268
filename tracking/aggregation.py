"""
Aggregation Queries

Read-side counts over tracked_joins for the leaderboard, /invite, /check
and the admin API. Only validated joins rank on the leaderboard.
"""

import logging
from dataclasses import dataclass
from typing import List

from tracking.models import JoinStatus

logger = logging.getLogger(__name__)


@dataclass
class InviteCounts:
    validated: int = 0
    pending: int = 0
    failed: bool = False  # a count query errored; numbers may be low


@dataclass
class LeaderboardEntry:
    inviter_id: str
    count: int


async def count_joins(tracked_joins_collection, guild_id: str, inviter_id: str, status: JoinStatus) -> int:
    return await tracked_joins_collection.count_documents({
        "guild_id": guild_id,
        "inviter_id": inviter_id,
        "status": JoinStatus(status).value,
    })


async def get_invite_counts(tracked_joins_collection, guild_id: str, inviter_id: str) -> InviteCounts:
    """
    Validated and pending totals for one inviter

    Each count is queried separately; one failing leaves the other intact
    and sets the failed flag.
    """
    counts = InviteCounts()
    log_prefix = f"[InviteCounts][Guild:{guild_id}][User:{inviter_id}]"

    try:
        counts.validated = await count_joins(tracked_joins_collection, guild_id, inviter_id, JoinStatus.VALIDATED)
    except Exception as e:
        logger.error(f"{log_prefix} Failed to count validated joins: {str(e)}")
        counts.failed = True

    try:
        counts.pending = await count_joins(tracked_joins_collection, guild_id, inviter_id, JoinStatus.PENDING)
    except Exception as e:
        logger.error(f"{log_prefix} Failed to count pending joins: {str(e)}")
        counts.failed = True

    return counts


def leaderboard_pipeline(guild_id: str, limit: int):
    return [
        {"$match": {"guild_id": guild_id, "status": JoinStatus.VALIDATED.value}},
        {"$group": {"_id": "$inviter_id", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
        {"$limit": limit},
    ]


async def get_leaderboard(tracked_joins_collection, guild_id: str, limit: int = 15) -> List[LeaderboardEntry]:
    """Top inviters of a guild by validated joins, highest first"""
    cursor = tracked_joins_collection.aggregate(leaderboard_pipeline(guild_id, limit))
    rows = await cursor.to_list(length=None)
    return [LeaderboardEntry(inviter_id=row["_id"], count=row["count"]) for row in rows]
