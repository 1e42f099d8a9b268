"""
Invite Tracker - Aggregation Query Tests
========================================
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeCollection
from tracking.aggregation import (
    InviteCounts,
    LeaderboardEntry,
    get_invite_counts,
    get_leaderboard,
    leaderboard_pipeline,
)
from tracking.models import JoinStatus


def join(inviter_id, invitee_id, status, guild_id="1"):
    return {
        "guild_id": guild_id,
        "invitee_id": invitee_id,
        "inviter_id": inviter_id,
        "invite_code_used": "A",
        "status": status,
    }


class TestInviteCounts:
    """Tests for per-inviter totals."""

    @pytest.mark.asyncio
    async def test_counts_split_by_status(self):
        joins = FakeCollection([
            join("a", "1", JoinStatus.VALIDATED.value),
            join("a", "2", JoinStatus.VALIDATED.value),
            join("a", "3", JoinStatus.PENDING.value),
            join("a", "4", JoinStatus.LEFT_EARLY.value),
            join("b", "5", JoinStatus.VALIDATED.value),
            join("a", "6", JoinStatus.VALIDATED.value, guild_id="2"),
        ])

        counts = await get_invite_counts(joins, "1", "a")

        assert counts == InviteCounts(validated=2, pending=1, failed=False)

    @pytest.mark.asyncio
    async def test_one_failed_count_keeps_the_other(self):
        joins = MagicMock()
        joins.count_documents = AsyncMock(side_effect=[RuntimeError("db down"), 4])

        counts = await get_invite_counts(joins, "1", "a")

        assert counts.validated == 0
        assert counts.pending == 4
        assert counts.failed is True


class TestLeaderboard:
    """Tests for the validated-joins ranking."""

    def test_pipeline_ranks_validated_only(self):
        pipeline = leaderboard_pipeline("1", 15)

        assert pipeline[0] == {"$match": {"guild_id": "1", "status": "validated"}}
        assert pipeline[1] == {"$group": {"_id": "$inviter_id", "count": {"$sum": 1}}}
        assert pipeline[2] == {"$sort": {"count": -1, "_id": 1}}
        assert pipeline[3] == {"$limit": 15}

    @pytest.mark.asyncio
    async def test_rows_become_entries(self):
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=[{"_id": "a", "count": 3}, {"_id": "b", "count": 1}])
        joins = MagicMock()
        joins.aggregate = MagicMock(return_value=cursor)

        entries = await get_leaderboard(joins, "1", limit=2)

        assert entries == [LeaderboardEntry("a", 3), LeaderboardEntry("b", 1)]
        joins.aggregate.assert_called_once_with(leaderboard_pipeline("1", 2))

    @pytest.mark.asyncio
    async def test_empty_guild(self):
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=[])
        joins = MagicMock()
        joins.aggregate = MagicMock(return_value=cursor)

        assert await get_leaderboard(joins, "1") == []
