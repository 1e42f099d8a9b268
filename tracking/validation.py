#!/usr/bin/env python3
"""
Periodic Validation Task

A tracked join starts out pending. Once it is older than the validation
period this task checks whether the member is still in the guild:

    pending --[member present]--> validated
    pending --[member absent]---> left_early

Both outcomes are terminal. Every update is filtered on status still being
pending, so a leave event processed between the query and the write wins
and the validation write simply matches nothing.

Candidates in guilds the bot is no longer in, or whose presence check fails
for any reason other than "unknown member", stay pending and are retried on
the next run.
"""

import logging
from dataclasses import dataclass

from pymongo import UpdateOne
from pymongo.errors import BulkWriteError

from tracking.errors import is_member_gone
from tracking.models import JoinStatus
from utils.timezone import utcnow

logger = logging.getLogger(__name__)

LOG_PREFIX = "[ValidationTask]"


@dataclass
class ValidationReport:
    candidates: int = 0
    validated: int = 0
    left_early: int = 0
    skipped: int = 0
    matched: int = 0
    modified: int = 0

    @property
    def operations(self) -> int:
        return self.validated + self.left_early

    @property
    def mismatch(self) -> bool:
        """Fewer documents changed than transitions queued (a concurrent leave won)"""
        return self.modified != self.operations


async def check_member_presence(guild, user_id: str):
    """
    Check whether a user is still a member of a guild

    Returns:
        True if present, False if Discord confirms the member is gone,
        None if presence could not be determined (skip this run)
    """
    if guild.get_member(int(user_id)) is not None:
        return True

    try:
        await guild.fetch_member(int(user_id))
        return True
    except Exception as e:
        if is_member_gone(e):
            return False
        logger.error(
            f"{LOG_PREFIX} Unexpected error fetching member {user_id} in guild {guild.id}: {str(e)}"
        )
        return None


async def validate_pending_joins(services, now=None) -> ValidationReport:
    """
    Run one validation pass over every pending join past the cutoff

    The cutoff is inclusive: a join exactly validation_period old is a
    candidate.

    Args:
        services: TrackingServices bundle
        now: Override for the current time (aware UTC datetime)

    Returns:
        ValidationReport: Counts for this run
    """
    now = now or utcnow()
    cutoff = now - services.settings.validation_period
    report = ValidationReport()

    logger.info(f"{LOG_PREFIX} Running validation check (cutoff {cutoff.isoformat()})")

    try:
        cursor = services.tracked_joins.find({
            "status": JoinStatus.PENDING.value,
            "join_timestamp": {"$lte": cutoff},
        })
        candidates = await cursor.to_list(length=None)
    except Exception as e:
        logger.error(f"{LOG_PREFIX} Failed to query pending joins: {str(e)}")
        return report

    report.candidates = len(candidates)
    if not candidates:
        logger.info(f"{LOG_PREFIX} No pending joins past the validation period")
        return report

    logger.info(f"{LOG_PREFIX} Found {len(candidates)} candidate join(s) for validation")

    operations = []
    presence_cache = {}  # (guild_id, invitee_id) -> True / False / None for this run

    for join in candidates:
        try:
            guild_id = join["guild_id"]
            invitee_id = join["invitee_id"]

            guild = services.client.get_guild(int(guild_id))
            if guild is None:
                logger.warning(
                    f"{LOG_PREFIX} Guild {guild_id} not available for user {invitee_id}, skipping"
                )
                report.skipped += 1
                continue

            key = (guild_id, invitee_id)
            if key not in presence_cache:
                presence_cache[key] = await check_member_presence(guild, invitee_id)
            present = presence_cache[key]

            if present is None:
                report.skipped += 1
                continue

            if present:
                operations.append(UpdateOne(
                    {"_id": join["_id"], "status": JoinStatus.PENDING.value},
                    {"$set": {
                        "status": JoinStatus.VALIDATED.value,
                        "validation_timestamp": now,
                        "updated_at": now,
                    }},
                ))
                report.validated += 1
            else:
                logger.info(
                    f"{LOG_PREFIX} User {invitee_id} (Join ID: {join['_id']}) no longer in guild "
                    f"{guild_id}, marking left_early"
                )
                operations.append(UpdateOne(
                    {"_id": join["_id"], "status": JoinStatus.PENDING.value},
                    {"$set": {
                        "status": JoinStatus.LEFT_EARLY.value,
                        "leave_timestamp": now,
                        "updated_at": now,
                    }},
                ))
                report.left_early += 1
        except Exception as e:
            logger.error(f"{LOG_PREFIX} Error checking join {join.get('_id')}: {str(e)}")
            report.skipped += 1

    if not operations:
        logger.info(
            f"{LOG_PREFIX} No updates to perform for {report.candidates} candidate(s) "
            f"({report.skipped} skipped)"
        )
        return report

    logger.info(
        f"{LOG_PREFIX} Applying {report.validated} validation(s) and "
        f"{report.left_early} retroactive leave(s)"
    )

    try:
        result = await services.tracked_joins.bulk_write(operations, ordered=False)
        report.matched = result.matched_count
        report.modified = result.modified_count
    except BulkWriteError as e:
        details = e.details or {}
        report.matched = details.get("nMatched", 0)
        report.modified = details.get("nModified", 0)
        logger.error(
            f"{LOG_PREFIX} Bulk update partially failed: "
            f"{len(details.get('writeErrors', []))} write error(s)"
        )
    except Exception as e:
        logger.error(f"{LOG_PREFIX} Error executing bulk update: {str(e)}")
        return report

    logger.info(
        f"{LOG_PREFIX} Done: {report.candidates} candidate(s), {report.validated} validated, "
        f"{report.left_early} left_early, {report.skipped} skipped, "
        f"{report.modified} modified (matched {report.matched})"
    )
    if report.mismatch:
        logger.warning(
            f"{LOG_PREFIX} Expected {report.operations} modification(s), got {report.modified}; "
            f"some joins changed status concurrently"
        )

    return report
