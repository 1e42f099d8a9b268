#!/usr/bin/env python3
"""
Invite Attribution Engine

Works out which bot-issued invite a new member used by comparing the use
counts Discord reports right after the join with the counts cached before
it. Only invites recorded in the user_invites collection are considered;
joins through vanity URLs or invites the bot did not hand out cannot be
attributed.

When several tracked invites went up in the same pass (two people joined
through different links before the cache was refreshed) the first one in
iteration order wins and every candidate is logged. The result is then
not guaranteed to be correct; that is a known limitation of counting
invite uses.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attribution:
    inviter_id: str
    invite_code: str


@dataclass(frozen=True)
class Candidate:
    """A tracked invite whose use count went up"""

    record_id: object
    inviter_id: str
    invite_code: str
    previous_uses: Optional[int]
    current_uses: int

    @property
    def delta(self) -> int:
        return self.current_uses - (self.previous_uses or 0)

    @property
    def from_cold_cache(self) -> bool:
        """True when the code had no cached count (weaker signal)"""
        return self.previous_uses is None


@dataclass
class AttributionResult:
    attribution: Optional[Attribution] = None
    stale_ids: List[object] = field(default_factory=list)
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


def attribute_join(live_uses, cached_uses, invite_records, log_prefix="[Attribution]") -> AttributionResult:
    """
    Infer the invite used for a join

    Each tracked invite record is classified as:
    - stale: its code is no longer live on Discord. The record id goes into
      stale_ids and the code is removed from cached_uses (which is mutated).
    - increased: the code is live and its uses went up since the cache, or
      the cache has no entry for it and it has been used at all.
    - anything else carries no signal.

    Args:
        live_uses: {invite_code: uses} fetched after the join, or None if the
            fetch failed
        cached_uses: {invite_code: uses} from before the join, or None if no
            cache could be established
        invite_records: InviteRecord documents for the guild, in the order
            they should be considered
        log_prefix: Context prefix for log lines

    Returns:
        AttributionResult: attribution is None when no tracked invite went up.
        With live_uses or cached_uses missing nothing is compared at all and
        the result is empty.
    """
    result = AttributionResult()

    if live_uses is None or cached_uses is None:
        logger.warning(f"{log_prefix} Invite state unavailable, skipping attribution")
        return result

    for record in invite_records:
        code = record["invite_code"]

        if code not in live_uses:
            logger.info(
                f"{log_prefix} Tracked invite {code} (Inviter: {record['user_id']}) "
                f"no longer exists on Discord, marking for deletion"
            )
            result.stale_ids.append(record["_id"])
            cached_uses.pop(code, None)
            continue

        current = live_uses[code]
        previous = cached_uses.get(code)

        if previous is not None and current > previous:
            logger.info(
                f"{log_prefix} Potential attribution: code {code} (Inviter: {record['user_id']}) "
                f"uses increased from {previous} to {current}"
            )
        elif previous is None and current > 0:
            logger.info(
                f"{log_prefix} Code {code} (Inviter: {record['user_id']}) missing from cache "
                f"with {current} use(s), treating as increased"
            )
        else:
            continue

        result.candidates.append(Candidate(
            record_id=record.get("_id"),
            inviter_id=record["user_id"],
            invite_code=code,
            previous_uses=previous,
            current_uses=current,
        ))

    if not result.candidates:
        return result

    chosen = result.candidates[0]
    result.attribution = Attribution(inviter_id=chosen.inviter_id, invite_code=chosen.invite_code)

    if result.ambiguous:
        listing = ", ".join(
            f"{c.invite_code} (Inviter: {c.inviter_id}, +{c.delta})" for c in result.candidates
        )
        logger.warning(
            f"{log_prefix} Ambiguous join: {len(result.candidates)} tracked invites increased "
            f"[{listing}]; attributing to first, {chosen.invite_code}"
        )

    return result
