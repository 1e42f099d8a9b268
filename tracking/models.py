"""Document shapes stored in MongoDB and the tracked-join status values."""

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


class JoinStatus(str, Enum):
    """Lifecycle of a tracked join; PENDING is the only non-terminal state"""

    PENDING = 'pending'
    VALIDATED = 'validated'
    LEFT_EARLY = 'left_early'

    def __str__(self):
        return self.value


class InviteRecord(TypedDict):
    """An invite link the bot generated for one user in one guild"""
    user_id: str
    guild_id: str
    invite_code: str
    created_at: datetime
    updated_at: datetime


class TrackedJoin(TypedDict):
    """One attributed join and where it is in the validation lifecycle"""
    guild_id: str
    invitee_id: str
    inviter_id: str
    invite_code_used: str
    join_timestamp: datetime
    status: str
    validation_timestamp: Optional[datetime]
    leave_timestamp: Optional[datetime]
    created_at: datetime
    updated_at: datetime
