"""
Discord API error classification

Not-found responses are normal here: a deleted invite or a member who has
already left is a signal the tracker acts on, not a failure. These helpers
tell those apart from permission problems and transient errors.
"""

from enum import IntEnum

import discord


class DiscordErrorCode(IntEnum):
    UNKNOWN_INVITE = 10006
    UNKNOWN_MEMBER = 10007
    UNKNOWN_USER = 10013
    MISSING_PERMISSIONS = 50013


def _error_code(error) -> int:
    if isinstance(error, discord.HTTPException):
        return getattr(error, 'code', 0)
    return 0


def is_member_gone(error) -> bool:
    """True when Discord confirms the member (or user) no longer exists in the guild"""
    return _error_code(error) in (DiscordErrorCode.UNKNOWN_MEMBER, DiscordErrorCode.UNKNOWN_USER)


def is_unknown_invite(error) -> bool:
    """True when Discord reports the invite code is invalid or deleted"""
    return _error_code(error) == DiscordErrorCode.UNKNOWN_INVITE


def is_permission_error(error) -> bool:
    return isinstance(error, discord.Forbidden) or _error_code(error) == DiscordErrorCode.MISSING_PERMISSIONS
