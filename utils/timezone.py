#!/usr/bin/env python3
"""
Timezone Utility Module

This module provides timezone functionality for the invite tracker.
Every timestamp written to the database is an aware UTC datetime so that
validation cutoffs compare correctly; IST (Indian Standard Time) is kept
as the display timezone for embeds and log output.

The module uses pytz for timezone handling.
"""

from datetime import datetime

import pytz

# ============================================================================
# TIMEZONE DEFINITIONS SECTION
# ============================================================================

UTC = pytz.utc

# Display timezone for embeds (UTC+5:30, no daylight saving)
IST = pytz.timezone('Asia/Kolkata')


def utcnow():
    """Get current time as an aware UTC datetime"""
    return datetime.now(UTC)


def ensure_aware(dt):
    """
    Attach UTC to a naive datetime

    MongoDB returns naive datetimes unless the client is created with
    tz_aware=True, so anything read back is normalised here before it is
    compared with utcnow().
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return UTC.localize(dt)
    return dt


def format_time(dt):
    """Format datetime for display"""
    return ensure_aware(dt).astimezone(IST).strftime("%Y-%m-%d %H:%M:%S IST")
