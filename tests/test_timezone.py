"""
Invite Tracker - Timezone Helper Tests
======================================
"""

from datetime import datetime

from utils.timezone import UTC, ensure_aware, format_time, utcnow


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None
    assert utcnow().utcoffset().total_seconds() == 0


def test_naive_datetime_treated_as_utc():
    naive = datetime(2026, 5, 1, 12, 0, 0)
    assert ensure_aware(naive) == datetime(2026, 5, 1, 12, 0, 0, tzinfo=UTC)


def test_aware_datetime_unchanged():
    aware = datetime(2026, 5, 1, 12, 0, 0, tzinfo=UTC)
    assert ensure_aware(aware) is aware
    assert ensure_aware(None) is None


def test_format_time_displays_ist():
    assert format_time(datetime(2026, 5, 1, 12, 0, 0)) == "2026-05-01 17:30:00 IST"
