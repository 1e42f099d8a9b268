"""
Invite Tracker - Test Fixtures
==============================

Shared fixtures for all tests.
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeClient, FakeCollection, make_guild
from tracking.cache import InviteUsageCache
from tracking.services import TrackingServices
from utils.config import Settings
from utils.timezone import UTC


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    return Settings(
        validation_period_days=7,
        join_settle_seconds=0,
        invite_cache_guild_delay_seconds=0,
    )


@pytest.fixture
def guild():
    return make_guild()


@pytest.fixture
def client(guild):
    return FakeClient(guild)


@pytest.fixture
def services(client, settings):
    return TrackingServices(
        client=client,
        invite_cache=InviteUsageCache(),
        user_invites=FakeCollection(),
        tracked_joins=FakeCollection(),
        settings=settings,
    )


@pytest.fixture
def now():
    return datetime(2026, 5, 1, 12, 0, 0, tzinfo=UTC)
