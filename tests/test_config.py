"""
Invite Tracker - Configuration Tests
====================================
"""

from datetime import timedelta

from utils.config import (
    DEFAULT_JOIN_SETTLE_SECONDS,
    DEFAULT_LEADERBOARD_LIMIT,
    DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES,
    Settings,
    load_settings,
)

ENV_VARS = [
    'DISCORD_TOKEN', 'MONGO_URI', 'DATABASE_NAME', 'ADMIN_ID', 'ADMIN_SECRET',
    'COMMAND_PREFIX', 'VALIDATION_PERIOD_DAYS', 'VALIDATION_CHECK_INTERVAL_MINUTES',
    'INITIAL_VALIDATION_DELAY_SECONDS', 'JOIN_SETTLE_SECONDS',
    'INVITE_CACHE_GUILD_DELAY_SECONDS', 'PERFORM_GUILD_DELETE_CLEANUP',
    'LEADERBOARD_LIMIT', 'LOCALE_LANG', 'WEB_PORT',
]


def clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """Tests for reading settings from the environment."""

    def test_defaults(self, monkeypatch):
        clear_env(monkeypatch)

        settings = load_settings()

        assert settings.discord_token is None
        assert settings.database_name == 'invite_tracker'
        assert settings.validation_period == timedelta(days=7)
        assert settings.validation_check_interval == timedelta(minutes=60)
        assert settings.purge_on_guild_remove is False
        assert settings.locale == 'en'

    def test_values_from_env(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv('DISCORD_TOKEN', 'token')
        monkeypatch.setenv('VALIDATION_PERIOD_DAYS', '0.5')
        monkeypatch.setenv('LEADERBOARD_LIMIT', '10')
        monkeypatch.setenv('PERFORM_GUILD_DELETE_CLEANUP', 'true')
        monkeypatch.setenv('LOCALE_LANG', 'CUSTOM')

        settings = load_settings()

        assert settings.discord_token == 'token'
        assert settings.validation_period == timedelta(hours=12)
        assert settings.leaderboard_limit == 10
        assert settings.purge_on_guild_remove is True
        assert settings.locale == 'custom'

    def test_malformed_number_uses_default(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv('JOIN_SETTLE_SECONDS', 'soon')

        assert load_settings().join_settle_seconds == DEFAULT_JOIN_SETTLE_SECONDS

    def test_negative_number_uses_default(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv('VALIDATION_CHECK_INTERVAL_MINUTES', '-5')

        settings = load_settings()
        assert settings.validation_check_interval_minutes == DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES

    def test_zero_interval_replaced(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv('VALIDATION_CHECK_INTERVAL_MINUTES', '0')

        settings = load_settings()
        assert settings.validation_check_interval_minutes == DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES


def test_settings_periods_follow_fields():
    settings = Settings(validation_period_days=1, validation_check_interval_minutes=5)

    assert settings.validation_period == timedelta(days=1)
    assert settings.validation_check_interval == timedelta(minutes=5)


def test_leaderboard_limit_below_one_uses_default(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv('LEADERBOARD_LIMIT', '0')

    assert load_settings().leaderboard_limit == DEFAULT_LEADERBOARD_LIMIT
