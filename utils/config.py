#!/usr/bin/env python3
"""
Configuration Module

Reads the bot's runtime settings from environment variables (loaded from
.env by main.py). Every numeric value has a default; a malformed value is
logged and replaced by its default rather than stopping the bot.
"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta

logger = logging.getLogger(__name__)

# ============================================================================
# DEFAULTS SECTION
# ============================================================================

DEFAULT_VALIDATION_PERIOD_DAYS = 7
DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES = 60
DEFAULT_INITIAL_VALIDATION_DELAY_SECONDS = 300
DEFAULT_JOIN_SETTLE_SECONDS = 2.5
DEFAULT_INVITE_CACHE_GUILD_DELAY_SECONDS = 0.3
DEFAULT_LEADERBOARD_LIMIT = 15
DEFAULT_WEB_PORT = 8080

LEADERBOARD_EMBED_COLOR = 0xFFD700
INVITE_EMBED_COLOR = 0x0099FF


@dataclass
class Settings:
    """Runtime configuration for the invite tracker"""

    discord_token: str = None
    mongo_uri: str = None
    database_name: str = 'invite_tracker'
    admin_id: str = None
    admin_secret: str = None
    command_prefix: str = '!'
    validation_period_days: float = DEFAULT_VALIDATION_PERIOD_DAYS
    validation_check_interval_minutes: float = DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES
    initial_validation_delay_seconds: float = DEFAULT_INITIAL_VALIDATION_DELAY_SECONDS
    join_settle_seconds: float = DEFAULT_JOIN_SETTLE_SECONDS
    invite_cache_guild_delay_seconds: float = DEFAULT_INVITE_CACHE_GUILD_DELAY_SECONDS
    purge_on_guild_remove: bool = False
    leaderboard_limit: int = DEFAULT_LEADERBOARD_LIMIT
    locale: str = 'en'
    web_port: int = DEFAULT_WEB_PORT

    @property
    def validation_period(self) -> timedelta:
        return timedelta(days=self.validation_period_days)

    @property
    def validation_check_interval(self) -> timedelta:
        return timedelta(minutes=self.validation_check_interval_minutes)


def _number_from_env(name: str, default, cast=int):
    """Read a positive number from the environment, falling back to default"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid value for {name}: {raw!r}, using default {default}")
        return default
    if value < 0:
        logger.warning(f"⚠️ Negative value for {name}: {raw!r}, using default {default}")
        return default
    return value


def _flag_from_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def load_settings() -> Settings:
    """
    Build Settings from the current environment

    Returns:
        Settings: populated configuration
    """
    settings = Settings(
        discord_token=os.getenv('DISCORD_TOKEN'),
        mongo_uri=os.getenv('MONGO_URI'),
        database_name=os.getenv('DATABASE_NAME', 'invite_tracker'),
        admin_id=os.getenv('ADMIN_ID'),
        admin_secret=os.getenv('ADMIN_SECRET'),
        command_prefix=os.getenv('COMMAND_PREFIX', '!'),
        validation_period_days=_number_from_env(
            'VALIDATION_PERIOD_DAYS', DEFAULT_VALIDATION_PERIOD_DAYS, float),
        validation_check_interval_minutes=_number_from_env(
            'VALIDATION_CHECK_INTERVAL_MINUTES', DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES, float),
        initial_validation_delay_seconds=_number_from_env(
            'INITIAL_VALIDATION_DELAY_SECONDS', DEFAULT_INITIAL_VALIDATION_DELAY_SECONDS, float),
        join_settle_seconds=_number_from_env(
            'JOIN_SETTLE_SECONDS', DEFAULT_JOIN_SETTLE_SECONDS, float),
        invite_cache_guild_delay_seconds=_number_from_env(
            'INVITE_CACHE_GUILD_DELAY_SECONDS', DEFAULT_INVITE_CACHE_GUILD_DELAY_SECONDS, float),
        purge_on_guild_remove=_flag_from_env('PERFORM_GUILD_DELETE_CLEANUP'),
        leaderboard_limit=_number_from_env('LEADERBOARD_LIMIT', DEFAULT_LEADERBOARD_LIMIT),
        locale=(os.getenv('LOCALE_LANG') or 'en').lower(),
        web_port=_number_from_env('WEB_PORT', DEFAULT_WEB_PORT),
    )

    # A zero interval would make tasks.loop spin
    if settings.validation_check_interval_minutes == 0:
        logger.warning("⚠️ VALIDATION_CHECK_INTERVAL_MINUTES cannot be 0, using default")
        settings.validation_check_interval_minutes = DEFAULT_VALIDATION_CHECK_INTERVAL_MINUTES

    # MongoDB rejects a $limit stage below 1
    if settings.leaderboard_limit < 1:
        logger.warning("⚠️ LEADERBOARD_LIMIT must be at least 1, using default")
        settings.leaderboard_limit = DEFAULT_LEADERBOARD_LIMIT

    return settings
