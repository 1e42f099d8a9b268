"""
Invite Tracker - Admin API Tests
================================

Exercises the Flask app with its test client; the bot is a mock without a
running event loop, so only routes that fail before touching it are
checked end to end.
"""

import asyncio
import concurrent.futures
import threading
from unittest.mock import MagicMock

import pytest

from tracking.cache import InviteUsageCache
from utils.config import Settings
from web_server import create_app, run_on_loop


def make_bot(admin_secret='s3cret'):
    bot = MagicMock()
    bot.settings = Settings(admin_secret=admin_secret)
    bot.is_ready.return_value = True
    bot.guilds = [object(), object()]
    bot.invite_cache = InviteUsageCache()
    bot.loop = None
    return bot


@pytest.fixture
def http():
    return create_app(make_bot()).test_client()


class TestAuth:
    """Tests for the admin secret gate."""

    def test_healthz_is_public(self, http):
        response = http.get('/healthz')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'bot': 'online', 'guilds': 2, 'cached_guilds': 0}

    def test_missing_secret_rejected(self, http):
        assert http.get('/api/guilds/1/leaderboard').status_code == 401

    def test_wrong_secret_rejected(self, http):
        response = http.get('/api/guilds/1/leaderboard', headers={'X-Admin-Secret': 'nope'})
        assert response.status_code == 401

    def test_api_disabled_without_configured_secret(self):
        http = create_app(make_bot(admin_secret=None)).test_client()

        response = http.get('/api/guilds/1/leaderboard', headers={'X-Admin-Secret': ''})
        assert response.status_code == 403


class TestRoutes:

    def test_bad_limit(self, http):
        response = http.get('/api/guilds/1/leaderboard?limit=ten', headers={'X-Admin-Secret': 's3cret'})
        assert response.status_code == 400

    def test_loop_not_running_is_server_error(self, http):
        response = http.post('/api/validation/run', headers={'X-Admin-Secret': 's3cret'})

        assert response.status_code == 500
        assert response.get_json() == {'error': 'unexpected error'}

    @pytest.mark.parametrize('limit', ['0', '-3'])
    def test_limit_below_one(self, http, limit):
        response = http.get(f'/api/guilds/1/leaderboard?limit={limit}', headers={'X-Admin-Secret': 's3cret'})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'limit must be at least 1'}


class TestRunOnLoop:
    """Tests for handing route work to the bot's event loop."""

    @pytest.fixture
    def loop(self):
        loop = asyncio.new_event_loop()
        started = threading.Event()
        loop.call_soon(started.set)
        thread = threading.Thread(target=loop.run_forever, daemon=True)
        thread.start()
        started.wait(2)
        yield loop
        loop.call_soon_threadsafe(loop.stop)
        thread.join(2)
        loop.close()

    def test_result_returned(self, loop):
        async def answer():
            return 42

        assert run_on_loop(loop, answer()) == 42

    def test_timeout_cancels_coroutine(self, loop):
        cancelled = threading.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(concurrent.futures.TimeoutError):
            run_on_loop(loop, slow(), timeout=0.05)
        assert cancelled.wait(2)
