#!/usr/bin/env python3
"""
Web Server Module - Flask Admin API for the Invite Tracker

This module exposes a small JSON API next to the Discord bot:
- /healthz: public health endpoint for uptime monitors
- /api/guilds/<guild_id>/leaderboard: top inviters by validated joins
- /api/guilds/<guild_id>/users/<user_id>/stats: one user's link and counts
- /api/validation/run: trigger one validation pass immediately

Everything except /healthz requires the X-Admin-Secret header to match
ADMIN_SECRET. Routes run in the web server thread and hand their database
work to the bot's event loop.
"""

import asyncio
import concurrent.futures
import logging
from dataclasses import asdict

from flask import Flask, jsonify, request

from tracking.aggregation import get_invite_counts, get_leaderboard
from tracking.validation import validate_pending_joins
from utils.database import get_user_invite
from utils.timezone import format_time

logger = logging.getLogger(__name__)

ROUTE_TIMEOUT_SECONDS = 30


def run_on_loop(loop, coro, timeout=ROUTE_TIMEOUT_SECONDS):
    """
    Run a coroutine on the bot's event loop from the web server thread

    On timeout the coroutine is cancelled so it does not outlive the request.
    """
    if loop is None or loop.is_closed() or not loop.is_running():
        coro.close()
        raise RuntimeError("bot event loop is not running")
    future = asyncio.run_coroutine_threadsafe(coro, loop)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        future.cancel()
        raise


def create_app(bot):
    """
    Create and configure the Flask web application

    Args:
        bot: The Discord bot instance to integrate with

    Returns:
        Flask: Configured Flask application
    """

    # ============================================================================
    # FLASK APP CONFIGURATION SECTION
    # ============================================================================

    app = Flask(__name__)
    app.bot = bot
    admin_secret = bot.settings.admin_secret

    def run_async(coro):
        """Run async function in bot's event loop"""
        return run_on_loop(getattr(bot, 'loop', None), coro)

    # ============================================================================
    # ROUTE DEFINITIONS SECTION
    # ============================================================================

    @app.before_request
    def require_secret():
        """Protect the API with the ADMIN_SECRET header"""
        if request.path == '/healthz':
            return None
        if not admin_secret:
            return jsonify({'error': 'admin API disabled'}), 403
        if request.headers.get('X-Admin-Secret') != admin_secret:
            return jsonify({'error': 'unauthorized'}), 401
        return None

    @app.route('/healthz')
    def healthz():
        """Public health endpoint for uptime pings/monitors."""
        try:
            return jsonify({
                'status': 'ok',
                'bot': 'online' if bot.is_ready() else 'offline',
                'guilds': len(bot.guilds),
                'cached_guilds': len(bot.invite_cache),
            })
        except Exception:
            return jsonify({'status': 'error'}), 500

    @app.route('/api/guilds/<guild_id>/leaderboard')
    def leaderboard(guild_id):
        try:
            limit = int(request.args.get('limit', bot.settings.leaderboard_limit))
        except ValueError:
            return jsonify({'error': 'limit must be an integer'}), 400
        if limit < 1:
            return jsonify({'error': 'limit must be at least 1'}), 400

        try:
            entries = run_async(get_leaderboard(bot.tracked_joins, guild_id, limit))
            return jsonify({
                'guild_id': guild_id,
                'entries': [asdict(entry) for entry in entries],
            })
        except Exception as e:
            logger.error(f"Error in leaderboard route: {str(e)}")
            return jsonify({'error': 'unexpected error'}), 500

    @app.route('/api/guilds/<guild_id>/users/<user_id>/stats')
    def user_stats(guild_id, user_id):
        try:
            record = run_async(get_user_invite(bot.user_invites, guild_id, user_id))
            counts = run_async(get_invite_counts(bot.tracked_joins, guild_id, user_id))
            return jsonify({
                'guild_id': guild_id,
                'user_id': user_id,
                'invite_code': record.get('invite_code') if record else None,
                'link_created_at': format_time(record['created_at']) if record and record.get('created_at') else None,
                'validated': counts.validated,
                'pending': counts.pending,
                'partial': counts.failed,
            })
        except Exception as e:
            logger.error(f"Error in user stats route: {str(e)}")
            return jsonify({'error': 'unexpected error'}), 500

    @app.route('/api/validation/run', methods=['POST'])
    def run_validation():
        try:
            report = run_async(validate_pending_joins(bot.tracking))
            return jsonify(dict(asdict(report), mismatch=report.mismatch))
        except Exception as e:
            logger.error(f"Error in validation route: {str(e)}")
            return jsonify({'error': 'unexpected error'}), 500

    return app

def run_web_server(app, port=8080):
    """Run the Flask server (blocking; started in a daemon thread)"""
    app.run(host='0.0.0.0', port=port, debug=False, use_reloader=False)
