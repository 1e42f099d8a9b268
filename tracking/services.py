"""
Services bundle handed to every tracking handler

The event handlers and the validation task take this object instead of
reaching into the bot, so they can run against test doubles.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Set

from tracking.cache import InviteUsageCache
from utils.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class TrackingServices:
    """
    Attributes:
        client: The discord client (only get_guild is used)
        invite_cache: Process-wide InviteUsageCache
        user_invites: motor collection of invite records
        tracked_joins: motor collection of tracked joins
        settings: Runtime Settings
    """

    client: Any
    invite_cache: InviteUsageCache
    user_invites: Any
    tracked_joins: Any
    settings: Settings
    background_tasks: Set[asyncio.Task] = field(default_factory=set)

    def spawn(self, coro, name=None):
        """
        Run a coroutine in the background without waiting for it

        A reference is kept until the task finishes so it is not garbage
        collected mid-flight.
        """
        task = asyncio.create_task(coro, name=name)
        self.background_tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self.background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task {task.get_name()} failed: {task.exception()}")

    async def drain(self):
        """Wait for outstanding background work (used on shutdown and in tests)"""
        if self.background_tasks:
            await asyncio.gather(*list(self.background_tasks), return_exceptions=True)
