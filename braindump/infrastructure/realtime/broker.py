"""
Realtime Broker

In-process fan-out of dump change events. Each open SSE stream owns one
queue; an event published for a user is copied into every queue that
user has open and never into anyone else's.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Set
from uuid import UUID

from braindump.domain.dumps import DumpChangeEvent


logger = logging.getLogger(__name__)


class RealtimeBroker:
    """
    Per-user subscriber registry.

    Args:
        max_queue_size: Events buffered per subscriber before new ones
            are dropped for that subscriber
    """

    def __init__(self, max_queue_size: int = 100):
        self._max_queue_size = max_queue_size
        self._subscribers: Dict[UUID, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, user_id: UUID) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers[user_id].add(queue)
        logger.debug(f"Realtime subscriber added for user {user_id}")
        return queue

    def unsubscribe(self, user_id: UUID, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]
        logger.debug(f"Realtime subscriber removed for user {user_id}")

    @asynccontextmanager
    async def subscription(self, user_id: UUID) -> AsyncIterator[asyncio.Queue]:
        """Subscribe for the duration of a block; always unsubscribes."""
        queue = self.subscribe(user_id)
        try:
            yield queue
        finally:
            self.unsubscribe(user_id, queue)

    def publish(self, user_id: UUID, event: DumpChangeEvent) -> int:
        """
        Deliver an event to every open stream of ``user_id``.

        Returns:
            Number of subscribers that received it
        """
        delivered = 0
        for queue in list(self._subscribers.get(user_id, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Realtime queue full for user {user_id}; dropping {event.type.value} event")
        return delivered

    def subscriber_count(self, user_id: UUID) -> int:
        return len(self._subscribers.get(user_id, ()))
