"""
In-process publish/subscribe for freshly created notifications.

The dispatcher publishes every committed notification; live consumers (the
SSE endpoint) subscribe per recipient. Delivery to subscribers is lossy: a
slow subscriber whose queue is full loses its oldest pending item, and
nothing is replayed to late subscribers. The notifications table remains the
source of truth.
"""

import asyncio
from collections import defaultdict
from typing import Any, Dict, Set
import logging

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator over one recipient's notifications"""

    def __init__(self, broker: "NotificationBroker", user_id: str, maxsize: int):
        self.broker = broker
        self.user_id = user_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def offer(self, payload: Dict[str, Any]) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(payload)

    async def get(self) -> Dict[str, Any]:
        return await self.queue.get()

    def close(self) -> None:
        self.broker.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Dict[str, Any]:
        return await self.get()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()


class NotificationBroker:
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)

    def subscribe(self, user_id: str) -> Subscription:
        subscription = Subscription(self, user_id, self.queue_size)
        self._subscribers[user_id].add(subscription)
        logger.debug(f"Subscriber added for user {user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.user_id)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.user_id]

    def publish(self, user_id: str, payload: Dict[str, Any]) -> int:
        """Fan a payload out to the recipient's subscribers; returns how many got it."""
        subscribers = list(self._subscribers.get(user_id, ()))
        for subscription in subscribers:
            subscription.offer(payload)
        return len(subscribers)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))
