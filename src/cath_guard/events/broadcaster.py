"""Best-effort event fan-out to subscribers and an optional Redis Stream.

Delivery failures are logged and never propagate to the caller: an event
that cannot be delivered is dropped for that subscriber.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from cath_guard.events.models import Event
from cath_guard.metrics import EVENTS_BROADCAST_TOTAL

logger = logging.getLogger(__name__)

DEFAULT_STREAM_NAME = "cath_guard_events"
DEFAULT_MAX_LEN = 10_000

Subscriber = Callable[[dict[str, Any]], Awaitable[Any]]


class EventBroadcaster:
    """Fan out events to registered subscribers.

    Example:
        ```python
        broadcaster = EventBroadcaster(redis=Redis.from_url(url))
        broadcaster.subscribe(ws.send_json)
        await broadcaster.publish(transaction_event(txn))
        ```
    """

    def __init__(
        self,
        *,
        redis: Redis | None = None,
        stream_name: str = DEFAULT_STREAM_NAME,
        max_len: int = DEFAULT_MAX_LEN,
    ) -> None:
        """Initialize the broadcaster.

        Args:
            redis: Optional Redis client. When set, every event is also
                appended to ``stream_name``.
            stream_name: Redis Stream name.
            max_len: Approximate maximum stream length.
        """
        self._redis = redis
        self._stream_name = stream_name
        self._max_len = max_len
        self._subscribers: list[Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def publish(self, event: Event) -> int:
        """Deliver ``event`` to every subscriber.

        Args:
            event: Event to broadcast.

        Returns:
            Number of subscribers that accepted the event.
        """
        payload = event.to_dict()
        delivered = 0

        for subscriber in list(self._subscribers):
            try:
                await subscriber(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping {event.type.value} event for subscriber: {e}")

        if self._redis is not None:
            try:
                await self._redis.xadd(
                    self._stream_name,
                    event.to_stream_fields(),  # type: ignore[arg-type]
                    maxlen=self._max_len,
                    approximate=True,
                )
            except RedisError as e:
                logger.warning(f"Failed to append {event.type.value} event to stream: {e}")

        EVENTS_BROADCAST_TOTAL.labels(event_type=event.type.value).inc()
        return delivered

    async def close(self) -> None:
        self._subscribers.clear()
        if self._redis is not None:
            await self._redis.aclose()
