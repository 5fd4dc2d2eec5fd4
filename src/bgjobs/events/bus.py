"""
Event bus for scheduler event distribution.

Subscribers either register a callback (invoked synchronously on the
control thread) or a bounded asyncio queue consumed with ``events()``.
A failing callback is logged and never affects other subscribers or the
publisher.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field

from ..logging import get_logger
from .types import JobEvent, JobEventType

logger = get_logger(__name__)

EventCallback = Callable[[JobEvent], None]


@dataclass
class EventSubscription:
    """Subscription to events from the event bus."""
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_types: set[JobEventType] | None = None  # None = all types
    job_id: int | None = None
    callback: EventCallback | None = None

    def matches(self, event: JobEvent) -> bool:
        """Check if an event matches this subscription."""
        if self.job_id is not None and event.job_id != self.job_id:
            return False
        if self.event_types and event.type not in self.event_types:
            return False
        return True


def _normalize_types(
    event_types: JobEventType | Iterable[JobEventType] | None,
) -> set[JobEventType] | None:
    if event_types is None:
        return None
    if isinstance(event_types, JobEventType):
        return {event_types}
    return set(event_types)


class EventBus:
    """In-process event bus.

    Features:
    - Callback subscribers with failure isolation
    - Bounded queue subscribers with a drop policy
    - Per-job and per-type filtering
    """

    def __init__(
        self,
        max_queue_size: int = 1000,
        drop_policy: str = "oldest",  # "oldest" or "newest"
    ):
        if drop_policy not in ("oldest", "newest"):
            raise ValueError(f"Invalid drop policy: {drop_policy}")
        self._subscriptions: dict[str, EventSubscription] = {}
        self._queues: dict[str, asyncio.Queue[JobEvent | None]] = {}
        self._max_queue_size = max_queue_size
        self._drop_policy = drop_policy
        self._closed = False
        self.callback_failures = 0

    def subscribe(
        self,
        event_types: JobEventType | Iterable[JobEventType] | None,
        callback: EventCallback,
        *,
        job_id: int | None = None,
    ) -> EventSubscription:
        """Register ``callback`` for the given event type(s)."""
        subscription = EventSubscription(
            event_types=_normalize_types(event_types),
            job_id=job_id,
            callback=callback,
        )
        self._subscriptions[subscription.subscription_id] = subscription
        return subscription

    def subscribe_queue(
        self,
        event_types: JobEventType | Iterable[JobEventType] | None = None,
        *,
        job_id: int | None = None,
    ) -> EventSubscription:
        """Create a queue-backed subscription for ``events()``."""
        subscription = EventSubscription(
            event_types=_normalize_types(event_types),
            job_id=job_id,
        )
        self._subscriptions[subscription.subscription_id] = subscription
        self._queues[subscription.subscription_id] = asyncio.Queue(
            maxsize=self._max_queue_size
        )
        return subscription

    def publish(self, event: JobEvent) -> None:
        """Deliver an event to all matching subscribers."""
        if self._closed:
            return

        for sub_id, subscription in list(self._subscriptions.items()):
            if not subscription.matches(event):
                continue
            if subscription.callback is not None:
                self._invoke(subscription, event)
                continue
            queue = self._queues.get(sub_id)
            if queue is not None:
                self._enqueue(queue, event)

    def _invoke(self, subscription: EventSubscription, event: JobEvent) -> None:
        try:
            subscription.callback(event)
        except Exception as exc:
            self.callback_failures += 1
            logger.log_error(
                exc,
                f"Error in {event.type.value} subscriber",
                exc_info=True,
                subscription_id=subscription.subscription_id,
                event_job_id=event.job_id,
            )

    def _enqueue(self, queue: asyncio.Queue[JobEvent | None], event: JobEvent) -> None:
        if queue.full():
            if self._drop_policy == "newest":
                return
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        queue.put_nowait(event)

    async def events(self, subscription: EventSubscription) -> AsyncIterator[JobEvent]:
        """Iterate over events for a queue subscription.

        Yields events until the subscription is closed (receives None).
        """
        queue = self._queues.get(subscription.subscription_id)
        if queue is None:
            return

        while True:
            event = await queue.get()
            if event is None:  # Sentinel for close
                break
            yield event

    async def wait_for_event(
        self,
        subscription: EventSubscription,
        timeout: float | None = None,
    ) -> JobEvent | None:
        """Wait for a single queued event with optional timeout."""
        queue = self._queues.get(subscription.subscription_id)
        if queue is None:
            return None

        try:
            if timeout:
                return await asyncio.wait_for(queue.get(), timeout=timeout)
            return await queue.get()
        except asyncio.TimeoutError:
            return None

    def unsubscribe(self, subscription: EventSubscription) -> None:
        """Remove a subscription."""
        sub_id = subscription.subscription_id
        self._subscriptions.pop(sub_id, None)
        queue = self._queues.pop(sub_id, None)
        if queue is not None:
            self._close_queue(queue)

    def close(self) -> None:
        """Stop delivery and unblock queue consumers."""
        self._closed = True
        # Queues stay registered so consumers can drain them up to the sentinel.
        for queue in self._queues.values():
            self._close_queue(queue)
        self._subscriptions.clear()

    @staticmethod
    def _close_queue(queue: asyncio.Queue[JobEvent | None]) -> None:
        if queue.full():
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        queue.put_nowait(None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


__all__ = [
    "EventBus",
    "EventCallback",
    "EventSubscription",
]
