"""In-process real-time bus.

Each subscription owns an asyncio queue drained by its own task, so
publishers never run subscriber code inline and delivery happens at a
later suspension point, like a networked push would.
"""

import asyncio
import inspect
import logging

from .base import ChangeCallback, RealtimeBus, Subscription
from .models import ChangeEvent

logger = logging.getLogger(__name__)


class InMemorySubscription(Subscription):
    """Queue-backed subscription bound to one event loop."""

    def __init__(
        self,
        bus: "InMemoryRealtimeBus",
        table: str,
        callback: ChangeCallback,
        filters: dict[str, str] | None,
    ):
        self._bus = bus
        self._table = table
        self._callback = callback
        self._filters = dict(filters) if filters else None
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = asyncio.create_task(self._deliver())

    @property
    def active(self) -> bool:
        return self._task is not None

    def offer(self, event: ChangeEvent) -> None:
        """Queue an event if it matches this subscription."""
        if self.active and event.matches(self._table, self._filters):
            self._queue.put_nowait(event)

    async def join(self) -> None:
        """Wait until every queued event has been delivered."""
        if self.active:
            await self._queue.join()

    async def unsubscribe(self) -> None:
        """Cancel delivery and detach from the bus."""
        task, self._task = self._task, None
        if task is None:
            return
        self._bus._detach(self)
        task.cancel()
        # Release anyone blocked in join() on undelivered events.
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        if task is asyncio.current_task():
            # Unsubscribed from inside its own callback.
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _deliver(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                result = self._callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Realtime callback failed for %s on %s", event.type.value, event.table)
            finally:
                self._queue.task_done()


class InMemoryRealtimeBus(RealtimeBus):
    """Real-time bus for a single process (session-only).

    Suitable for multiple views inside one application and for testing.
    """

    def __init__(self) -> None:
        self._subscriptions: list[InMemorySubscription] = []

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filters: dict[str, str] | None = None,
    ) -> Subscription:
        """Subscribe to row changes on a table."""
        subscription = InMemorySubscription(self, table, callback, filters)
        self._subscriptions.append(subscription)
        logger.debug("Subscribed to %s with filters %s", table, filters)
        return subscription

    async def publish(self, event: ChangeEvent) -> None:
        """Queue the event for every matching subscription."""
        for subscription in list(self._subscriptions):
            subscription.offer(event)

    async def wait_idle(self) -> None:
        """Wait until all queued events have been delivered."""
        for subscription in list(self._subscriptions):
            await subscription.join()

    async def close(self) -> None:
        """Unsubscribe everything."""
        for subscription in list(self._subscriptions):
            await subscription.unsubscribe()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    @property
    def backend_type(self) -> str:
        return "memory"

    def _detach(self, subscription: InMemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
