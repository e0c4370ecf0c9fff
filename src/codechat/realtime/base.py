"""Abstract base classes for the real-time bus.

This module defines the interface for receiving row change pushes.
The abstraction hides:
- Transport (in-process queues, websockets, database notifications)
- Delivery scheduling
- Subscription bookkeeping
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from .models import ChangeEvent

ChangeCallback = Callable[[ChangeEvent], Awaitable[None] | None]


class Subscription(ABC):
    """Handle for an active subscription.

    Supports async context manager protocol so the subscription is released
    on every exit path:
        async with await bus.subscribe("messages", on_change) as sub:
            ...
        # Automatically unsubscribed
    """

    @abstractmethod
    async def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether events are still being delivered."""

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.unsubscribe()


class RealtimeBus(ABC):
    """Abstract real-time bus.

    Pushes insert, update and delete events for rows matching a filter.
    Delivery is asynchronous; events for one subscription arrive in publish
    order but may interleave arbitrarily with other work.
    """

    @abstractmethod
    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filters: dict[str, str] | None = None,
    ) -> Subscription:
        """Subscribe to row changes.

        Args:
            table: Table name, or "*" for every table
            callback: Called with each matching event (sync or async)
            filters: Column equality filters, e.g. {"session_id": "abc"}

        Returns:
            Subscription handle
        """

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        """Publish a row change to matching subscribers."""

    @abstractmethod
    async def close(self) -> None:
        """Release every subscription."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
