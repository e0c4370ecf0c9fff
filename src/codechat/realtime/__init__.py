"""Real-time bus module for codechat.

Delivers row change pushes so every open view of a session stays in sync.
"""

from .base import ChangeCallback, RealtimeBus, Subscription
from .factory import create_realtime_bus
from .in_memory import InMemoryRealtimeBus
from .models import ChangeEvent, ChangeType

__all__ = [
    "ChangeCallback",
    "ChangeEvent",
    "ChangeType",
    "InMemoryRealtimeBus",
    "RealtimeBus",
    "Subscription",
    "create_realtime_bus",
]
