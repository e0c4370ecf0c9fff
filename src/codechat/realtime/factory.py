"""Factory for creating real-time buses."""

from typing import Any

from .base import RealtimeBus


def create_realtime_bus(backend: str = "memory", **kwargs: Any) -> RealtimeBus:
    """Create a real-time bus.

    Args:
        backend: Bus type ("memory" currently supported)
        **kwargs: Backend-specific configuration

    Returns:
        RealtimeBus instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryRealtimeBus
        return InMemoryRealtimeBus(**kwargs)

    raise ValueError(
        f"Unsupported realtime backend: {backend}. "
        f"Supported backends: memory"
    )
