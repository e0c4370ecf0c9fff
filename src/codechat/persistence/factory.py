"""Factory for creating chat persistence backends."""

from typing import Any

from .base import ChatRepository


def create_repository(
    backend: str = "memory",
    **kwargs: Any
) -> ChatRepository:
    """Create a chat persistence backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For both:
                - bus: RealtimeBus | None, receives change events for writes
            For SQLite:
                - path: str | Path (default: ./codechat.db)

    Returns:
        ChatRepository instance

    Raises:
        ValueError: If backend type is not supported

    Examples:
        >>> repository = create_repository("sqlite", path="./chats.db")
        >>> await repository.connect()
    """
    if backend == "memory":
        from .in_memory import InMemoryChatRepository
        return InMemoryChatRepository(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteChatRepository
        return SQLiteChatRepository(**kwargs)

    raise ValueError(
        f"Unsupported persistence backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
