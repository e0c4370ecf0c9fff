"""Chat persistence module for codechat.

Stores chat sessions and their messages.
"""

from .base import ChatRepository
from .factory import create_repository
from .in_memory import InMemoryChatRepository

__all__ = [
    "ChatRepository",
    "InMemoryChatRepository",
    "create_repository",
]
