"""Chat state module for codechat.

Module structure (each module hides a design decision):
- errors.py: Failure taxonomy of the pipeline
- models.py: Message and session representation
- store.py: Ordering and deduplication of one session's messages
- sync.py: Turn lifecycle and reconciliation with storage and pushes
- sessions.py: A user's session list
"""

from .errors import (
    ChatError,
    ModelCallFailed,
    PersistenceFailed,
    SessionNotFound,
    TurnInProgressError,
)
from .models import ChatSession, DeliveryState, ImageRef, Message, MessageRole
from .store import MessageStore
from .sync import AIGateway, SessionSyncController, TurnResult, TurnState, title_from_text
from .sessions import SessionDirectory

__all__ = [
    "AIGateway",
    "ChatError",
    "ChatSession",
    "DeliveryState",
    "ImageRef",
    "Message",
    "MessageRole",
    "MessageStore",
    "ModelCallFailed",
    "PersistenceFailed",
    "SessionDirectory",
    "SessionNotFound",
    "SessionSyncController",
    "TurnInProgressError",
    "TurnResult",
    "TurnState",
    "title_from_text",
]
