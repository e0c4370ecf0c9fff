"""
Codechat: a conversational coding assistant with code-aware message parsing.

Assistant replies are split into prose and labeled code blocks, and each
open session view keeps an ordered, deduplicated message list in sync with
persistent storage and real-time pushes from other views.
"""

__version__ = "0.1.0"

from .chat import (
    ChatError,
    ChatSession,
    Message,
    MessageRole,
    MessageStore,
    ModelCallFailed,
    PersistenceFailed,
    SessionNotFound,
    SessionSyncController,
)
from .parsing import CodeBlock, ProcessedMessage, ResponseProcessor, parse_code_fences

__all__ = [
    "ChatError",
    "ChatSession",
    "CodeBlock",
    "Message",
    "MessageRole",
    "MessageStore",
    "ModelCallFailed",
    "PersistenceFailed",
    "ProcessedMessage",
    "ResponseProcessor",
    "SessionNotFound",
    "SessionSyncController",
    "parse_code_fences",
]
