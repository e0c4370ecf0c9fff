"""Exceptions raised by the chat pipeline.

Fence parsing has no error path, so nothing here covers it.
"""


class ChatError(Exception):
    """Base class for chat pipeline errors."""


class ModelCallFailed(ChatError):
    """The AI gateway was unreachable or returned no content."""


class PersistenceFailed(ChatError):
    """A read or write against the persistence store failed."""


class SessionNotFound(ChatError):
    """The session id does not resolve. Terminal for the view."""

    def __init__(self, session_id: str):
        super().__init__(f"Chat session not found: {session_id}")
        self.session_id = session_id


class TurnInProgressError(ChatError):
    """A send was issued while another turn on the same view is running."""
