"""Abstract base class for chat persistence backends.

This module defines the interface for storing chat sessions and messages.
The abstraction hides:
- Storage format (dicts, SQLite rows, remote tables)
- Id and timestamp assignment
- Connection management
- Change notification to the real-time bus
"""

from abc import ABC, abstractmethod
from typing import Any

from ..chat.models import ChatSession, Message
from ..config import DEFAULT_SESSION_TITLE, MESSAGES_TABLE, SESSIONS_TABLE
from ..realtime import ChangeEvent, ChangeType, RealtimeBus


class ChatRepository(ABC):
    """Abstract chat persistence backend.

    Backends raise PersistenceFailed when a read or write fails. When a
    real-time bus is attached, every committed write is published on it.
    """

    def __init__(self, bus: RealtimeBus | None = None):
        self._bus = bus

    @property
    def bus(self) -> RealtimeBus | None:
        return self._bus

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def create_session(
        self,
        user_id: str,
        title: str = DEFAULT_SESSION_TITLE
    ) -> ChatSession:
        """Create a chat session for a user."""

    @abstractmethod
    async def get_session(self, session_id: str) -> ChatSession | None:
        """Get a session, or None if the id does not resolve."""

    @abstractmethod
    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        """List a user's sessions, most recently updated first."""

    @abstractmethod
    async def update_session(
        self,
        session_id: str,
        title: str | None = None
    ) -> ChatSession:
        """Bump a session's updated_at and optionally retitle it.

        Raises:
            SessionNotFound: If the session does not exist
        """

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Delete a session and every message it owns."""

    @abstractmethod
    async def insert_message(self, message: Message) -> Message:
        """Persist a message.

        The backend assigns the id and created_at; the message's own id and
        timestamp are ignored.

        Returns:
            The confirmed message

        Raises:
            PersistenceFailed: If the write fails or the session is missing
        """

    @abstractmethod
    async def list_messages(self, session_id: str) -> list[Message]:
        """List a session's messages ordered by created_at ascending."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "ChatRepository":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def _publish_session(self, change: ChangeType, session: ChatSession) -> None:
        await self._publish(change, SESSIONS_TABLE, session.model_dump(mode="json"))

    async def _publish_message(self, change: ChangeType, message: Message) -> None:
        await self._publish(change, MESSAGES_TABLE, message.model_dump(mode="json"))

    async def _publish(self, change: ChangeType, table: str, record: dict[str, Any]) -> None:
        if self._bus is not None:
            await self._bus.publish(ChangeEvent(type=change, table=table, record=record))
