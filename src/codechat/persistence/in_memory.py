"""In-memory chat persistence backend.

Simple dict-based storage for session-only use.
Data is lost when the application exits.
"""

from uuid import uuid4

from ..chat.errors import PersistenceFailed, SessionNotFound
from ..chat.models import ChatSession, DeliveryState, Message, utcnow
from ..config import DEFAULT_SESSION_TITLE
from ..realtime import ChangeType, RealtimeBus
from .base import ChatRepository


class InMemoryChatRepository(ChatRepository):
    """In-memory chat repository (session-only).

    Suitable for a single process or testing.
    """

    def __init__(self, bus: RealtimeBus | None = None):
        super().__init__(bus)
        self._sessions: dict[str, ChatSession] = {}
        self._messages: dict[str, list[Message]] = {}

    async def connect(self) -> None:
        """Initialize storage (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close storage (no-op for in-memory)."""
        pass

    async def create_session(
        self,
        user_id: str,
        title: str = DEFAULT_SESSION_TITLE
    ) -> ChatSession:
        """Create a session."""
        now = utcnow()
        session = ChatSession(
            id=str(uuid4()),
            user_id=user_id,
            title=title,
            created_at=now,
            updated_at=now,
        )
        self._sessions[session.id] = session
        self._messages[session.id] = []
        await self._publish_session(ChangeType.INSERT, session)
        return session

    async def get_session(self, session_id: str) -> ChatSession | None:
        """Get a session by id."""
        return self._sessions.get(session_id)

    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        """List sessions, newest activity first."""
        sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    async def update_session(
        self,
        session_id: str,
        title: str | None = None
    ) -> ChatSession:
        """Bump updated_at and optionally retitle."""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        changes = {"updated_at": utcnow()}
        if title is not None:
            changes["title"] = title
        session = session.model_copy(update=changes)
        self._sessions[session_id] = session
        await self._publish_session(ChangeType.UPDATE, session)
        return session

    async def delete_session(self, session_id: str) -> None:
        """Delete a session and its messages."""
        session = self._sessions.pop(session_id, None)
        messages = self._messages.pop(session_id, [])
        for message in messages:
            await self._publish_message(ChangeType.DELETE, message)
        if session is not None:
            await self._publish_session(ChangeType.DELETE, session)

    async def insert_message(self, message: Message) -> Message:
        """Store a message, assigning id and created_at."""
        if message.session_id not in self._sessions:
            raise PersistenceFailed(
                f"Cannot insert message: session {message.session_id} does not exist"
            )
        confirmed = message.model_copy(update={
            "id": str(uuid4()),
            "created_at": utcnow(),
            "delivery": DeliveryState.SAVED,
        })
        self._messages[message.session_id].append(confirmed)
        await self._publish_message(ChangeType.INSERT, confirmed)
        return confirmed

    async def list_messages(self, session_id: str) -> list[Message]:
        """List messages by created_at, ties in insertion order."""
        return sorted(self._messages.get(session_id, []), key=lambda m: m.created_at)

    @property
    def backend_type(self) -> str:
        return "memory"
