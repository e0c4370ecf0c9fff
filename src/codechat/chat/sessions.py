"""Session directory for one user.

Starting a chat, listing and renaming sessions, deleting them with their
messages, and watching the list for changes made by other views.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..config import DEFAULT_SESSION_TITLE, SESSIONS_TABLE
from ..realtime import ChangeEvent, RealtimeBus, Subscription
from .errors import SessionNotFound
from .models import ChatSession

if TYPE_CHECKING:
    from ..persistence import ChatRepository

logger = logging.getLogger(__name__)

SessionsListener = Callable[[list[ChatSession]], None]


class SessionDirectory:
    """A user's chat sessions."""

    def __init__(
        self,
        repository: "ChatRepository",
        user_id: str,
        bus: RealtimeBus | None = None,
    ):
        self._repository = repository
        self._user_id = user_id
        self._bus = bus

    @property
    def user_id(self) -> str:
        return self._user_id

    async def start_chat(self, title: str = DEFAULT_SESSION_TITLE) -> ChatSession:
        """Create a new session for the user."""
        session = await self._repository.create_session(self._user_id, title=title)
        logger.info("Started chat %s", session.id)
        return session

    async def list_sessions(self) -> list[ChatSession]:
        """Sessions ordered by most recent activity."""
        return await self._repository.list_sessions(self._user_id)

    async def get(self, session_id: str) -> ChatSession:
        """Get one of the user's sessions.

        Raises:
            SessionNotFound: If the id does not resolve to this user's session
        """
        session = await self._repository.get_session(session_id)
        if session is None or session.user_id != self._user_id:
            raise SessionNotFound(session_id)
        return session

    async def rename(self, session_id: str, title: str) -> ChatSession:
        """Change a session's title."""
        await self.get(session_id)
        return await self._repository.update_session(session_id, title=title.strip() or DEFAULT_SESSION_TITLE)

    async def delete(self, session_id: str) -> None:
        """Delete a session and every message it owns."""
        await self.get(session_id)
        await self._repository.delete_session(session_id)
        logger.info("Deleted chat %s", session_id)

    async def watch(self, listener: SessionsListener) -> Subscription | None:
        """Call listener with the session list now and after every change.

        Returns:
            Subscription to release when done, or None without a bus
        """
        listener(await self.list_sessions())
        if self._bus is None:
            return None

        async def refresh(event: ChangeEvent) -> None:
            listener(await self.list_sessions())

        return await self._bus.subscribe(
            SESSIONS_TABLE,
            refresh,
            filters={"user_id": self._user_id},
        )
