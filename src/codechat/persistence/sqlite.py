"""SQLite chat persistence backend.

Provides persistent chat storage using a SQLite database file.
Uses aiosqlite for async access.
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import aiosqlite

from ..chat.errors import PersistenceFailed, SessionNotFound
from ..chat.models import ChatSession, DeliveryState, ImageRef, Message, MessageRole, utcnow
from ..config import DEFAULT_DB_PATH, DEFAULT_SESSION_TITLE
from ..parsing.models import CodeBlock
from ..realtime import ChangeType, RealtimeBus
from .base import ChatRepository

_SESSION_COLUMNS = "id, user_id, title, created_at, updated_at"
_MESSAGE_COLUMNS = (
    "id, session_id, role, content, created_at, "
    "code_blocks, explanation, image_url, image_name"
)


def _ts(value: datetime) -> str:
    # Fixed precision keeps lexical order equal to time order.
    return value.isoformat(timespec="microseconds")


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except aiosqlite.Error as e:
        raise PersistenceFailed(f"Failed to {action}: {e}") from e


class SQLiteChatRepository(ChatRepository):
    """SQLite-backed chat repository.

    Stores sessions and messages in a SQLite database file. Deleting a
    session cascades to its messages through a foreign key.
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_DB_PATH,
        bus: RealtimeBus | None = None
    ):
        super().__init__(bus)
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create the schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with _translate_errors("open database"):
            self._connection = await aiosqlite.connect(self._db_path)
            await self._connection.execute("PRAGMA foreign_keys = ON")
            await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS chat_sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                session_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                code_blocks TEXT,
                explanation TEXT,
                image_url TEXT,
                image_name TEXT,
                FOREIGN KEY (session_id) REFERENCES chat_sessions(id) ON DELETE CASCADE
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_session
            ON messages(session_id, created_at, seq)
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_user
            ON chat_sessions(user_id, updated_at)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def _db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise PersistenceFailed("SQLite repository is not connected")
        return self._connection

    async def create_session(
        self,
        user_id: str,
        title: str = DEFAULT_SESSION_TITLE
    ) -> ChatSession:
        """Insert a new session row."""
        now = utcnow()
        session = ChatSession(
            id=str(uuid4()),
            user_id=user_id,
            title=title,
            created_at=now,
            updated_at=now,
        )
        with _translate_errors("create session"):
            await self._db.execute(f"""
                INSERT INTO chat_sessions ({_SESSION_COLUMNS})
                VALUES (?, ?, ?, ?, ?)
            """, (session.id, user_id, title, _ts(now), _ts(now)))
            await self._db.commit()

        await self._publish_session(ChangeType.INSERT, session)
        return session

    async def get_session(self, session_id: str) -> ChatSession | None:
        """Get a session by id."""
        with _translate_errors("read session"):
            async with self._db.execute(
                f"SELECT {_SESSION_COLUMNS} FROM chat_sessions WHERE id = ?",
                (session_id,)
            ) as cursor:
                row = await cursor.fetchone()

        return self._row_to_session(row) if row else None

    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        """List a user's sessions, newest activity first."""
        with _translate_errors("list sessions"):
            async with self._db.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM chat_sessions
                WHERE user_id = ?
                ORDER BY updated_at DESC
                """,
                (user_id,)
            ) as cursor:
                rows = await cursor.fetchall()

        return [self._row_to_session(row) for row in rows]

    async def update_session(
        self,
        session_id: str,
        title: str | None = None
    ) -> ChatSession:
        """Bump updated_at and optionally retitle."""
        now = _ts(utcnow())
        with _translate_errors("update session"):
            if title is None:
                cursor = await self._db.execute(
                    "UPDATE chat_sessions SET updated_at = ? WHERE id = ?",
                    (now, session_id)
                )
            else:
                cursor = await self._db.execute(
                    "UPDATE chat_sessions SET updated_at = ?, title = ? WHERE id = ?",
                    (now, title, session_id)
                )
            await self._db.commit()

        if cursor.rowcount == 0:
            raise SessionNotFound(session_id)

        session = await self.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        await self._publish_session(ChangeType.UPDATE, session)
        return session

    async def delete_session(self, session_id: str) -> None:
        """Delete a session; its messages go with it."""
        session = await self.get_session(session_id)
        messages = await self.list_messages(session_id)

        with _translate_errors("delete session"):
            await self._db.execute("DELETE FROM chat_sessions WHERE id = ?", (session_id,))
            await self._db.commit()

        for message in messages:
            await self._publish_message(ChangeType.DELETE, message)
        if session is not None:
            await self._publish_session(ChangeType.DELETE, session)

    async def insert_message(self, message: Message) -> Message:
        """Insert a message row, assigning id and created_at."""
        confirmed = message.model_copy(update={
            "id": str(uuid4()),
            "created_at": utcnow(),
            "delivery": DeliveryState.SAVED,
        })
        code_blocks = None
        if confirmed.code_blocks is not None:
            code_blocks = json.dumps([block.model_dump() for block in confirmed.code_blocks])
        image = confirmed.image_ref

        with _translate_errors("insert message"):
            await self._db.execute(f"""
                INSERT INTO messages ({_MESSAGE_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                confirmed.id,
                confirmed.session_id,
                confirmed.role.value,
                confirmed.content,
                _ts(confirmed.created_at),
                code_blocks,
                confirmed.explanation,
                image.url if image else None,
                image.name if image else None,
            ))
            await self._db.commit()

        await self._publish_message(ChangeType.INSERT, confirmed)
        return confirmed

    async def list_messages(self, session_id: str) -> list[Message]:
        """List messages by created_at, ties in insertion order."""
        with _translate_errors("list messages"):
            async with self._db.execute(
                f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM messages
                WHERE session_id = ?
                ORDER BY created_at ASC, seq ASC
                """,
                (session_id,)
            ) as cursor:
                rows = await cursor.fetchall()

        return [self._row_to_message(row) for row in rows]

    @staticmethod
    def _row_to_session(row: tuple) -> ChatSession:
        session_id, user_id, title, created_at, updated_at = row
        return ChatSession(
            id=session_id,
            user_id=user_id,
            title=title,
            created_at=datetime.fromisoformat(created_at),
            updated_at=datetime.fromisoformat(updated_at),
        )

    @staticmethod
    def _row_to_message(row: tuple) -> Message:
        (message_id, session_id, role, content, created_at,
         code_blocks_json, explanation, image_url, image_name) = row

        code_blocks = None
        if code_blocks_json is not None:
            code_blocks = [CodeBlock(**block) for block in json.loads(code_blocks_json)]

        image_ref = None
        if image_url is not None:
            image_ref = ImageRef(url=image_url, name=image_name or "")

        return Message(
            id=message_id,
            session_id=session_id,
            role=MessageRole(role),
            content=content,
            created_at=datetime.fromisoformat(created_at),
            code_blocks=code_blocks,
            explanation=explanation,
            image_ref=image_ref,
        )

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
