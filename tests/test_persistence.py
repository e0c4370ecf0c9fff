"""Tests for chat persistence backends."""
import pytest
import pytest_asyncio

from codechat.chat import (
    ImageRef,
    Message,
    MessageRole,
    PersistenceFailed,
    SessionNotFound,
)
from codechat.parsing import CodeBlock
from codechat.persistence import ChatRepository, InMemoryChatRepository, create_repository
from codechat.persistence.sqlite import SQLiteChatRepository
from codechat.realtime import ChangeType, InMemoryRealtimeBus


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def backend(request, tmp_path):
    """Each repository backend, connected and publishing on a bus."""
    bus = InMemoryRealtimeBus()
    if request.param == "sqlite":
        repository = create_repository("sqlite", path=tmp_path / "chats.db", bus=bus)
    else:
        repository = create_repository("memory", bus=bus)
    async with repository:
        yield repository
    await bus.close()


def user_message(session_id: str, content: str) -> Message:
    return Message(session_id=session_id, role=MessageRole.USER, content=content)


class TestFactory:
    """Tests for create_repository."""

    def test_memory_backend(self):
        assert isinstance(create_repository("memory"), InMemoryChatRepository)

    def test_sqlite_backend(self, tmp_path):
        repository = create_repository("sqlite", path=tmp_path / "x.db")

        assert isinstance(repository, SQLiteChatRepository)
        assert repository.backend_type == "sqlite"
        assert repository.db_path == tmp_path / "x.db"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported persistence backend"):
            create_repository("postgres")

    def test_repository_is_abstract(self):
        with pytest.raises(TypeError):
            ChatRepository()  # type: ignore


class TestSessions:
    """Tests for session storage, run against every backend."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, backend):
        session = await backend.create_session("alice")
        loaded = await backend.get_session(session.id)

        assert loaded == session
        assert loaded.title == "New Chat"

    @pytest.mark.asyncio
    async def test_get_missing(self, backend):
        assert await backend.get_session("missing") is None

    @pytest.mark.asyncio
    async def test_list_most_recent_first(self, backend):
        older = await backend.create_session("alice", title="Older")
        newer = await backend.create_session("alice", title="Newer")
        await backend.create_session("bob")

        assert [s.id for s in await backend.list_sessions("alice")] == [newer.id, older.id]

        await backend.update_session(older.id)
        assert [s.id for s in await backend.list_sessions("alice")] == [older.id, newer.id]

    @pytest.mark.asyncio
    async def test_update_title(self, backend):
        session = await backend.create_session("alice")

        updated = await backend.update_session(session.id, title="Generators")

        assert updated.title == "Generators"
        assert updated.updated_at >= session.updated_at
        assert (await backend.get_session(session.id)).title == "Generators"

    @pytest.mark.asyncio
    async def test_update_missing(self, backend):
        with pytest.raises(SessionNotFound):
            await backend.update_session("missing", title="x")

    @pytest.mark.asyncio
    async def test_delete_cascades(self, backend):
        session = await backend.create_session("alice")
        await backend.insert_message(user_message(session.id, "bye"))

        await backend.delete_session(session.id)

        assert await backend.get_session(session.id) is None
        assert await backend.list_messages(session.id) == []


class TestMessages:
    """Tests for message storage, run against every backend."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamp(self, backend):
        session = await backend.create_session("alice")
        local = user_message(session.id, "hello").model_copy(update={"id": "local-1"})

        confirmed = await backend.insert_message(local)

        assert confirmed.id and confirmed.id != "local-1"
        assert confirmed.is_saved
        assert confirmed.created_at >= local.created_at
        assert await backend.list_messages(session.id) == [confirmed]

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, backend):
        session = await backend.create_session("alice")
        inserted = [
            await backend.insert_message(user_message(session.id, f"message {i}"))
            for i in range(5)
        ]

        listed = await backend.list_messages(session.id)

        assert [m.id for m in listed] == [m.id for m in inserted]

    @pytest.mark.asyncio
    async def test_parsed_fields_round_trip(self, backend):
        session = await backend.create_session("alice")
        reply = Message(
            session_id=session.id,
            role=MessageRole.ASSISTANT,
            content="Use:\n```sql\nSELECT 1;\n```",
            code_blocks=[CodeBlock(language="sql", code="SELECT 1;")],
            explanation="Use:",
        )
        question = user_message(session.id, "see image").model_copy(update={
            "image_ref": ImageRef(url="https://example.com/a.png", name="a.png"),
        })

        await backend.insert_message(question)
        await backend.insert_message(reply)
        listed = await backend.list_messages(session.id)

        assert listed[0].image_ref == ImageRef(url="https://example.com/a.png", name="a.png")
        assert listed[0].code_blocks is None
        assert listed[1].code_blocks == [CodeBlock(language="sql", code="SELECT 1;")]
        assert listed[1].explanation == "Use:"
        assert listed[1].role == MessageRole.ASSISTANT

    @pytest.mark.asyncio
    async def test_insert_into_missing_session(self, backend):
        with pytest.raises(PersistenceFailed):
            await backend.insert_message(user_message("missing", "orphan"))

    @pytest.mark.asyncio
    async def test_writes_publish_events(self, backend):
        events = []
        subscription = await backend.bus.subscribe("*", events.append)
        async with subscription:
            session = await backend.create_session("alice")
            message = await backend.insert_message(user_message(session.id, "hi"))
            await backend.delete_session(session.id)
            await backend.bus.wait_idle()

        assert [(e.table, e.type) for e in events] == [
            ("chat_sessions", ChangeType.INSERT),
            ("messages", ChangeType.INSERT),
            ("messages", ChangeType.DELETE),
            ("chat_sessions", ChangeType.DELETE),
        ]
        assert events[1].record["id"] == message.id
        assert Message.model_validate(events[1].record) == message


@pytest.mark.integration
class TestSQLiteRepository:
    """SQLite-specific behaviour."""

    @pytest.mark.asyncio
    async def test_survives_reconnect(self, tmp_path):
        path = tmp_path / "nested" / "chats.db"
        async with SQLiteChatRepository(path) as repository:
            session = await repository.create_session("alice")
            message = await repository.insert_message(user_message(session.id, "persisted"))

        async with SQLiteChatRepository(path) as reopened:
            assert (await reopened.get_session(session.id)).id == session.id
            assert await reopened.list_messages(session.id) == [message]

    @pytest.mark.asyncio
    async def test_requires_connection(self, tmp_path):
        repository = SQLiteChatRepository(tmp_path / "chats.db")

        with pytest.raises(PersistenceFailed, match="not connected"):
            await repository.list_sessions("alice")
