"""Pytest configuration and shared fixtures."""
import asyncio
from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio

from codechat.chat import ChatSession, ImageRef, Message, MessageRole, PersistenceFailed
from codechat.persistence import InMemoryChatRepository
from codechat.realtime import InMemoryRealtimeBus

CODE_REPLY = (
    "Reverse it with slicing:\n"
    "```python\n"
    "items[::-1]\n"
    "```\n"
    "Or in place:\n"
    "```python\n"
    "items.reverse()\n"
    "```"
)


class FakeGateway:
    """Model gateway double that records every call."""

    def __init__(self, reply: str = CODE_REPLY, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, list[dict[str, str]], ImageRef | None]] = []
        self.before_reply: Callable[[], Awaitable[None]] | None = None
        self.closed = False

    async def generate(
        self,
        message: str,
        context: list[dict[str, str]] | None = None,
        image_ref: ImageRef | None = None,
    ) -> str:
        self.calls.append((message, list(context or []), image_ref))
        if self.before_reply is not None:
            await self.before_reply()
        if self.error is not None:
            raise self.error
        return self.reply

    async def generate_examples(self) -> str:
        return await self.generate("examples")

    async def close(self) -> None:
        self.closed = True


class FailingRepository(InMemoryChatRepository):
    """In-memory repository whose message writes fail on demand."""

    def __init__(self, bus=None, error: Exception | None = None):
        super().__init__(bus)
        self.fail_roles: set[MessageRole] = set()
        self.error = error or PersistenceFailed("database is unavailable")
        self.insert_attempts = 0

    async def insert_message(self, message: Message) -> Message:
        self.insert_attempts += 1
        if message.role in self.fail_roles:
            raise self.error
        return await super().insert_message(message)


class SlowRepository(InMemoryChatRepository):
    """In-memory repository that yields after publishing each write.

    Lets the real-time echo of a write arrive before the write returns.
    """

    async def insert_message(self, message: Message) -> Message:
        confirmed = await super().insert_message(message)
        for _ in range(5):
            await asyncio.sleep(0)
        return confirmed


@pytest_asyncio.fixture
async def bus():
    """In-process real-time bus, closed after the test."""
    realtime_bus = InMemoryRealtimeBus()
    yield realtime_bus
    await realtime_bus.close()


@pytest_asyncio.fixture
async def repository(bus):
    """In-memory repository publishing on the bus."""
    repo = InMemoryChatRepository(bus)
    async with repo:
        yield repo


@pytest_asyncio.fixture
async def session(repository) -> ChatSession:
    """A fresh chat session owned by user 'alice'."""
    return await repository.create_session("alice")


@pytest.fixture
def gateway() -> FakeGateway:
    """Gateway replying with two python code blocks."""
    return FakeGateway()
