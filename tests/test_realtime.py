"""Tests for the real-time bus."""
import pytest

from codechat.realtime import (
    ChangeEvent,
    ChangeType,
    InMemoryRealtimeBus,
    RealtimeBus,
    create_realtime_bus,
)


def event(table: str = "messages", change: ChangeType = ChangeType.INSERT, **record) -> ChangeEvent:
    return ChangeEvent(type=change, table=table, record=record)


class TestChangeEvent:
    """Tests for event filtering."""

    def test_matches_table(self):
        assert event("messages").matches("messages", None)
        assert not event("messages").matches("chat_sessions", None)

    def test_wildcard_table(self):
        assert event("chat_sessions").matches("*", None)

    def test_filters_must_all_hold(self):
        change = event(session_id="s1", role="user")

        assert change.matches("messages", {"session_id": "s1"})
        assert change.matches("messages", {"session_id": "s1", "role": "user"})
        assert not change.matches("messages", {"session_id": "s2"})
        assert not change.matches("messages", {"user_id": "alice"})

    def test_filter_values_compare_as_strings(self):
        assert event(session_id=42).matches("messages", {"session_id": "42"})


class TestFactory:
    """Tests for create_realtime_bus."""

    def test_memory_bus(self):
        bus = create_realtime_bus("memory")

        assert isinstance(bus, InMemoryRealtimeBus)
        assert bus.backend_type == "memory"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported realtime backend"):
            create_realtime_bus("websocket")

    def test_bus_is_abstract(self):
        with pytest.raises(TypeError):
            RealtimeBus()  # type: ignore


class TestInMemoryRealtimeBus:
    """Tests for in-process delivery."""

    @pytest.mark.asyncio
    async def test_delivers_in_publish_order(self, bus):
        received = []
        await bus.subscribe("messages", received.append)

        for i in range(5):
            await bus.publish(event(id=str(i)))
        await bus.wait_idle()

        assert [e.record["id"] for e in received] == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_delivery_is_not_inline(self, bus):
        """Test that publishing never runs the subscriber before the publisher yields."""
        received = []
        await bus.subscribe("messages", received.append)

        await bus.publish(event(id="1"))
        assert received == []

        await bus.wait_idle()
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_filtered_subscription(self, bus):
        received = []
        await bus.subscribe("messages", received.append, filters={"session_id": "s1"})

        await bus.publish(event(id="a", session_id="s1"))
        await bus.publish(event(id="b", session_id="s2"))
        await bus.publish(event("chat_sessions", id="c", session_id="s1"))
        await bus.wait_idle()

        assert [e.record["id"] for e in received] == ["a"]

    @pytest.mark.asyncio
    async def test_async_callback(self, bus):
        received = []

        async def on_change(change: ChangeEvent) -> None:
            received.append(change.type)

        await bus.subscribe("messages", on_change)
        await bus.publish(event(change=ChangeType.DELETE, id="x"))
        await bus.wait_idle()

        assert received == [ChangeType.DELETE]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_delivery(self, bus):
        received = []

        def flaky(change: ChangeEvent) -> None:
            if change.record["id"] == "bad":
                raise RuntimeError("listener bug")
            received.append(change.record["id"])

        await bus.subscribe("messages", flaky)
        for message_id in ("ok-1", "bad", "ok-2"):
            await bus.publish(event(id=message_id))
        await bus.wait_idle()

        assert received == ["ok-1", "ok-2"]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self, bus):
        received = []
        subscription = await bus.subscribe("messages", received.append)
        assert bus.subscription_count == 1

        await subscription.unsubscribe()
        await subscription.unsubscribe()
        await bus.publish(event(id="late"))
        await bus.wait_idle()

        assert received == []
        assert not subscription.active
        assert bus.subscription_count == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_drops_queued_events(self, bus):
        received = []
        subscription = await bus.subscribe("messages", received.append)

        await bus.publish(event(id="queued"))
        await subscription.unsubscribe()
        await bus.wait_idle()

        assert received == []

    @pytest.mark.asyncio
    async def test_context_manager_unsubscribes(self, bus):
        async with await bus.subscribe("messages", lambda change: None) as subscription:
            assert subscription.active

        assert not subscription.active
        assert bus.subscription_count == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_from_own_callback(self, bus):
        received = []
        holder = {}

        async def once(change: ChangeEvent) -> None:
            received.append(change.record["id"])
            await holder["subscription"].unsubscribe()

        holder["subscription"] = await bus.subscribe("messages", once)
        await bus.publish(event(id="1"))
        await bus.publish(event(id="2"))
        await bus.wait_idle()

        assert received == ["1"]
        assert bus.subscription_count == 0

    @pytest.mark.asyncio
    async def test_close_releases_everything(self):
        bus = InMemoryRealtimeBus()
        first = await bus.subscribe("messages", lambda change: None)
        second = await bus.subscribe("chat_sessions", lambda change: None)

        await bus.close()

        assert not first.active
        assert not second.active
        assert bus.subscription_count == 0
