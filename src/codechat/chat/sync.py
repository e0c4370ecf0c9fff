"""Session synchronization controller.

Drives one open view of a chat session: optimistic appends, the model
round trip, persistence writes, and reconciliation of the store with write
acknowledgments and real-time pushes from other views.

Everything runs on one event loop. The store is only touched between
suspension points, and a closed flag gates every entry point so callbacks
arriving after close() never reach a disposed view.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from ..config import DEFAULT_SESSION_TITLE, MESSAGES_TABLE, SESSION_TITLE_MAX_LENGTH, SESSIONS_TABLE
from ..parsing import ResponseProcessor
from ..realtime import ChangeEvent, ChangeType, RealtimeBus, Subscription
from .errors import ChatError, ModelCallFailed, PersistenceFailed, SessionNotFound, TurnInProgressError
from .models import ChatSession, ImageRef, Message, MessageRole
from .store import MessageStore

if TYPE_CHECKING:
    from ..persistence import ChatRepository

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[tuple[Message, ...]], None]


class AIGateway(Protocol):
    """What the controller needs from the model gateway."""

    async def generate(
        self,
        message: str,
        context: list[dict[str, str]] | None = None,
        image_ref: ImageRef | None = None,
    ) -> str: ...


class TurnState(str, Enum):
    """Stage of the outgoing turn."""

    IDLE = "idle"
    SENDING = "sending"                 # User message appended, write in flight
    AWAITING_MODEL = "awaiting_model"   # Prompt forwarded to the gateway
    PROCESSING = "processing"           # Raw reply being split into prose and code
    PERSISTING = "persisting"           # Assistant message appended, write in flight


@dataclass
class TurnResult:
    """Outcome of one send.

    Messages are the latest known versions: confirmed when saved, otherwise
    the local entry (flagged failed when its write did not go through).
    """

    user_message: Message
    assistant_message: Message | None = None
    error: ChatError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def title_from_text(text: str, limit: int = SESSION_TITLE_MAX_LENGTH) -> str:
    """Derive a session title from the first non-empty line of a message."""
    for line in text.splitlines():
        line = line.strip()
        if line:
            return line if len(line) <= limit else line[:limit - 3].rstrip() + "..."
    return DEFAULT_SESSION_TITLE


class SessionSyncController:
    """Keep one session view consistent with storage and other views.

    Usage:
        async with SessionSyncController(session_id, repository, gateway, bus) as view:
            result = await view.send("How do I reverse a list?")
            messages = view.snapshot()
        # Subscription released, late callbacks ignored
    """

    def __init__(
        self,
        session_id: str,
        repository: "ChatRepository",
        gateway: AIGateway,
        bus: RealtimeBus | None = None,
        processor: ResponseProcessor | None = None,
        store: MessageStore | None = None,
    ):
        self._session_id = session_id
        self._repository = repository
        self._gateway = gateway
        self._bus = bus
        self._processor = processor or ResponseProcessor()
        self._store = store or MessageStore(session_id)

        self._session: ChatSession | None = None
        self._subscriptions: list[Subscription] = []
        self._listeners: list[SnapshotListener] = []
        self._state = TurnState.IDLE
        self._last_error: ChatError | None = None
        self._opened = False
        self._closed = False
        self._not_found = False

        # Pushes received while this view's own write is in flight wait here
        # until the write acknowledgment has been reconciled.
        self._writes_in_flight = 0
        self._held_events: list[ChangeEvent] = []

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def session(self) -> ChatSession | None:
        return self._session

    @property
    def store(self) -> MessageStore:
        return self._store

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def last_error(self) -> ChatError | None:
        return self._last_error

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def not_found(self) -> bool:
        return self._not_found

    def snapshot(self) -> tuple[Message, ...]:
        """Ordered messages for rendering."""
        return self._store.snapshot()

    def context(self) -> list[dict[str, str]]:
        """Visible messages as role/content pairs for the model."""
        return [m.to_context() for m in self._store.snapshot() if m.content]

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback invoked with every new snapshot.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def __aenter__(self) -> "SessionSyncController":
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Resolve the session, subscribe to pushes and load its messages.

        Raises:
            SessionNotFound: If the session id does not resolve
            PersistenceFailed: If the initial load fails
        """
        if self._closed:
            raise RuntimeError("Session view is closed")
        if self._opened:
            return

        session = await self._repository.get_session(self._session_id)
        if self._closed:
            return
        if session is None:
            self._not_found = True
            raise SessionNotFound(self._session_id)
        self._session = session

        # Subscribe before loading so nothing written in between is missed;
        # overlap between the two is removed by id.
        if self._bus is not None:
            for table, callback, filters in (
                (MESSAGES_TABLE, self._on_change, {"session_id": self._session_id}),
                (SESSIONS_TABLE, self._on_session_change, {"id": self._session_id}),
            ):
                subscription = await self._bus.subscribe(table, callback, filters=filters)
                if self._closed:
                    await subscription.unsubscribe()
                    return
                self._subscriptions.append(subscription)

        messages = await self._repository.list_messages(self._session_id)
        if self._closed:
            return
        self._store.merge_remote(messages)
        self._opened = True
        logger.debug("Opened session %s with %d messages", self._session_id, len(messages))
        self._notify()

    async def close(self) -> None:
        """Dispose the subscription and ignore every later callback."""
        if self._closed:
            return
        self._closed = True
        self._held_events.clear()
        self._listeners.clear()
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.unsubscribe()
        logger.debug("Closed session view %s", self._session_id)

    async def send(self, text: str, image_ref: ImageRef | None = None) -> TurnResult | None:
        """Run one user turn.

        Empty text without an image is a no-op. Failures are reported on the
        result and on last_error; messages already shown stay in the store.

        Args:
            text: The user's message
            image_ref: Optional image attached to the message

        Returns:
            TurnResult, or None when there was nothing to send

        Raises:
            SessionNotFound: If the view's session does not exist
            TurnInProgressError: If another turn is still running
        """
        text = text or ""
        if not text.strip() and image_ref is None:
            return None
        self._ensure_usable()
        if self._state != TurnState.IDLE:
            raise TurnInProgressError("A message is already being sent in this session")

        context = self.context()
        self._set_state(TurnState.SENDING)
        user_temp_id = self._store.append_local(Message(
            session_id=self._session_id,
            role=MessageRole.USER,
            content=text,
            image_ref=image_ref,
        ))
        self._notify()
        result = TurnResult(user_message=self._store.get(user_temp_id))
        assistant_temp_id: str | None = None

        try:
            result.user_message = await self._persist(user_temp_id)

            self._set_state(TurnState.AWAITING_MODEL)
            raw_text = await self._gateway.generate(text, context, image_ref)

            self._set_state(TurnState.PROCESSING)
            processed = self._processor.process(raw_text)
            assistant = Message(
                session_id=self._session_id,
                role=MessageRole.ASSISTANT,
                content=processed.message,
                code_blocks=processed.code_blocks,
                explanation=processed.explanation,
            )

            self._set_state(TurnState.PERSISTING)
            if self._closed:
                # The view went away mid-turn; keep the answer for the next load.
                result.assistant_message = await self._repository.insert_message(assistant)
                return result

            assistant_temp_id = self._store.append_local(assistant)
            self._notify()
            result.assistant_message = self._store.get(assistant_temp_id)
            result.assistant_message = await self._persist(assistant_temp_id)

            await self._touch_session(text)

        except (ModelCallFailed, PersistenceFailed) as e:
            error: ChatError = e
            if isinstance(e, PersistenceFailed) and await self._session_gone():
                error = SessionNotFound(self._session_id)
            logger.warning("Turn failed in session %s during %s: %s", self._session_id, self._state.value, error)
            result.error = error
            self._last_error = error
            result.user_message = self._store.get(user_temp_id) or result.user_message
            if assistant_temp_id is not None:
                result.assistant_message = self._store.get(assistant_temp_id) or result.assistant_message
        finally:
            self._set_state(TurnState.IDLE)

        return result

    async def reload(self) -> None:
        """Re-fetch the session's messages and merge them by id."""
        self._ensure_usable()
        messages = await self._repository.list_messages(self._session_id)
        if self._closed:
            return
        self._store.merge_remote(messages)
        self._notify()

    async def retry_failed(self) -> list[Message]:
        """Retry persisting local messages whose write failed.

        Returns:
            Messages confirmed by this retry
        """
        self._ensure_usable()
        confirmed: list[Message] = []
        for message in self._store.failed():
            if self._closed:
                break
            self._store.mark_pending(message.id)
            self._notify()
            try:
                confirmed.append(await self._persist(message.id))
            except PersistenceFailed as e:
                logger.warning("Retry failed for %s: %s", message.id, e)
                self._last_error = e
        return confirmed

    async def delete_session(self) -> None:
        """Delete the session and its messages, then close the view."""
        self._ensure_usable()
        await self._repository.delete_session(self._session_id)
        await self.close()

    def _ensure_usable(self) -> None:
        if self._not_found:
            raise SessionNotFound(self._session_id)
        if self._closed:
            raise RuntimeError("Session view is closed")
        if not self._opened:
            raise RuntimeError("Session view is not open; call open() first")

    def _set_state(self, state: TurnState) -> None:
        if state != self._state:
            logger.debug("Session %s: %s -> %s", self._session_id, self._state.value, state.value)
            self._state = state

    async def _persist(self, temp_id: str) -> Message:
        """Write a local entry and reconcile it with the acknowledgment."""
        message = self._store.get(temp_id)
        if message is None:
            raise PersistenceFailed(f"No local message {temp_id} to persist")

        self._writes_in_flight += 1
        try:
            confirmed = await self._repository.insert_message(message)
            if not self._closed and not self._not_found:
                self._store.reconcile_confirmed(temp_id, confirmed)
            return confirmed
        except Exception as e:
            if not self._closed and not self._not_found:
                self._store.mark_failed(temp_id)
            if isinstance(e, PersistenceFailed):
                raise
            raise PersistenceFailed(f"Failed to save message: {e}") from e
        finally:
            self._writes_in_flight -= 1
            if self._writes_in_flight == 0:
                self._release_held_events()
            self._notify()

    async def _touch_session(self, text: str) -> None:
        """Bump updated_at and title a fresh session from its first message."""
        title = None
        if self._session is not None and self._session.title == DEFAULT_SESSION_TITLE:
            title = title_from_text(text)
            if title == DEFAULT_SESSION_TITLE:
                title = None
        try:
            self._session = await self._repository.update_session(self._session_id, title=title)
        except ChatError as e:
            logger.warning("Could not update session %s: %s", self._session_id, e)

    async def _session_gone(self) -> bool:
        """Check whether a failed write hit a session deleted elsewhere."""
        try:
            session = await self._repository.get_session(self._session_id)
        except ChatError:
            return False
        if session is None:
            self._mark_not_found()
        return session is None

    def _mark_not_found(self) -> None:
        """Make the view terminal once its session no longer exists."""
        if self._not_found:
            return
        logger.info("Session %s was deleted", self._session_id)
        self._not_found = True
        self._held_events.clear()
        self._store.clear()
        self._notify()

    def _on_session_change(self, event: ChangeEvent) -> None:
        """Real-time delivery callback for the session row."""
        if self._closed:
            return
        if event.type == ChangeType.DELETE:
            self._mark_not_found()
            return
        try:
            self._session = ChatSession.model_validate(event.record)
        except ValidationError as e:
            logger.warning("Ignoring malformed session push: %s", e)

    def _on_change(self, event: ChangeEvent) -> None:
        """Real-time delivery callback."""
        if self._closed or self._not_found:
            return
        if self._writes_in_flight:
            self._held_events.append(event)
            return
        if self._apply_event(event):
            self._notify()

    def _release_held_events(self) -> None:
        if self._closed:
            self._held_events.clear()
            return
        held, self._held_events = self._held_events, []
        for event in held:
            self._apply_event(event)

    def _apply_event(self, event: ChangeEvent) -> bool:
        """Apply one push to the store. Returns True if the store changed."""
        if event.type == ChangeType.DELETE:
            message_id = event.record.get("id")
            return bool(message_id) and self._store.remove(message_id)
        if not event.record.get("id"):
            logger.warning("Ignoring %s push without an id", event.type.value)
            return False

        try:
            message = Message.model_validate(event.record)
        except ValidationError as e:
            logger.warning("Ignoring malformed %s push: %s", event.type.value, e)
            return False

        if event.type == ChangeType.INSERT:
            applied = self._store.apply_realtime_insert(message)
            if not applied:
                logger.debug("Ignoring duplicate push for %s", message.id)
            return applied
        self._store.apply_realtime_update(message)
        return True

    def _notify(self) -> None:
        if self._closed:
            return
        snapshot = self._store.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")
