"""Main Textual TUI application.

Orchestrates the UI components and drives one SessionSyncController per open
chat: every snapshot it publishes is re-rendered, and user input becomes a
turn.
"""

import asyncio
import logging

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header

from ..chat import (
    ChatError,
    Message,
    SessionDirectory,
    SessionNotFound,
    SessionSyncController,
)
from ..chat.sync import AIGateway
from ..persistence import ChatRepository
from ..realtime import RealtimeBus
from .screens import CodeViewerScreen, ConfirmationScreen
from .styles import APP_CSS
from .themes import CODECHAT_DARK
from .widgets import ChatHistoryWidget, ChatInputBar

logger = logging.getLogger(__name__)


class ChatTextualApp(App):
    """Textual TUI for a coding-assistant chat session."""

    CSS = APP_CSS
    TITLE = "codechat"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+y", "copy_code", "Copy Code"),
        Binding("ctrl+f", "fullscreen_code", "Fullscreen"),
        Binding("ctrl+r", "retry_failed", "Retry"),
        Binding("ctrl+n", "new_chat", "New Chat"),
        Binding("ctrl+d", "delete_chat", "Delete Chat"),
    ]

    def __init__(
        self,
        directory: SessionDirectory,
        repository: ChatRepository,
        gateway: AIGateway,
        bus: RealtimeBus | None = None,
        session_id: str | None = None,
        model_name: str = "",
    ) -> None:
        super().__init__()
        self._directory = directory
        self._repository = repository
        self._gateway = gateway
        self._bus = bus
        self._session_id = session_id
        self._model_name = model_name
        self._controller: SessionSyncController | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ChatHistoryWidget(id="chat-history")
        with Vertical(id="bottom-bar"):
            yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.register_theme(CODECHAT_DARK)
        self.theme = "codechat-dark"
        self._open_session(self._session_id)

    async def on_unmount(self) -> None:
        """Release the session subscription when the app exits."""
        await self._close_controller()

    @property
    def controller(self) -> SessionSyncController | None:
        return self._controller

    @work(exclusive=True, group="session")
    async def _open_session(self, session_id: str | None) -> None:
        """Open (or start) a chat and render it."""
        input_bar = self.query_one("#chat-input-bar", ChatInputBar)
        await self._close_controller()

        try:
            if session_id is None:
                session_id = (await self._directory.start_chat()).id
            controller = SessionSyncController(
                session_id,
                self._repository,
                self._gateway,
                bus=self._bus,
            )
            controller.add_listener(self._on_snapshot)
            self._controller = controller
            await controller.open()
        except SessionNotFound as e:
            self._show_missing(e.session_id)
            return
        except ChatError as e:
            logger.error("Could not open chat: %s", e)
            self.notify(f"Could not open chat: {e}", severity="error", timeout=5)
            return

        self._session_id = session_id
        self._update_subtitle()
        input_bar.set_enabled(True)

    def _on_snapshot(self, messages: tuple[Message, ...]) -> None:
        controller = self._controller
        if controller is not None and controller.not_found:
            self._show_missing(controller.session_id)
            return
        self.query_one("#chat-history", ChatHistoryWidget).show_snapshot(messages)

    def _show_missing(self, session_id: str) -> None:
        self.query_one("#chat-history", ChatHistoryWidget).show_notice(
            f"Chat {session_id} not found. Press Ctrl+N to start a new one."
        )
        self.query_one("#chat-input-bar", ChatInputBar).set_enabled(False)
        self.sub_title = "chat not found"

    def _update_subtitle(self) -> None:
        session = self._controller.session if self._controller else None
        parts = [session.title if session else "", self._model_name]
        self.sub_title = " | ".join(p for p in parts if p)

    async def _close_controller(self) -> None:
        controller, self._controller = self._controller, None
        if controller is not None:
            await controller.close()

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        if self._controller is None or self._controller.closed:
            self.notify("No open chat", severity="warning", timeout=2)
            return
        self._run_turn(self._controller, event.value)

    @work(group="turn")
    async def _run_turn(self, controller: SessionSyncController, text: str) -> None:
        """Send one message as a background worker."""
        input_bar = self.query_one("#chat-input-bar", ChatInputBar)
        input_bar.set_enabled(False)
        try:
            result = await controller.send(text)
        except ChatError as e:
            self.notify(str(e), severity="error", timeout=5)
            return
        except asyncio.CancelledError:
            self.notify("Cancelled", severity="warning", timeout=2)
            raise
        finally:
            if not controller.closed and not controller.not_found:
                input_bar.set_enabled(True)

        if result is not None and not result.ok:
            self.notify(f"Error: {str(result.error)[:80]}", severity="error", timeout=5)
        self._update_subtitle()

    def action_copy_code(self) -> None:
        """Copy the latest code block to the clipboard."""
        block = self.query_one("#chat-history", ChatHistoryWidget).last_code_block()
        if block is None:
            self.notify("No code to copy", severity="warning")
            return
        self.copy_to_clipboard(block.code)
        self.notify("Code copied", timeout=2)

    def action_fullscreen_code(self) -> None:
        """Show the latest code block fullscreen."""
        block = self.query_one("#chat-history", ChatHistoryWidget).last_code_block()
        if block is None:
            self.notify("No code to show", severity="warning")
            return
        self.push_screen(CodeViewerScreen(block))

    def action_new_chat(self) -> None:
        self._open_session(None)

    @work(group="turn")
    async def action_retry_failed(self) -> None:
        """Retry saving messages whose write failed."""
        controller = self._controller
        if controller is None or controller.closed:
            return
        if not controller.store.failed():
            self.notify("Nothing to retry", timeout=2)
            return
        confirmed = await controller.retry_failed()
        self.notify(f"Saved {len(confirmed)} message(s)", timeout=3)

    def action_delete_chat(self) -> None:
        """Delete the open chat after confirmation."""
        if self._controller is None or self._controller.closed:
            return

        def on_answer(confirmed: bool | None) -> None:
            if confirmed:
                self._delete_chat()

        self.push_screen(ConfirmationScreen("Delete this chat and all its messages?"), on_answer)

    @work(exclusive=True, group="session")
    async def _delete_chat(self) -> None:
        controller, self._controller = self._controller, None
        if controller is None:
            return
        try:
            await controller.delete_session()
        except ChatError as e:
            self._controller = controller
            self.notify(f"Could not delete chat: {e}", severity="error", timeout=5)
            return
        self.notify("Chat deleted", timeout=2)
        self._open_session(None)


async def run_textual_tui(
    directory: SessionDirectory,
    repository: ChatRepository,
    gateway: AIGateway,
    bus: RealtimeBus | None = None,
    session_id: str | None = None,
    model_name: str = "",
) -> None:
    """Run the Textual TUI.

    Args:
        directory: The user's session directory
        repository: Connected chat repository
        gateway: Model gateway for replies
        bus: Real-time bus shared with the repository
        session_id: Chat to open, or None to start a new one
        model_name: Shown in the subtitle
    """
    app = ChatTextualApp(
        directory=directory,
        repository=repository,
        gateway=gateway,
        bus=bus,
        session_id=session_id,
        model_name=model_name,
    )
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        await app._close_controller()
