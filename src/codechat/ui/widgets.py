"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Input history management
- Chat message rendering (prose, code blocks, delivery status)
- Per-block copy and fullscreen actions
"""

from rich.syntax import Syntax
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message as TextualMessage
from textual.widgets import Button, Markdown, Static, TextArea

from ..chat.models import DeliveryState, Message, MessageRole
from ..parsing.models import CodeBlock
from .formatting import SYNTAX_THEME, message_body, message_header
from .screens import CodeViewerScreen


class CodeBlockView(Vertical):
    """One highlighted code block with Copy and Fullscreen buttons."""

    def __init__(self, block: CodeBlock, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._block = block
        self.border_title = block.language

    @property
    def block(self) -> CodeBlock:
        return self._block

    def compose(self):
        with Horizontal(classes="code-toolbar"):
            yield Button("Copy", classes="code-copy", variant="primary")
            yield Button("Fullscreen", classes="code-fullscreen")
        yield Static(
            Syntax(self._block.code, self._block.language, theme=SYNTAX_THEME, word_wrap=True),
            classes="code-body",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.has_class("code-copy"):
            self.app.copy_to_clipboard(self._block.code)
            self.app.notify("Code copied", timeout=2)
        elif event.button.has_class("code-fullscreen"):
            self.app.push_screen(CodeViewerScreen(self._block))


class MessageView(Vertical):
    """A single chat message: header, prose, then its code blocks in order."""

    def __init__(self, message: Message, *args, **kwargs) -> None:
        classes = "user-message" if message.role == MessageRole.USER else "assistant-message"
        if message.delivery == DeliveryState.FAILED:
            classes += " failed"
        super().__init__(*args, classes=classes, **kwargs)
        self._message = message

    def compose(self):
        yield Static(message_header(self._message), classes="message-header")
        body = message_body(self._message)
        if body:
            if self._message.role == MessageRole.ASSISTANT:
                yield Markdown(body, classes="message-content")
            else:
                yield Static(body, classes="message-content", markup=False)
        if self._message.image_ref is not None:
            yield Static(f"[image] {self._message.image_ref.name}", classes="message-header", markup=False)
        for block in self._message.code_blocks or []:
            yield CodeBlockView(block)


class ChatHistoryWidget(VerticalScroll):
    """Scrollable chat history that re-renders from store snapshots."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "Conversation history"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._messages: tuple[Message, ...] = ()
        self._rendered_keys: tuple[tuple[str, str, str], ...] = ()

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    def show_snapshot(self, messages: tuple[Message, ...]) -> None:
        """Replace the rendered history with an ordered snapshot."""
        keys = tuple((m.id, m.delivery.value, m.content) for m in messages)
        self._messages = messages
        if keys == self._rendered_keys:
            return
        self._rendered_keys = keys

        self.remove_children()
        if messages:
            self.mount_all(MessageView(m) for m in messages)
        self.border_subtitle = f"{len(messages)} messages" if messages else "Conversation history"
        self.call_after_refresh(self.scroll_end, animate=False)

    def show_notice(self, text: str) -> None:
        """Replace the history with a single line of text."""
        self._messages = ()
        self._rendered_keys = ()
        self.remove_children()
        self.mount(Static(text, classes="message-header", markup=False))

    def last_code_block(self) -> CodeBlock | None:
        """Most recent code block produced by the assistant."""
        for message in reversed(self._messages):
            if message.role == MessageRole.ASSISTANT and message.code_blocks:
                return message.code_blocks[-1]
        return None


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button."""

    class Submitted(TextualMessage):
        """Posted when the user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Send message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.highlight_cursor_line = False
        text_area.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            event.stop()
            self._submit()

    def on_key(self, event) -> None:
        # Terminals do not report modifiers with Enter, so ctrl+j submits.
        if event.key == "ctrl+j":
            self._submit()
        elif event.key == "up" and self._cursor_at_start():
            self._navigate_history(-1)
        elif event.key == "down" and self._cursor_at_end():
            self._navigate_history(1)
        else:
            return
        event.prevent_default()
        event.stop()

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable input while a turn is running."""
        self.query_one("#chat-input", TextArea).disabled = not enabled
        self.query_one("#send-btn", Button).disabled = not enabled
        self.set_class(not enabled, "-disabled")
        if enabled:
            self.focus_input()

    def focus_input(self) -> None:
        self.query_one("#chat-input", TextArea).focus()

    def _cursor_at_start(self) -> bool:
        return self.query_one("#chat-input", TextArea).cursor_location == (0, 0)

    def _cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        elif self._history_index != -1 and self._history_index < len(self._history) - 1:
            self._history_index += 1
        else:
            self._history_index = -1
            text_area.text = ""
            return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if not value:
            return
        if not self._history or self._history[-1] != value:
            self._history.append(value)
        self._history_index = -1
        text_area.text = ""
        self.post_message(self.Submitted(value))
