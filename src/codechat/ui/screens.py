"""Modal screens for the TUI.

This module hides the design decisions about:
- Fullscreen code viewing (layout, copy action, dismissal)
- Confirmation dialog appearance for destructive actions
"""

from rich.syntax import Syntax
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from ..parsing.models import CodeBlock
from .formatting import SYNTAX_THEME


class CodeViewerScreen(ModalScreen[None]):
    """Fullscreen view of a single code block."""

    CSS = """
    CodeViewerScreen {
        align: center middle;
        background: $background 80%;
    }

    #code-viewer {
        width: 95%;
        height: 90%;
        border: tall $secondary;
        background: $surface;
        padding: 0 1;
    }

    #code-viewer-toolbar {
        height: 1;
        align: right middle;
    }

    #code-viewer-toolbar Static {
        width: 1fr;
        color: $secondary;
        text-style: bold;
    }

    #code-viewer-toolbar Button {
        height: 1;
        min-width: 8;
        border: none;
        margin: 0 0 0 1;
    }

    #code-viewer-body {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("c", "copy", "Copy"),
    ]

    def __init__(self, block: CodeBlock) -> None:
        super().__init__()
        self._block = block

    def compose(self) -> ComposeResult:
        with Vertical(id="code-viewer"):
            with Horizontal(id="code-viewer-toolbar"):
                yield Static(self._block.language)
                yield Button("Copy", id="viewer-copy", variant="primary")
                yield Button("Close", id="viewer-close", variant="error")
            with VerticalScroll(id="code-viewer-body"):
                yield Static(Syntax(
                    self._block.code,
                    self._block.language,
                    theme=SYNTAX_THEME,
                    line_numbers=True,
                    word_wrap=True,
                ))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "viewer-copy":
            self.action_copy()
        elif event.button.id == "viewer-close":
            self.action_close()

    def action_copy(self) -> None:
        self.app.copy_to_clipboard(self._block.code)
        self.app.notify("Code copied", timeout=2)

    def action_close(self) -> None:
        self.dismiss(None)


class ConfirmationScreen(ModalScreen[bool]):
    """Yes/No dialog for destructive actions."""

    CSS = """
    ConfirmationScreen {
        align: center middle;
        background: $background 70%;
    }

    #confirmation-dialog {
        width: 60;
        height: auto;
        border: tall $error;
        background: $surface;
        padding: 1 2;
    }

    #confirmation-prompt {
        width: 100%;
        text-align: center;
        padding: 1 0;
    }

    #confirmation-buttons {
        width: 100%;
        height: 3;
        align: center middle;
    }

    #confirmation-buttons Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    def __init__(self, prompt: str) -> None:
        super().__init__()
        self._prompt = prompt

    def compose(self) -> ComposeResult:
        with Vertical(id="confirmation-dialog"):
            yield Static(self._prompt, id="confirmation-prompt")
            with Horizontal(id="confirmation-buttons"):
                yield Button("Yes", id="btn-yes", variant="error")
                yield Button("No", id="btn-no", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "btn-yes")

    def action_answer(self, answer: bool) -> None:
        self.dismiss(answer)
