"""Terminal UI module for codechat.

Provides Rich renderers for messages and a Textual TUI for live chat.

Module structure (each module hides a design decision):
- formatting.py: How a message becomes Rich renderables
- widgets.py: Custom widgets (message views, code blocks, input history)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palette
- screens.py: Modal dialogs (fullscreen code, confirmation)
- app.py: Application orchestration (user interaction flow)
"""

from .app import ChatTextualApp, run_textual_tui
from .formatting import delivery_label, message_body, render_code_block, render_message
from .widgets import ChatHistoryWidget, ChatInputBar, CodeBlockView, MessageView

__all__ = [
    "ChatHistoryWidget",
    "ChatInputBar",
    "ChatTextualApp",
    "CodeBlockView",
    "MessageView",
    "delivery_label",
    "message_body",
    "render_code_block",
    "render_message",
    "run_textual_tui",
]
