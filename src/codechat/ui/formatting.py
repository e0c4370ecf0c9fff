"""Text formatting utilities for rendering messages.

Hides how a message becomes Rich renderables: prose as markdown, each code
block highlighted in its declared language, in order.
"""

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from ..chat.models import DeliveryState, Message, MessageRole
from ..parsing.models import CodeBlock

SYNTAX_THEME = "monokai"

_DELIVERY_LABELS = {
    DeliveryState.PENDING: "sending...",
    DeliveryState.FAILED: "not saved",
}


def message_body(message: Message) -> str:
    """Prose to show for a message.

    Assistant messages with parsed code show the explanation, since the code
    is rendered separately. Everything else shows the raw content.
    """
    if message.role == MessageRole.ASSISTANT and message.code_blocks is not None:
        return message.explanation or ""
    return message.content


def delivery_label(message: Message) -> str | None:
    """Short status for messages that are not durably saved."""
    return _DELIVERY_LABELS.get(message.delivery)


def message_header(message: Message) -> Text:
    """Role, time and delivery status line."""
    who = "You" if message.role == MessageRole.USER else "Assistant"
    style = "bold yellow" if message.role == MessageRole.USER else "bold green"
    header = Text(f"{who} ", style=style)
    header.append(f"[{message.created_at.astimezone():%H:%M:%S}]", style="dim")
    label = delivery_label(message)
    if label:
        header.append(f" ({label})", style="red" if message.delivery == DeliveryState.FAILED else "dim")
    return header


def render_code_block(block: CodeBlock, index: int | None = None) -> Panel:
    """Highlight one code block in a titled panel."""
    syntax = Syntax(
        block.code,
        block.language,
        theme=SYNTAX_THEME,
        line_numbers=True,
        word_wrap=True,
    )
    title = block.language if index is None else f"[{index}] {block.language}"
    return Panel(syntax, title=title, title_align="left", border_style="cyan")


def render_message(message: Message) -> RenderableType:
    """Render a message: header, prose, then code blocks in order."""
    parts: list[RenderableType] = [message_header(message)]
    body = message_body(message)
    if body:
        if message.role == MessageRole.ASSISTANT:
            parts.append(Markdown(body))
        else:
            parts.append(Text(body))
    if message.image_ref is not None:
        parts.append(Text(f"[image] {message.image_ref.name}", style="dim"))
    for index, block in enumerate(message.code_blocks or [], 1):
        parts.append(render_code_block(block, index))
    return Group(*parts)
