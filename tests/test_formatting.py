"""Tests for message rendering."""
from rich.console import Console

from codechat.chat import DeliveryState, ImageRef, Message, MessageRole
from codechat.parsing import CodeBlock
from codechat.ui.formatting import delivery_label, message_body, render_message


def render(message: Message) -> str:
    console = Console(record=True, width=100, color_system=None)
    console.print(render_message(message))
    return console.export_text()


def assistant_reply() -> Message:
    return Message(
        session_id="s1",
        role=MessageRole.ASSISTANT,
        content="Try:\n```python\nprint('hi')\n```",
        code_blocks=[CodeBlock(language="python", code="print('hi')")],
        explanation="Try:",
    )


class TestMessageBody:
    """Tests for the prose shown per message."""

    def test_assistant_with_code_shows_explanation(self):
        assert message_body(assistant_reply()) == "Try:"

    def test_assistant_code_only(self):
        reply = assistant_reply().model_copy(update={"explanation": ""})

        assert message_body(reply) == ""

    def test_user_message_shows_content(self):
        message = Message(session_id="s1", role=MessageRole.USER, content="```not parsed```")

        assert message_body(message) == "```not parsed```"

    def test_unparsed_assistant_shows_content(self):
        message = Message(session_id="s1", role=MessageRole.ASSISTANT, content="plain")

        assert message_body(message) == "plain"


class TestDeliveryLabel:
    """Tests for delivery status labels."""

    def test_saved_has_no_label(self):
        assert delivery_label(assistant_reply()) is None

    def test_pending_and_failed(self):
        reply = assistant_reply()

        assert delivery_label(reply.model_copy(update={"delivery": DeliveryState.PENDING})) == "sending..."
        assert delivery_label(reply.model_copy(update={"delivery": DeliveryState.FAILED})) == "not saved"


class TestRenderMessage:
    """Tests for the full Rich rendering."""

    def test_renders_prose_and_code(self):
        text = render(assistant_reply())

        assert "Assistant" in text
        assert "Try:" in text
        assert "print('hi')" in text
        assert "python" in text

    def test_renders_failed_user_message(self):
        message = Message(
            session_id="s1",
            role=MessageRole.USER,
            content="unsaved question",
            image_ref=ImageRef(url="https://example.com/c.png", name="c.png"),
            delivery=DeliveryState.FAILED,
        )

        text = render(message)

        assert "You" in text
        assert "unsaved question" in text
        assert "not saved" in text
        assert "c.png" in text
