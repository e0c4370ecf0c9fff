from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """Represents a chat message sent to a model."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")
    image_url: str | None = Field(
        default=None,
        description="Optional image attached to a user message"
    )

    def to_openai(self) -> dict[str, Any]:
        """Convert to the OpenAI chat message format.

        Messages with an image use the multi-part content format.
        """
        if self.image_url is None:
            return {"role": self.role, "content": self.content}

        parts: list[dict[str, Any]] = []
        if self.content:
            parts.append({"type": "text", "text": self.content})
        parts.append({"type": "image_url", "image_url": {"url": self.image_url}})
        return {"role": self.role, "content": parts}


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )
