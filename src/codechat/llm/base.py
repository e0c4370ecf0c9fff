"""Abstract LLM provider interface.

Hides which hosted endpoint answers chat completions and how its client is
configured. The model gateway only ever talks to this interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, LLMResponse


class LLMProvider(ABC):
    """A chat completion backend.

    Usage:
        async with create_llm_provider("together", api_key=key) as provider:
            reply = await provider.chat_completion(messages, temperature=0.4)
        # HTTP client released
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Complete a conversation.

        Args:
            messages: System prompt, earlier turns, then the new user message
            model: Override for the provider's default model
            temperature: Sampling temperature
            max_tokens: Upper bound on generated tokens (None: endpoint default)
            **kwargs: Extra sampling parameters such as top_p or penalties

        Returns:
            LLMResponse whose content may be empty
        """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model used when a request names none."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            await self.close()
        except RuntimeError as e:
            # httpx can finish closing after the loop is gone at shutdown.
            if "Event loop is closed" not in str(e):
                raise
