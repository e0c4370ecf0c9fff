"""AI gateway used by the chat pipeline.

Hides how a user turn becomes a model request: the system prompt, the
shape of prior context, image attachment, and sampling parameters. The
pipeline only sees `generate()`, which returns raw assistant text or raises
ModelCallFailed.
"""

import logging
from typing import Any

from ..chat.errors import ModelCallFailed
from ..chat.models import ImageRef
from ..config import (
    DEFAULT_FREQUENCY_PENALTY,
    DEFAULT_MAX_TOKENS,
    DEFAULT_PRESENCE_PENALTY,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
)
from .base import LLMProvider
from .models import ChatMessage

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert programming assistant proficient in all programming languages. "
    "For each code example, please specify the language and provide clear explanations. "
    "Format your response with '```language' at the start of each code block."
)

EXAMPLES_PROMPT = (
    "Generate examples of clean code following best practices "
    "in multiple programming languages."
)

CONTEXT_ROLES = ("user", "assistant")


class ModelGateway:
    """Forward a prompt plus prior context to an LLM provider.

    Any provider failure, and any reply without content, surfaces as a
    single error kind: ModelCallFailed.
    """

    def __init__(
        self,
        provider: LLMProvider,
        system_prompt: str = SYSTEM_PROMPT,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int | None = DEFAULT_MAX_TOKENS,
        **sampling: Any
    ):
        self._provider = provider
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._sampling: dict[str, Any] = {
            "top_p": DEFAULT_TOP_P,
            "frequency_penalty": DEFAULT_FREQUENCY_PENALTY,
            "presence_penalty": DEFAULT_PRESENCE_PENALTY,
            **sampling,
        }

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    def build_messages(
        self,
        message: str,
        context: list[dict[str, str]] | None = None,
        image_ref: ImageRef | None = None,
    ) -> list[ChatMessage]:
        """Assemble system prompt, prior context and the new user message."""
        messages = [ChatMessage(role="system", content=self._system_prompt)]
        for item in context or []:
            role = item.get("role")
            if role not in CONTEXT_ROLES:
                continue
            messages.append(ChatMessage(role=role, content=item.get("content", "")))
        messages.append(ChatMessage(
            role="user",
            content=message,
            image_url=image_ref.url if image_ref else None,
        ))
        return messages

    async def generate(
        self,
        message: str,
        context: list[dict[str, str]] | None = None,
        image_ref: ImageRef | None = None,
    ) -> str:
        """Get the assistant's raw reply for one user turn.

        Args:
            message: The user's text
            context: Prior messages as role/content pairs, oldest first
            image_ref: Optional image attached to the user's message

        Returns:
            Raw assistant text

        Raises:
            ModelCallFailed: If the provider fails or returns no content
        """
        if not message and image_ref is None:
            raise ModelCallFailed("Message is required")

        messages = self.build_messages(message, context, image_ref)
        try:
            response = await self._provider.chat_completion(
                messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                **self._sampling,
            )
        except Exception as e:
            logger.warning("Model call failed: %s", e)
            raise ModelCallFailed(f"Failed to get AI response: {e}") from e

        if not response.content:
            raise ModelCallFailed("No response content received from API")

        logger.debug("Model %s replied with %d characters", response.model, len(response.content))
        return response.content

    async def generate_examples(self) -> str:
        """Ask for clean-code examples in several languages."""
        return await self.generate(EXAMPLES_PROMPT)

    async def close(self) -> None:
        await self._provider.close()
