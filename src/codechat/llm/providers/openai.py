"""Provider for endpoints speaking the OpenAI Chat Completions protocol.

Covers OpenAI itself and compatible hosts such as Together, selected by
base_url.
"""

from typing import Any

from openai import AsyncOpenAI

from ...config import DEFAULT_OPENAI_MODEL
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse


class OpenAIProvider(LLMProvider):
    """Chat completions through the official async OpenAI client."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """
        Args:
            api_key: Key for the endpoint
            model: Model used when a request names none
            base_url: Endpoint root; None targets api.openai.com
            organization: Optional OpenAI organization id
            **client_kwargs: Passed through to AsyncOpenAI (timeout, max_retries, ...)
        """
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Send one completion request and return the first choice."""
        params: dict[str, Any] = {
            "model": model or self._model,
            "messages": [message.to_openai() for message in messages],
            "temperature": temperature,
            **kwargs,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        completion = await self._client.chat.completions.create(**params)

        text = completion.choices[0].message.content if completion.choices else None
        return LLMResponse(
            content=text or "",
            model=completion.model,
            usage=self._usage(completion),
        )

    @staticmethod
    def _usage(completion: Any) -> dict[str, int] | None:
        if completion.usage is None:
            return None
        return {
            "prompt_tokens": completion.usage.prompt_tokens,
            "completion_tokens": completion.usage.completion_tokens,
            "total_tokens": completion.usage.total_tokens,
        }

    async def close(self) -> None:
        await self._client.close()
