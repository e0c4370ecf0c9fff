from .base import LLMProvider
from .factory import create_llm_provider
from .gateway import SYSTEM_PROMPT, ModelGateway
from .models import ChatMessage, LLMResponse
from .providers import OpenAIProvider

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "ChatMessage",
    "LLMResponse",
    "ModelGateway",
    "OpenAIProvider",
    "SYSTEM_PROMPT",
]
