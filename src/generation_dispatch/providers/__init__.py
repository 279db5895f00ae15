"""Provider adapter exports."""

from .anthropic import AnthropicProvider
from .base import BaseProvider, CompletionCall
from .ollama import OllamaProvider
from .openai import OpenAIChatProvider

__all__ = [
    "AnthropicProvider",
    "BaseProvider",
    "CompletionCall",
    "OllamaProvider",
    "OpenAIChatProvider",
]
