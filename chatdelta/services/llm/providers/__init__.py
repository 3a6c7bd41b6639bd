"""LLM Provider Implementations

This module provides the abstract provider interface and concrete implementations:
- LLMProvider: Abstract base class defining the provider contract
- OpenAIProvider: GPT models (gpt-4o, etc.)
- GoogleProvider: Gemini models (Gemini 1.5 Pro, etc.)
- AnthropicProvider: Claude models (Claude 3.5 Sonnet, etc.)
"""

from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse
from chatdelta.services.llm.providers.openai import OpenAIProvider
from chatdelta.services.llm.providers.google import GoogleProvider
from chatdelta.services.llm.providers.anthropic import AnthropicProvider

__all__ = [
    "ChatMessage",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "GoogleProvider",
    "AnthropicProvider",
]
