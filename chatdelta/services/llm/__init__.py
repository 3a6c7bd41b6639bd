"""LLM provider clients.

This package provides:
- LLMProvider: the capability every provider client implements
- Provider implementations (OpenAI, Gemini, Anthropic)
- The provider exception hierarchy

Usage:
    from chatdelta.services.llm import LLMProvider, LLMProviderError
"""

from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse
from chatdelta.services.llm.exceptions import (
    LLMProviderError,
    RateLimitError,
    AuthenticationError,
    InvalidRequestError,
    ProviderUnavailableError,
    NetworkError,
    ProviderTimeoutError,
    ClientInitError,
)

__all__ = [
    # Provider abstractions
    "ChatMessage",
    "LLMProvider",
    "LLMResponse",
    # Exceptions
    "LLMProviderError",
    "RateLimitError",
    "AuthenticationError",
    "InvalidRequestError",
    "ProviderUnavailableError",
    "NetworkError",
    "ProviderTimeoutError",
    "ClientInitError",
]
