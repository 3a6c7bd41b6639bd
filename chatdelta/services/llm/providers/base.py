"""Abstract LLM Provider Interface

This module defines:
- ChatMessage: one turn of a conversation
- LLMResponse: Standardized response dataclass
- LLMProvider: Abstract base class for all providers
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Optional, Sequence

from chatdelta.models.config import ClientConfig, ProviderId
from chatdelta.services.llm.exceptions import (
    LLMProviderError,
    RateLimitError,
    AuthenticationError,
    InvalidRequestError,
    ProviderUnavailableError,
    NetworkError,
    ProviderTimeoutError,
)


@dataclass
class ChatMessage:
    """One message in a conversation history."""

    role: Literal["user", "assistant"]
    content: str


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider.

    Token counts are None when the provider does not report them.

    Attributes:
        content: The generated text content
        model: The model identifier used
        provider: The provider id (gpt, gemini, claude)
        latency_ms: Request latency in milliseconds
        input_tokens: Number of input tokens consumed
        output_tokens: Number of output tokens generated
        finish_reason: Why generation stopped (stop, length, etc.)
        timestamp: When the response was received
    """

    content: str
    model: str
    provider: str
    latency_ms: float
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    finish_reason: Optional[str] = None
    timestamp: Optional[datetime] = None

    @property
    def total_tokens(self) -> Optional[int]:
        """Total tokens used, or None when unreported."""
        if self.input_tokens is None and self.output_tokens is None:
            return None
        return (self.input_tokens or 0) + (self.output_tokens or 0)


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    The fan-out executor depends only on ``provider_id``, ``display_name``
    and ``generate``. Chat mode additionally uses ``converse``.

    Implementations:
        - OpenAIProvider: GPT models
        - GoogleProvider: Gemini models
        - AnthropicProvider: Claude models
    """

    # Error patterns for classification, extended by subclasses
    AUTH_PATTERNS: Sequence[str] = (
        "authentication",
        "unauthorized",
        "api key",
        "api_key",
        "permission denied",
    )

    RATE_LIMIT_PATTERNS: Sequence[str] = (
        "rate limit",
        "rate_limit",
        "ratelimit",
        "too many requests",
        "quota exceeded",
    )

    INVALID_REQUEST_PATTERNS: Sequence[str] = (
        "invalid_request",
        "bad request",
        "model not found",
        "context length",
    )

    SERVER_ERROR_PATTERNS: Sequence[str] = (
        "internal server",
        "server error",
        "overloaded",
        "service unavailable",
        "bad gateway",
    )

    TIMEOUT_PATTERNS: Sequence[str] = ("timed out", "timeout")

    NETWORK_PATTERNS: Sequence[str] = (
        "connection",
        "network",
        "name resolution",
        "unreachable",
    )

    def __init__(self, model: str, config: ClientConfig):
        self._model = model
        self._config = config

    @property
    @abstractmethod
    def provider_id(self) -> ProviderId:
        """Stable provider token."""
        pass  # pragma: no cover - abstract method, always overridden

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-facing provider name (e.g., 'ChatGPT')."""
        pass  # pragma: no cover - abstract method, always overridden

    @property
    def model(self) -> str:
        """Current model identifier."""
        return self._model

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def generate(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> LLMResponse:
        """Send a single prompt.

        Args:
            prompt: The input prompt
            system_prompt: Optional system instruction

        Returns:
            LLMResponse with generated content and metadata

        Raises:
            LLMProviderError: Base class for all provider errors
        """
        return await self.converse(
            [ChatMessage(role="user", content=prompt)], system_prompt=system_prompt
        )

    @abstractmethod
    async def converse(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Send a conversation history and return the next reply.

        Args:
            messages: Prior turns, ending with the user message to answer
            system_prompt: Optional system instruction

        Returns:
            LLMResponse with generated content and metadata

        Raises:
            RateLimitError: When rate limit is exceeded
            AuthenticationError: When API key is invalid
            InvalidRequestError: When the request is rejected
            ProviderUnavailableError: When provider is temporarily down
            NetworkError: When the provider cannot be reached
            ProviderTimeoutError: When the SDK reports a timeout
        """
        pass  # pragma: no cover - abstract method, always overridden

    def _classify_error(self, error: Exception) -> LLMProviderError:
        """Classify an SDK exception into the provider error hierarchy."""
        if isinstance(error, LLMProviderError):
            return error

        name = self.provider_id.value
        message = str(error) or type(error).__name__
        error_str = message.lower()
        status = self._extract_status(error)

        if status in (401, 403) or self._matches(error_str, self.AUTH_PATTERNS):
            return AuthenticationError(message, provider=name)

        if status == 429 or self._matches(error_str, self.RATE_LIMIT_PATTERNS):
            return RateLimitError(
                message, retry_after=self._extract_retry_after(error), provider=name
            )

        if status in (400, 404, 422) or self._matches(
            error_str, self.INVALID_REQUEST_PATTERNS
        ):
            return InvalidRequestError(message, provider=name)

        if (status is not None and status >= 500) or self._matches(
            error_str, self.SERVER_ERROR_PATTERNS
        ):
            return ProviderUnavailableError(message, provider=name)

        if self._matches(error_str, self.TIMEOUT_PATTERNS):
            return ProviderTimeoutError(message, provider=name)

        if self._matches(error_str, self.NETWORK_PATTERNS):
            return NetworkError(message, provider=name)

        return LLMProviderError(message, provider=name)

    @staticmethod
    def _matches(error_str: str, patterns: Sequence[str]) -> bool:
        return any(pattern in error_str for pattern in patterns)

    @staticmethod
    def _extract_status(error: Exception) -> Optional[int]:
        """HTTP status from SDK exceptions (``status_code`` or ``code``)."""
        for attr in ("status_code", "code"):
            value = getattr(error, attr, None)
            if isinstance(value, int):
                return value
        return None

    @staticmethod
    def _extract_retry_after(error: Exception) -> Optional[float]:
        """Extract retry-after value from error if available."""
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None)
        if headers is not None:
            retry_after = headers.get("Retry-After")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    return None
        return None
