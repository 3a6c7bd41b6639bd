"""LLM Provider Exception Hierarchy

Structured exception types for provider call failures:
- LLMProviderError: Base class for all provider errors
- RateLimitError: Rate limit exceeded (retryable with backoff)
- ProviderUnavailableError: 5xx / overloaded (retryable)
- NetworkError: Connection-level failure (retryable)
- ProviderTimeoutError: Attempt exceeded its deadline (retryable)
- AuthenticationError: Invalid API credentials (not retryable)
- InvalidRequestError: Request rejected as malformed (not retryable)
- ClientInitError: Client could not be constructed
"""

from typing import Optional

from chatdelta.utils.exceptions import ErrorKind, RETRYABLE_KINDS


class LLMProviderError(Exception):
    """Base exception for all LLM provider errors.

    All provider-specific errors inherit from this class,
    enabling consistent error handling across providers.
    """

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


class RateLimitError(LLMProviderError):
    """Raised when provider rate limit is exceeded.

    This is a retryable error - the caller should wait for
    retry_after seconds before retrying.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"{message}. Retry after: {retry_after}s" if retry_after else message,
            provider=provider,
        )


class AuthenticationError(LLMProviderError):
    """Raised when API authentication fails.

    This is NOT retryable - the API key is invalid or revoked.
    """

    kind = ErrorKind.AUTH

    def __init__(
        self,
        message: str = "API authentication failed",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class InvalidRequestError(LLMProviderError):
    """Raised when the provider rejects the request itself.

    This is NOT retryable - bad model name, context too long, etc.
    """

    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(
        self,
        message: str = "Invalid request",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class ProviderUnavailableError(LLMProviderError):
    """Raised when provider is temporarily unavailable.

    This is a retryable error - the provider may recover.
    Includes server errors (500, 502, 503, 504).
    """

    kind = ErrorKind.SERVER_ERROR

    def __init__(
        self,
        message: str = "Provider temporarily unavailable",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class NetworkError(LLMProviderError):
    """Raised when the provider could not be reached."""

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str = "Network error",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)


class ProviderTimeoutError(LLMProviderError):
    """Raised when a single attempt exceeds the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
        provider: Optional[str] = None,
    ):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"{message} after {timeout_seconds:g}s" if timeout_seconds else message,
            provider=provider,
        )


class ClientInitError(LLMProviderError):
    """Raised when a provider client cannot be constructed."""

    kind = ErrorKind.CLIENT_INIT
