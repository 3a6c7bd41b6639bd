"""Unit tests for the exception hierarchy"""

from chatdelta.services.llm.exceptions import (
    ClientInitError,
    LLMProviderError,
    ProviderTimeoutError,
    RateLimitError,
)
from chatdelta.utils.exceptions import (
    AllProvidersFailedError,
    ChatDeltaError,
    ErrorKind,
    InvalidArgumentError,
    NoProvidersError,
    OperationCancelledError,
)


class TestFatalErrors:
    """Tests for ChatDeltaError subclasses."""

    def test_kinds(self):
        assert InvalidArgumentError("x").kind == ErrorKind.INVALID_ARGUMENT
        assert NoProvidersError().kind == ErrorKind.NO_PROVIDERS
        assert AllProvidersFailedError().kind == ErrorKind.ALL_PROVIDERS_FAILED
        assert OperationCancelledError().kind == ErrorKind.CANCELLED

    def test_kind_override(self):
        error = ChatDeltaError("x", kind=ErrorKind.LOG_WRITE)
        assert error.kind == ErrorKind.LOG_WRITE

    def test_default_messages(self):
        assert "No AI clients available" in str(NoProvidersError())
        assert str(OperationCancelledError()) == "Operation cancelled"

    def test_all_failed_carries_provider_errors(self):
        error = AllProvidersFailedError(provider_errors={"gpt": "401"})
        assert error.provider_errors == {"gpt": "401"}
        assert str(error) == "No successful responses from any AI models"


class TestProviderErrors:
    """Tests for LLMProviderError subclasses."""

    def test_timeout_message_includes_deadline(self):
        assert str(ProviderTimeoutError(timeout_seconds=30)) == "Request timed out after 30s"

    def test_rate_limit_message_includes_retry_after(self):
        error = RateLimitError("slow down", retry_after=3)
        assert error.retry_after == 3
        assert "Retry after: 3s" in str(error)

    def test_generic_error_not_retryable(self):
        assert not LLMProviderError("boom").retryable
        assert not ClientInitError("bad").retryable
