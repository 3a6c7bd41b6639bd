"""Exception hierarchy for ChatDelta.

Every error carries an ``ErrorKind`` so that callers can decide whether a
failure is fatal, a warning, or retryable without inspecting types:

- Fatal errors (invalid arguments, no providers, all providers failed,
  log write failure, cancellation) inherit from ChatDeltaError and end
  the invocation with exit code 1.
- Per-provider errors live in ``chatdelta.services.llm.exceptions`` and are
  captured by the fan-out executor instead of propagating.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorKind(str, Enum):
    """Kinds of error, independent of exception type."""

    INVALID_ARGUMENT = "invalid_argument"
    MISSING_CREDENTIAL = "missing_credential"
    CLIENT_INIT = "client_init"
    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    PROVIDER_ERROR = "provider_error"
    NO_PROVIDERS = "no_providers"
    ALL_PROVIDERS_FAILED = "all_providers_failed"
    SUMMARY_FAILURE = "summary_failure"
    LOG_WRITE = "log_write"
    CANCELLED = "cancelled"


# Kinds worth another attempt after a delay.
RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK,
        ErrorKind.RATE_LIMITED,
        ErrorKind.SERVER_ERROR,
    }
)


class ChatDeltaError(Exception):
    """Base exception for errors that end the invocation.

    Use this to catch any fatal error in a single except block:
    ```python
    try:
        run(options)
    except ChatDeltaError as e:
        typer.secho(f"Error: {e}", err=True)
    ```
    """

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class InvalidArgumentError(ChatDeltaError):
    """Options failed validation.

    The message is a single human-readable line.
    """

    kind = ErrorKind.INVALID_ARGUMENT


class NoProvidersError(ChatDeltaError):
    """No provider survived selection, credential lookup and construction."""

    kind = ErrorKind.NO_PROVIDERS

    def __init__(
        self,
        message: str = (
            "No AI clients available. "
            "Check your API keys and --only/--exclude settings."
        ),
    ):
        super().__init__(message)


class AllProvidersFailedError(ChatDeltaError):
    """Every dispatched provider failed.

    Attributes:
        provider_errors: Mapping of provider id to its final error message
    """

    kind = ErrorKind.ALL_PROVIDERS_FAILED

    def __init__(
        self,
        message: str = "No successful responses from any AI models",
        provider_errors: Optional[Dict[str, str]] = None,
    ):
        self.provider_errors = provider_errors or {}
        super().__init__(message)


class LogWriteError(ChatDeltaError):
    """Writing the interaction log failed.

    Reported only after all other output has been emitted.
    """

    kind = ErrorKind.LOG_WRITE


class OperationCancelledError(ChatDeltaError):
    """The invocation was interrupted by the user."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)
