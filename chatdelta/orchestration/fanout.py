"""Concurrent provider fan-out.

Sends one prompt to N provider clients at once and collects the outcomes
at a barrier:
- every call runs as its own asyncio task, so wall time tracks the
  slowest call rather than the sum
- each attempt has its own timeout; transient failures are retried with
  the configured backoff
- per-provider failures are captured as FailureRecords, never raised
- outcomes come back in dispatch order regardless of completion order
- cancelling the caller cancels every in-flight call
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Sequence

import structlog

from chatdelta.models.config import ClientConfig
from chatdelta.models.interaction import (
    AttemptRecord,
    FailureRecord,
    FanOutResult,
    ProviderOutcome,
    Reply,
    utc_now,
)
from chatdelta.observability.metrics import record_attempt
from chatdelta.observability.session_metrics import SessionMetrics
from chatdelta.services.llm.exceptions import LLMProviderError
from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse
from chatdelta.utils.exceptions import AllProvidersFailedError
from chatdelta.utils.retry import RetryHandler

logger = structlog.get_logger()

OutcomeCallback = Callable[[ProviderOutcome], None]
ProviderCall = Callable[[LLMProvider], Awaitable[LLMResponse]]


class FanOutExecutor:
    """Runs provider calls concurrently with timeout and retries.

    The executor is generic over LLMProvider: it only uses
    ``provider_id``, ``display_name``, ``model`` and the send methods.
    """

    def __init__(
        self,
        config: ClientConfig,
        metrics: Optional[SessionMetrics] = None,
        on_complete: Optional[OutcomeCallback] = None,
    ):
        """Initialize the executor.

        Args:
            config: Timeout, retry count and backoff for every call
            metrics: Session metrics to merge attempt records into
            on_complete: Called as each provider finishes (completion order)
        """
        self.config = config
        self.metrics = metrics
        self.retry_handler = RetryHandler(config)
        self._on_complete = on_complete

    async def execute(
        self, clients: Sequence[LLMProvider], prompt: str
    ) -> FanOutResult:
        """Send ``prompt`` to every client concurrently.

        Args:
            clients: Constructed provider clients, in dispatch order
            prompt: Prompt sent unchanged to each client

        Returns:
            FanOutResult whose outcomes align index-for-index with clients
        """
        started_at = utc_now()
        start = time.monotonic()

        logger.info(
            "fanout_started",
            providers=[c.provider_id.value for c in clients],
            timeout_seconds=self.config.timeout_seconds,
            retries=self.config.retries,
        )

        # gather() preserves argument order and cancels children if cancelled
        outcomes: List[ProviderOutcome] = list(
            await asyncio.gather(
                *(self._dispatch(client, prompt) for client in clients)
            )
        )

        result = FanOutResult(
            prompt=prompt,
            outcomes=outcomes,
            elapsed_ms=(time.monotonic() - start) * 1000,
            started_at=started_at,
        )

        self.record(result.attempts)

        logger.info(
            "fanout_completed",
            successes=len(result.replies),
            failures=len(result.failures),
            elapsed_ms=round(result.elapsed_ms),
        )
        return result

    async def call(
        self,
        client: LLMProvider,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> ProviderOutcome:
        """Single provider call with the same timeout and retry policy."""
        return await self._run(
            client, lambda c: c.generate(prompt, system_prompt=system_prompt)
        )

    async def converse(
        self,
        client: LLMProvider,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
    ) -> ProviderOutcome:
        """Send a conversation history with the same timeout and retry policy."""
        return await self._run(
            client, lambda c: c.converse(messages, system_prompt=system_prompt)
        )

    def record(self, attempts: List[AttemptRecord]) -> None:
        """Merge attempt records into Prometheus and the session metrics."""
        for attempt in attempts:
            record_attempt(attempt)
        if self.metrics is not None:
            self.metrics.record_attempts(attempts)

    async def _dispatch(self, client: LLMProvider, prompt: str) -> ProviderOutcome:
        outcome = await self._run(client, lambda c: c.generate(prompt))
        if self._on_complete is not None:
            self._on_complete(outcome)
        return outcome

    async def _run(self, client: LLMProvider, send: ProviderCall) -> ProviderOutcome:
        """Run one provider call to completion; never raises provider errors."""
        provider = client.provider_id
        attempts: List[AttemptRecord] = []

        def on_attempt(
            index: int,
            response: Optional[LLMResponse],
            error: Optional[Exception],
            latency_ms: float,
        ) -> None:
            attempts.append(
                AttemptRecord(
                    provider=provider,
                    attempt_index=index,
                    success=error is None,
                    latency_ms=latency_ms,
                    tokens=response.total_tokens if response is not None else None,
                    error_kind=getattr(error, "kind", None),
                    error_message=str(error) if error is not None else None,
                )
            )

        async def attempt() -> LLMResponse:
            try:
                return await send(client)
            except (LLMProviderError, asyncio.TimeoutError):
                raise
            except Exception as e:
                raise LLMProviderError(
                    str(e) or type(e).__name__, provider=provider.value
                ) from e

        start = time.monotonic()
        try:
            response = await self.retry_handler.execute(attempt, on_attempt=on_attempt)
        except LLMProviderError as e:
            failure = FailureRecord(
                provider=provider,
                display_name=client.display_name,
                kind=e.kind,
                message=str(e),
                attempts=max(len(attempts), 1),
                latency_ms=(time.monotonic() - start) * 1000,
            )
            logger.warning(
                "provider_failed",
                provider=provider.value,
                error_kind=e.kind.value,
                error=str(e),
                attempts=failure.attempts,
            )
            return ProviderOutcome(
                provider=provider,
                display_name=client.display_name,
                failure=failure,
                attempts=attempts,
            )

        reply = Reply(
            provider=provider,
            display_name=client.display_name,
            model=client.model,
            text=response.content,
            latency_ms=(time.monotonic() - start) * 1000,
            tokens=response.total_tokens,
        )
        logger.debug(
            "provider_succeeded",
            provider=provider.value,
            attempts=len(attempts),
            latency_ms=round(reply.latency_ms),
        )
        return ProviderOutcome(
            provider=provider,
            display_name=client.display_name,
            reply=reply,
            attempts=attempts,
        )


def ensure_success(result: FanOutResult) -> None:
    """Raise when no provider produced a reply.

    Raises:
        AllProvidersFailedError: With each provider's final error
    """
    if result.replies:
        return
    raise AllProvidersFailedError(
        provider_errors={f.provider.value: f.message for f in result.failures}
    )
