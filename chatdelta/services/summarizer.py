"""Summary generation over collected replies.

The summarizer is a single provider call (not a fan-out) whose prompt is
synthesized from the original prompt and the successful replies, in
dispatch order. It runs under the same timeout and retry settings as the
fan-out. Failures never fail the invocation.
"""

import time
from typing import List, Optional, Sequence

import structlog

from chatdelta.models.config import Config, ModelSettings, ProviderId
from chatdelta.models.interaction import Reply, SummaryOutcome
from chatdelta.observability.metrics import SUMMARY_REQUESTS_TOTAL
from chatdelta.orchestration.fanout import FanOutExecutor
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.base import LLMProvider
from chatdelta.services.registry import SUMMARIZER_PREFERENCE, ProviderRegistry

logger = structlog.get_logger()

SUMMARY_SYSTEM_PROMPT = (
    "You compare answers written by different AI assistants. "
    "Be concise and neutral."
)

SUMMARY_PROMPT_TEMPLATE = """The following question was sent to several AI models:

{prompt}

Their responses are below.

{responses}

Summarize the responses. Point out where the models agree, where they \
differ or contradict each other, and connect their key insights into one \
coherent answer."""


def should_summarize(config: Config, replies: Sequence[Reply]) -> bool:
    """Summaries run unless disabled, and only for two or more replies."""
    return not config.no_summary and len(replies) >= 2


def build_summary_prompt(prompt: str, replies: Sequence[Reply]) -> str:
    """Build the meta-prompt from successful replies in dispatch order."""
    sections = "\n\n".join(
        f"=== {reply.display_name} ===\n{reply.text}" for reply in replies
    )
    return SUMMARY_PROMPT_TEMPLATE.format(prompt=prompt, responses=sections)


class Summarizer:
    """Selects a summary provider and asks it to compare replies."""

    def __init__(
        self,
        registry: ProviderRegistry,
        models: ModelSettings,
        executor: FanOutExecutor,
        preference: Optional[List[ProviderId]] = None,
    ):
        """Initialize the summarizer.

        Args:
            registry: Credential lookup and client construction
            models: Model to use for each provider
            executor: Executor whose timeout and retry policy applies
            preference: Provider preference order
        """
        self.registry = registry
        self.models = models
        self.executor = executor
        self.preference = preference or list(SUMMARIZER_PREFERENCE)

    def select_client(self) -> Optional[LLMProvider]:
        """First preferred provider with a credential and a working factory."""
        for provider in self.preference:
            key = self.registry.credential(provider)
            if key is None:
                continue
            try:
                return self.registry.factory(
                    provider,
                    key,
                    self.models.for_provider(provider),
                    self.executor.config,
                )
            except ClientInitError as e:
                logger.warning(
                    "summarizer_init_failed", provider=provider.value, error=str(e)
                )
        return None

    async def summarize(
        self,
        prompt: str,
        replies: Sequence[Reply],
        client: Optional[LLMProvider] = None,
    ) -> Optional[SummaryOutcome]:
        """Generate a summary of the replies.

        Args:
            prompt: The original prompt
            replies: Successful replies in dispatch order
            client: Summary client; selected by preference when None

        Returns:
            SummaryOutcome, or None when no summarizer is available
        """
        if client is None:
            client = self.select_client()
        if client is None:
            logger.info("summary_skipped", reason="no_summarizer_available")
            return None

        provider = client.provider_id.value
        logger.debug("summary_started", provider=provider, replies=len(replies))

        start = time.monotonic()
        outcome = await self.executor.call(
            client,
            build_summary_prompt(prompt, replies),
            system_prompt=SUMMARY_SYSTEM_PROMPT,
        )
        latency_ms = (time.monotonic() - start) * 1000
        self.executor.record(outcome.attempts)

        if outcome.reply is not None:
            SUMMARY_REQUESTS_TOTAL.labels(provider=provider, status="success").inc()
            return SummaryOutcome(
                provider=client.provider_id,
                display_name=client.display_name,
                text=outcome.reply.text,
                latency_ms=latency_ms,
                attempts=outcome.attempts,
            )

        SUMMARY_REQUESTS_TOTAL.labels(provider=provider, status="failed").inc()
        message = outcome.failure.message if outcome.failure else "unknown error"
        logger.warning("summary_failed", provider=provider, error=message)
        return SummaryOutcome(
            provider=client.provider_id,
            display_name=client.display_name,
            latency_ms=latency_ms,
            error=message,
            attempts=outcome.attempts,
        )
