"""Anthropic (Claude) Provider Implementation"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from chatdelta.models.config import ClientConfig, ProviderId
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse

logger = structlog.get_logger()


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider implementation.

    Supports Claude 3.5 Sonnet and other Claude models.
    """

    AUTH_PATTERNS = LLMProvider.AUTH_PATTERNS + ("x-api-key",)
    SERVER_ERROR_PATTERNS = LLMProvider.SERVER_ERROR_PATTERNS + ("overloaded_error",)

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        config: Optional[ClientConfig] = None,
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Model identifier (default: claude-3-5-sonnet-20241022)
            config: Call settings (timeout, max tokens, temperature)

        Raises:
            ClientInitError: If anthropic package is not installed
        """
        super().__init__(model, config or ClientConfig())
        self._client: Any = None

        try:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(
                api_key=api_key,
                timeout=self._config.timeout_seconds,
                max_retries=0,
            )
        except ImportError:
            raise ClientInitError(
                "anthropic package not installed. Run: pip install anthropic",
                provider=ProviderId.CLAUDE.value,
            )

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.CLAUDE

    @property
    def display_name(self) -> str:
        return "Claude"

    async def converse(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate the next reply using the messages API."""
        start_time = time.time()

        kwargs: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._config.max_tokens,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if self._config.temperature is not None:
            # Anthropic accepts [0, 1]
            kwargs["temperature"] = min(self._config.temperature, 1.0)

        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as e:
            raise self._classify_error(e)

        latency_ms = (time.time() - start_time) * 1000

        # Extract content
        content = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )

        usage = getattr(response, "usage", None)
        llm_response = LLMResponse(
            content=content,
            model=self._model,
            provider=self.provider_id.value,
            latency_ms=latency_ms,
            input_tokens=getattr(usage, "input_tokens", None) if usage else None,
            output_tokens=getattr(usage, "output_tokens", None) if usage else None,
            finish_reason=getattr(response, "stop_reason", None),
            timestamp=datetime.now(timezone.utc),
        )

        logger.debug(
            "anthropic_generate_success",
            model=self._model,
            input_tokens=llm_response.input_tokens,
            output_tokens=llm_response.output_tokens,
            latency_ms=latency_ms,
        )
        return llm_response
