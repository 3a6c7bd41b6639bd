"""OpenAI (GPT) Provider Implementation"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from chatdelta.models.config import ClientConfig, ProviderId
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse

logger = structlog.get_logger()


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider (gpt-4o and friends)."""

    RATE_LIMIT_PATTERNS = LLMProvider.RATE_LIMIT_PATTERNS + ("insufficient_quota",)

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        config: Optional[ClientConfig] = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model identifier (default: gpt-4o)
            config: Call settings (timeout, max tokens, temperature)

        Raises:
            ClientInitError: If the openai package is not installed
        """
        super().__init__(model, config or ClientConfig())
        self._client: Any = None

        try:
            from openai import AsyncOpenAI

            # Retries are driven by the fan-out executor, not the SDK
            self._client = AsyncOpenAI(
                api_key=api_key,
                timeout=self._config.timeout_seconds,
                max_retries=0,
            )
        except ImportError:
            raise ClientInitError(
                "openai package not installed. Run: pip install openai",
                provider=ProviderId.GPT.value,
            )

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.GPT

    @property
    def display_name(self) -> str:
        return "ChatGPT"

    async def converse(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate the next reply with the chat completions API."""
        start_time = time.time()

        payload: List[Dict[str, str]] = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        payload.extend({"role": m.role, "content": m.content} for m in messages)

        kwargs: Dict[str, Any] = {
            "model": self._model,
            "messages": payload,
            "max_tokens": self._config.max_tokens,
        }
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            raise self._classify_error(e)

        latency_ms = (time.time() - start_time) * 1000
        choice = response.choices[0] if response.choices else None
        content = (choice.message.content or "") if choice else ""

        usage = getattr(response, "usage", None)
        llm_response = LLMResponse(
            content=content,
            model=self._model,
            provider=self.provider_id.value,
            latency_ms=latency_ms,
            input_tokens=getattr(usage, "prompt_tokens", None) if usage else None,
            output_tokens=getattr(usage, "completion_tokens", None) if usage else None,
            finish_reason=getattr(choice, "finish_reason", None) if choice else None,
            timestamp=datetime.now(timezone.utc),
        )

        logger.debug(
            "openai_generate_success",
            model=self._model,
            total_tokens=llm_response.total_tokens,
            latency_ms=latency_ms,
        )
        return llm_response
