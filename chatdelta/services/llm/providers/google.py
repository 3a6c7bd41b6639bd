"""Google (Gemini) Provider Implementation"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from chatdelta.models.config import ClientConfig, ProviderId
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse

logger = structlog.get_logger()


class GoogleProvider(LLMProvider):
    """Google Gemini provider implementation.

    Supports Gemini 1.5 Pro and other Gemini models.
    """

    RATE_LIMIT_PATTERNS = LLMProvider.RATE_LIMIT_PATTERNS + ("resource_exhausted",)
    SERVER_ERROR_PATTERNS = LLMProvider.SERVER_ERROR_PATTERNS + ("unavailable",)
    INVALID_REQUEST_PATTERNS = LLMProvider.INVALID_REQUEST_PATTERNS + (
        "invalid_argument",
        "safety",
        "blocked",
    )

    # Gemini names the assistant role "model"
    ROLE_MAP = {"user": "user", "assistant": "model"}

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-pro-latest",
        config: Optional[ClientConfig] = None,
    ):
        """Initialize Google provider.

        Args:
            api_key: Gemini API key
            model: Model identifier (default: gemini-1.5-pro-latest)
            config: Call settings (timeout, max tokens, temperature)

        Raises:
            ClientInitError: If google-genai package is not installed
        """
        super().__init__(model, config or ClientConfig())
        self._client: Any = None

        try:
            from google import genai

            self._client = genai.Client(api_key=api_key)
        except ImportError:
            raise ClientInitError(
                "google-genai package not installed. Run: pip install google-genai",
                provider=ProviderId.GEMINI.value,
            )

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.GEMINI

    @property
    def display_name(self) -> str:
        return "Gemini"

    async def converse(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate the next reply using Gemini."""
        start_time = time.time()

        contents: List[Dict[str, Any]] = [
            {"role": self.ROLE_MAP[m.role], "parts": [{"text": m.content}]}
            for m in messages
        ]

        try:
            from google.genai import types

            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=types.GenerateContentConfig(
                    temperature=self._config.temperature,
                    max_output_tokens=self._config.max_tokens,
                    system_instruction=system_prompt,
                ),
            )
        except Exception as e:
            raise self._classify_error(e)

        latency_ms = (time.time() - start_time) * 1000

        # Extract content
        content = getattr(response, "text", None) or ""

        # Extract token counts from usage_metadata
        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) if usage else None
        output_tokens = (
            getattr(usage, "candidates_token_count", None) if usage else None
        )

        llm_response = LLMResponse(
            content=content,
            model=self._model,
            provider=self.provider_id.value,
            latency_ms=latency_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=self._get_finish_reason(response),
            timestamp=datetime.now(timezone.utc),
        )

        logger.debug(
            "google_generate_success",
            model=self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
        )
        return llm_response

    def _get_finish_reason(self, response: Any) -> Optional[str]:
        """Extract finish reason from response."""
        candidates = getattr(response, "candidates", None)
        if candidates:
            reason = getattr(candidates[0], "finish_reason", None)
            if reason is not None:
                return str(reason)
        return None
