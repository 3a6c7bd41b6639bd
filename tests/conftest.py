"""Shared fixtures: in-memory providers and registries."""

import asyncio
from typing import Callable, Dict, List, Optional, Sequence, Union

import pytest

from chatdelta.models.config import ClientConfig, ProviderId
from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider, LLMResponse
from chatdelta.services.registry import PROVIDER_TABLE, ProviderRegistry

ScriptItem = Union[str, Exception]

ALL_KEYS = {
    "OPENAI_API_KEY": "sk-test-openai",
    "GEMINI_API_KEY": "test-gemini",
    "ANTHROPIC_API_KEY": "sk-ant-test",
}


class FakeProvider(LLMProvider):
    """Scripted provider.

    Each call consumes the next script item; the last item repeats. A
    string is returned as the reply, an exception is raised.
    """

    def __init__(
        self,
        provider_id: ProviderId,
        script: Sequence[ScriptItem] = ("ok",),
        model: str = "fake-model",
        config: Optional[ClientConfig] = None,
        delay: float = 0.0,
        tokens: Optional[int] = None,
    ):
        super().__init__(model, config or ClientConfig())
        self._provider_id = provider_id
        self.script: List[ScriptItem] = list(script)
        self.delay = delay
        self.tokens = tokens
        self.calls = 0
        self.received: List[List[ChatMessage]] = []
        self.system_prompts: List[Optional[str]] = []

    @property
    def provider_id(self) -> ProviderId:
        return self._provider_id

    @property
    def display_name(self) -> str:
        return PROVIDER_TABLE[self._provider_id].display_name

    async def converse(self, messages, system_prompt=None) -> LLMResponse:
        self.calls += 1
        self.received.append(list(messages))
        self.system_prompts.append(system_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.script[min(self.calls, len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        return LLMResponse(
            content=item,
            model=self.model,
            provider=self._provider_id.value,
            latency_ms=self.delay * 1000,
            output_tokens=self.tokens,
        )


class FakeFactories:
    """Registry factories that build FakeProviders and remember them."""

    def __init__(
        self,
        scripts: Optional[Dict[ProviderId, Sequence[ScriptItem]]] = None,
        delay: float = 0.0,
        tokens: Optional[int] = None,
    ):
        self.scripts = scripts or {}
        self.delay = delay
        self.tokens = tokens
        self.built: Dict[ProviderId, List[FakeProvider]] = {}

    def for_provider(self, provider: ProviderId) -> Callable:
        def factory(api_key: str, model: str, config: ClientConfig) -> FakeProvider:
            client = FakeProvider(
                provider,
                script=self.scripts.get(provider, (f"{provider.value} reply",)),
                model=model,
                config=config,
                delay=self.delay,
                tokens=self.tokens,
            )
            self.built.setdefault(provider, []).append(client)
            return client

        return factory

    def all(self) -> Dict[ProviderId, Callable]:
        return {provider: self.for_provider(provider) for provider in ProviderId}

    def calls(self, provider: ProviderId) -> int:
        return sum(client.calls for client in self.built.get(provider, []))


@pytest.fixture
def make_provider():
    """Factory fixture for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def fake_factories():
    """Factory fixture for FakeFactories."""
    return FakeFactories


@pytest.fixture
def make_registry():
    """Build a registry over an explicit environment and fake factories."""

    def _make(environ=None, factories: Optional[FakeFactories] = None):
        return ProviderRegistry(
            environ=ALL_KEYS if environ is None else environ,
            factories=factories.all() if factories is not None else None,
        )

    return _make
