"""Provider registry.

Maps each provider id to its credential environment variable, default
model, display name and client factory. This is the only module that
reads credentials from the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Type

import structlog
from dotenv import load_dotenv

from chatdelta.models.config import ClientConfig, DEFAULT_MODELS, PlanEntry, ProviderId
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.anthropic import AnthropicProvider
from chatdelta.services.llm.providers.base import LLMProvider
from chatdelta.services.llm.providers.google import GoogleProvider
from chatdelta.services.llm.providers.openai import OpenAIProvider
from chatdelta.utils.exceptions import NoProvidersError

logger = structlog.get_logger()

# (api_key, model, config) -> client
ClientFactory = Callable[[str, str, ClientConfig], LLMProvider]


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of a provider."""

    provider_id: ProviderId
    env_var: str
    default_model: str
    factory_name: str
    display_name: str
    client_class: Type[LLMProvider]
    known_models: Tuple[str, ...] = field(default_factory=tuple)


PROVIDER_TABLE: Dict[ProviderId, ProviderSpec] = {
    ProviderId.GPT: ProviderSpec(
        provider_id=ProviderId.GPT,
        env_var="OPENAI_API_KEY",
        default_model=DEFAULT_MODELS[ProviderId.GPT],
        factory_name="openai",
        display_name="ChatGPT",
        client_class=OpenAIProvider,
        known_models=("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"),
    ),
    ProviderId.GEMINI: ProviderSpec(
        provider_id=ProviderId.GEMINI,
        env_var="GEMINI_API_KEY",
        default_model=DEFAULT_MODELS[ProviderId.GEMINI],
        factory_name="gemini",
        display_name="Gemini",
        client_class=GoogleProvider,
        known_models=(
            "gemini-1.5-pro-latest",
            "gemini-1.5-flash-latest",
            "gemini-pro",
        ),
    ),
    ProviderId.CLAUDE: ProviderSpec(
        provider_id=ProviderId.CLAUDE,
        env_var="ANTHROPIC_API_KEY",
        default_model=DEFAULT_MODELS[ProviderId.CLAUDE],
        factory_name="claude",
        display_name="Claude",
        client_class=AnthropicProvider,
        known_models=(
            "claude-3-5-sonnet-20241022",
            "claude-3-haiku-20240307",
            "claude-3-opus-20240229",
        ),
    ),
}

# Dispatch and display order
PROVIDER_ORDER: List[ProviderId] = [ProviderId.GPT, ProviderId.GEMINI, ProviderId.CLAUDE]

# Preference order when choosing a summarizer
SUMMARIZER_PREFERENCE: List[ProviderId] = [
    ProviderId.GEMINI,
    ProviderId.CLAUDE,
    ProviderId.GPT,
]

_FACTORY_NAMES: Dict[str, ProviderId] = {
    spec.factory_name: pid for pid, spec in PROVIDER_TABLE.items()
}


def create_client(
    name: str, api_key: str, model: str, config: ClientConfig
) -> LLMProvider:
    """Construct a provider client by factory name.

    Args:
        name: Factory name ("openai", "gemini", "claude")
        api_key: Provider API key
        model: Model identifier
        config: Call settings; each client gets its own copy

    Returns:
        LLMProvider instance

    Raises:
        ClientInitError: If the name is unknown or construction fails
    """
    provider_id = _FACTORY_NAMES.get(name)
    if provider_id is None:
        raise ClientInitError(f"Unknown provider: {name}")
    spec = PROVIDER_TABLE[provider_id]
    try:
        return spec.client_class(
            api_key=api_key, model=model, config=config.model_copy()
        )
    except ClientInitError:
        raise
    except Exception as e:
        raise ClientInitError(str(e), provider=provider_id.value)


class ProviderRegistry:
    """Credential lookup and client construction for all providers.

    The environment is captured once at construction; concurrent tasks
    never read it.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        factories: Optional[Dict[ProviderId, ClientFactory]] = None,
    ):
        """Initialize the registry.

        Args:
            environ: Environment to read credentials from. When None, a
                ``.env`` file is loaded and ``os.environ`` is captured.
            factories: Optional per-provider factory overrides
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        self._environ: Dict[str, str] = dict(environ)
        self._factories: Dict[ProviderId, ClientFactory] = dict(factories or {})

    @staticmethod
    def spec(provider: ProviderId) -> ProviderSpec:
        return PROVIDER_TABLE[provider]

    @staticmethod
    def display_name(provider: ProviderId) -> str:
        return PROVIDER_TABLE[provider].display_name

    @staticmethod
    def env_var(provider: ProviderId) -> str:
        return PROVIDER_TABLE[provider].env_var

    def credential(self, provider: ProviderId) -> Optional[str]:
        """API key for a provider, or None when unset or empty."""
        value = self._environ.get(PROVIDER_TABLE[provider].env_var)
        return value or None

    def factory(
        self,
        provider: ProviderId,
        api_key: str,
        model: str,
        config: ClientConfig,
    ) -> LLMProvider:
        """Build a client for a provider.

        Raises:
            ClientInitError: If construction fails
        """
        override = self._factories.get(provider)
        if override is None:
            return create_client(
                PROVIDER_TABLE[provider].factory_name, api_key, model, config
            )
        try:
            return override(api_key, model, config.model_copy())
        except ClientInitError:
            raise
        except Exception as e:
            raise ClientInitError(str(e), provider=provider.value)

    def create_clients(
        self,
        plan: List[PlanEntry],
        config: ClientConfig,
        warn: Optional[Callable[[str], None]] = None,
    ) -> List[LLMProvider]:
        """Instantiate the clients of a plan, in plan order.

        A factory failure is a warning; the provider is dropped.

        Raises:
            NoProvidersError: If no client could be built
        """
        clients: List[LLMProvider] = []
        for entry in plan:
            try:
                clients.append(
                    self.factory(
                        entry.provider,
                        entry.credential.get_secret_value(),
                        entry.model,
                        config,
                    )
                )
            except ClientInitError as e:
                logger.warning(
                    "client_init_failed", provider=entry.provider.value, error=str(e)
                )
                if warn is not None:
                    warn(
                        f"Warning: Failed to create "
                        f"{self.display_name(entry.provider)} client: {e}"
                    )

        if not clients:
            raise NoProvidersError()
        return clients
