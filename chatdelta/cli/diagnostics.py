"""Informational modes: model listing and connection tests."""

import typer

from chatdelta.models.config import Config
from chatdelta.orchestration.fanout import FanOutExecutor
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.base import LLMProvider
from chatdelta.services.registry import PROVIDER_ORDER, ProviderRegistry
from chatdelta.utils.exceptions import ChatDeltaError

TEST_PROMPT = "Hello, please respond with just 'OK' to confirm you're working."

MODEL_LABELS = {
    "gpt": "OpenAI",
    "gemini": "Gemini",
    "claude": "Claude",
}


def print_available_models() -> None:
    """Print the known models of every provider."""
    typer.echo("Available models:")
    for provider in PROVIDER_ORDER:
        spec = ProviderRegistry.spec(provider)
        typer.echo(f"  {MODEL_LABELS[provider.value]}: {', '.join(spec.known_models)}")


async def test_connections(config: Config, registry: ProviderRegistry) -> None:
    """Send a health-check prompt to every selected provider.

    Checks run concurrently without retries.

    Raises:
        ChatDeltaError: If any provider is unconfigured or failed
    """
    typer.echo("Testing API connections...")
    client_config = config.client.model_copy(update={"retries": 0})

    all_passed = True
    clients: list[LLMProvider] = []
    for provider in PROVIDER_ORDER:
        if not config.should_use(provider):
            continue
        name = registry.display_name(provider)
        key = registry.credential(provider)
        if key is None:
            typer.echo(f"✗ {name}: {registry.env_var(provider)} not set")
            all_passed = False
            continue
        try:
            clients.append(
                registry.factory(
                    provider, key, config.models.for_provider(provider), client_config
                )
            )
        except ClientInitError as e:
            typer.echo(f"✗ {name} client creation failed: {e}")
            all_passed = False

    if clients:
        result = await FanOutExecutor(client_config).execute(clients, TEST_PROMPT)
        for outcome in result.outcomes:
            if outcome.failure is None:
                typer.echo(f"✓ {outcome.display_name} connection successful")
            else:
                typer.echo(
                    f"✗ {outcome.display_name} connection failed: "
                    f"{outcome.failure.message}"
                )
                all_passed = False

    if not all_passed:
        raise ChatDeltaError("Some API connections failed")
    typer.echo("\n✓ All API connections working properly")
