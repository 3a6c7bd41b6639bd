"""Interactive chat mode.

Talks to one provider, chosen in dispatch order among the selected and
credentialed providers. Commands (case-insensitive): ``exit``/``quit``
end the session, ``clear`` starts over with a new client, ``save``
writes the history when ``--save-conversation`` is set.
"""

import asyncio
from typing import Callable, Optional

import structlog
import typer

from chatdelta.cli.utils import Console
from chatdelta.models.chat import ConversationHistory
from chatdelta.models.config import Config
from chatdelta.observability.session_metrics import SessionMetrics
from chatdelta.orchestration.fanout import FanOutExecutor
from chatdelta.services.chat_session import ChatSession
from chatdelta.services.llm.exceptions import ClientInitError
from chatdelta.services.llm.providers.base import LLMProvider
from chatdelta.services.registry import PROVIDER_ORDER, ProviderRegistry
from chatdelta.utils.exceptions import ChatDeltaError, NoProvidersError

logger = structlog.get_logger()

EXIT_COMMANDS = ("exit", "quit")
CHAT_PROMPT = "> "


def select_chat_client(
    config: Config, registry: ProviderRegistry, console: Console
) -> LLMProvider:
    """Build a client for the first usable provider.

    Raises:
        NoProvidersError: If no provider is selected and credentialed
    """
    for provider in PROVIDER_ORDER:
        if not config.should_use(provider):
            continue
        key = registry.credential(provider)
        if key is None:
            continue
        try:
            return registry.factory(
                provider, key, config.models.for_provider(provider), config.client
            )
        except ClientInitError as e:
            console.warn(
                f"Warning: Failed to create {registry.display_name(provider)} "
                f"client: {e}"
            )
    raise NoProvidersError()


def _load_history(config: Config, console: Console) -> Optional[ConversationHistory]:
    if config.load_conversation is None:
        return None
    try:
        history = ChatSession.load_history(config.load_conversation)
    except ChatDeltaError as e:
        console.warn(f"Warning: {e}")
        return None
    console.success(
        f"✓ Loaded {len(history.messages)} messages from {config.load_conversation}"
    )
    return history


def _save(session: ChatSession, config: Config, console: Console) -> None:
    if config.save_conversation is None:
        return
    try:
        session.save(config.save_conversation)
    except OSError as e:
        console.warn(
            f"Warning: Failed to save conversation to {config.save_conversation}: {e}"
        )
        return
    console.success(f"✓ Conversation saved to {config.save_conversation}")


async def run_chat(
    config: Config,
    registry: ProviderRegistry,
    console: Console,
    metrics: Optional[SessionMetrics] = None,
    read_line: Callable[[str], str] = input,
) -> None:
    """Run the chat loop until exit, quit or end of input."""
    executor = FanOutExecutor(config.client, metrics=metrics)

    def new_session(history: Optional[ConversationHistory] = None) -> ChatSession:
        return ChatSession(
            select_chat_client(config, registry, console),
            executor,
            system_prompt=config.system_prompt,
            history=history,
        )

    session = new_session(_load_history(config, console))
    console.info(
        f"Chatting with {session.display_name} ({session.client.model}). "
        "Type 'exit' to quit, 'clear' to start over, 'save' to save."
    )

    async def send(text: str) -> None:
        outcome = await session.send(text)
        if outcome.reply is not None:
            typer.echo(f"{outcome.reply.text}\n")
        elif outcome.failure is not None:
            console.failure(
                f"✗ {outcome.provider.value} error: {outcome.failure.message}"
            )

    if config.prompt:
        await send(config.prompt)

    while True:
        try:
            line = await asyncio.to_thread(read_line, CHAT_PROMPT)
        except EOFError:
            break

        text = line.strip()
        if not text:
            continue
        command = text.lower()
        if command in EXIT_COMMANDS:
            break
        if command == "clear":
            session = new_session()
            console.success("✓ Conversation cleared")
            continue
        if command == "save":
            _save(session, config, console)
            continue

        await send(text)

    logger.info("chat_ended", messages=len(session))
    _save(session, config, console)
