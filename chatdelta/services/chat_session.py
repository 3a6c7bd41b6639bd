"""Single-provider chat session.

A ChatSession owns its provider client and conversation history. Each
turn sends the whole history through the executor, so the per-attempt
timeout and retry policy of the fan-out applies to every turn. Clearing a
conversation means building a new session with a new client.
"""

from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from chatdelta.models.chat import ChatTurn, ConversationHistory
from chatdelta.models.interaction import ProviderOutcome, utc_now
from chatdelta.orchestration.fanout import FanOutExecutor
from chatdelta.services.llm.providers.base import ChatMessage, LLMProvider
from chatdelta.utils.exceptions import InvalidArgumentError

logger = structlog.get_logger()


class ChatSession:
    """Conversation with one provider."""

    def __init__(
        self,
        client: LLMProvider,
        executor: FanOutExecutor,
        system_prompt: Optional[str] = None,
        history: Optional[ConversationHistory] = None,
    ):
        """Initialize the session.

        Args:
            client: Provider client owned by this session
            executor: Executor applying timeout and retries per turn
            system_prompt: System instruction; overrides the one in history
            history: Prior conversation to continue
        """
        self.client = client
        self.executor = executor
        self.history = history or ConversationHistory()
        if system_prompt is not None:
            self.history.system_prompt = system_prompt
        self.history.provider = client.provider_id.value
        self.history.model = client.model

    @property
    def display_name(self) -> str:
        return self.client.display_name

    @property
    def system_prompt(self) -> Optional[str]:
        return self.history.system_prompt

    def __len__(self) -> int:
        return len(self.history.messages)

    async def send(self, text: str) -> ProviderOutcome:
        """Send a user message and record the reply in the history.

        A failed turn leaves the history unchanged.
        """
        turns = self.history.messages + [ChatTurn(role="user", content=text)]
        outcome = await self.executor.converse(
            self.client,
            [ChatMessage(role=t.role, content=t.content) for t in turns],
            system_prompt=self.history.system_prompt,
        )
        self.executor.record(outcome.attempts)

        if outcome.reply is not None:
            turns.append(ChatTurn(role="assistant", content=outcome.reply.text))
            self.history.messages = turns
            self.history.updated_at = utc_now()

        logger.debug(
            "chat_turn_completed",
            provider=self.client.provider_id.value,
            success=outcome.ok,
            history_length=len(self.history.messages),
        )
        return outcome

    def save(self, path: Path) -> None:
        """Write the history as JSON, replacing any existing file.

        Raises:
            OSError: If the file cannot be written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.history.model_dump_json(indent=2), encoding="utf-8")
        logger.info("conversation_saved", path=str(path), messages=len(self))

    @staticmethod
    def load_history(path: Path) -> ConversationHistory:
        """Read a history saved by ``save``.

        Raises:
            InvalidArgumentError: If the file is missing or malformed
        """
        try:
            content = Path(path).read_text(encoding="utf-8")
            return ConversationHistory.model_validate_json(content)
        except (OSError, ValidationError) as e:
            raise InvalidArgumentError(
                f"Failed to load conversation from {path}: {e}"
            )
