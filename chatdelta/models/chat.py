"""Chat conversation models."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from chatdelta.models.interaction import utc_now


class ChatTurn(BaseModel):
    """One message of a conversation."""

    role: Literal["user", "assistant"]
    content: str


class ConversationHistory(BaseModel):
    """Serializable chat history.

    Saved as JSON by ``--save-conversation`` and read back by
    ``--load-conversation``.
    """

    system_prompt: Optional[str] = None
    messages: List[ChatTurn] = Field(default_factory=list)
    provider: Optional[str] = None
    model: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
