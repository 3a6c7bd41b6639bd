"""Session context shared by every log event of an invocation.

The CLI starts a session once, after options are validated. The id lives
in a ContextVar, so fan-out tasks created afterwards inherit it and the
logging processor can stamp it on each event. Interaction records carry
the same id.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

_session_id: ContextVar[Optional[str]] = ContextVar("chatdelta_session_id", default=None)


def new_session_id() -> str:
    return str(uuid.uuid4())


def start_session(session_id: Optional[str] = None) -> str:
    """Install ``session_id`` (or a fresh UUID) for the current context."""
    session_id = session_id or new_session_id()
    _session_id.set(session_id)
    return session_id


def current_session_id() -> Optional[str]:
    return _session_id.get()


def end_session() -> None:
    _session_id.set(None)

