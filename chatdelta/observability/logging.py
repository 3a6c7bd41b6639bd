"""Diagnostic logging for the CLI.

structlog writes to stderr, leaving stdout for rendered results. Each
event is stamped with the session id and its level. The console renderer
is used unless ``CHATDELTA_LOG_JSON`` asks for one JSON object per line.

The CLI maps its verbosity flags to a level with ``level_for``:

    configure_logging(level=level_for(verbose, quiet))
    logger = get_logger("fanout")
    logger.info("fanout_started", providers=3)
"""

import logging
import os
import sys
from typing import Any, List, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from chatdelta.observability.context import current_session_id

LOG_LEVEL_ENV = "CHATDELTA_LOG_LEVEL"
LOG_JSON_ENV = "CHATDELTA_LOG_JSON"
NO_SESSION = "none"


def add_session_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Stamp ``session_id`` on the event, ``"none"`` outside a session."""
    event_dict["session_id"] = current_session_id() or NO_SESSION
    return event_dict


def level_for(verbose: bool = False, quiet: bool = False) -> str:
    """Pick the diagnostic log level for the CLI verbosity flags.

    ``CHATDELTA_LOG_LEVEL`` overrides the flags.
    """
    override = os.environ.get(LOG_LEVEL_ENV)
    if override:
        return override.upper()
    if verbose:
        return "DEBUG"
    if quiet:
        return "CRITICAL"
    return "ERROR"


def _json_requested() -> bool:
    return os.environ.get(LOG_JSON_ENV, "").lower() in ("1", "true", "yes")


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger; test runners swap it
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(
    level: str = "ERROR",
    json_output: Optional[bool] = None,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for one invocation.

    Args:
        level: Minimum level name; unknown names fall back to ERROR
        json_output: JSON lines instead of console output. None reads
            ``CHATDELTA_LOG_JSON``.
        add_timestamp: Add an ISO timestamp to each event
    """
    if json_output is None:
        json_output = _json_requested()

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_session_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors.append(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.ERROR)
        ),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def get_logger(component: Optional[str] = None, **initial_context: Any) -> Any:
    """Logger bound to ``component`` and any extra context."""
    logger = structlog.get_logger()
    if component:
        initial_context["component"] = component
    return logger.bind(**initial_context) if initial_context else logger

