"""Observability for ChatDelta.

Provides:
- Session id context stamped on every diagnostic event
- Structured logging to stderr
- Prometheus counters for provider requests
- In-process session metrics (per provider and overall)

Usage:
    from chatdelta.observability import start_session, get_logger

    start_session(config.session_id)
    logger = get_logger("fanout")
    logger.info("fanout_started", providers=3)
"""

from chatdelta.observability.context import (
    start_session,
    current_session_id,
    end_session,
)
from chatdelta.observability.logging import (
    get_logger,
    configure_logging,
    add_session_id_processor,
)
from chatdelta.observability.metrics import (
    PROVIDER_REQUESTS_TOTAL,
    PROVIDER_TOKENS_TOTAL,
    PROVIDER_RETRIES_TOTAL,
    PROVIDER_REQUEST_DURATION,
    SUMMARY_REQUESTS_TOTAL,
    get_metrics_text,
)
from chatdelta.observability.session_metrics import ClientMetrics, SessionMetrics

__all__ = [
    # Context
    "start_session",
    "current_session_id",
    "end_session",
    # Logging
    "get_logger",
    "configure_logging",
    "add_session_id_processor",
    # Prometheus
    "PROVIDER_REQUESTS_TOTAL",
    "PROVIDER_TOKENS_TOTAL",
    "PROVIDER_RETRIES_TOTAL",
    "PROVIDER_REQUEST_DURATION",
    "SUMMARY_REQUESTS_TOTAL",
    "get_metrics_text",
    # Session metrics
    "ClientMetrics",
    "SessionMetrics",
]
