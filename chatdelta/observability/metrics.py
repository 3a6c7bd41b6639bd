"""Prometheus metrics definitions for ChatDelta.

Defines counters and histograms for provider traffic:
- Requests per provider and outcome
- Retries per provider
- Tokens reported by providers
- Request latency per provider
- Summary generation outcomes

Usage:
    from chatdelta.observability.metrics import record_attempt

    record_attempt(attempt)  # an AttemptRecord from the fan-out
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from chatdelta.models.interaction import AttemptRecord

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

PROVIDER_REQUESTS_TOTAL = Counter(
    name="chatdelta_provider_requests_total",
    documentation="Total provider request attempts",
    labelnames=["provider", "status"],  # gpt/gemini/claude, success/failed
    registry=REGISTRY,
)

PROVIDER_RETRIES_TOTAL = Counter(
    name="chatdelta_provider_retries_total",
    documentation="Provider attempts beyond the first",
    labelnames=["provider"],
    registry=REGISTRY,
)

PROVIDER_TOKENS_TOTAL = Counter(
    name="chatdelta_provider_tokens_total",
    documentation="Tokens reported by providers",
    labelnames=["provider"],
    registry=REGISTRY,
)

SUMMARY_REQUESTS_TOTAL = Counter(
    name="chatdelta_summary_requests_total",
    documentation="Summary generation outcomes",
    labelnames=["provider", "status"],
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

PROVIDER_REQUEST_DURATION = Histogram(
    name="chatdelta_provider_request_duration_seconds",
    documentation="Provider request attempt duration in seconds",
    labelnames=["provider"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)


def record_attempt(attempt: AttemptRecord) -> None:
    """Update the Prometheus series for one provider attempt."""
    provider = attempt.provider.value
    status = "success" if attempt.success else "failed"
    PROVIDER_REQUESTS_TOTAL.labels(provider=provider, status=status).inc()
    PROVIDER_REQUEST_DURATION.labels(provider=provider).observe(
        attempt.latency_ms / 1000
    )
    if attempt.attempt_index > 0:
        PROVIDER_RETRIES_TOTAL.labels(provider=provider).inc()
    if attempt.tokens:
        PROVIDER_TOKENS_TOTAL.labels(provider=provider).inc(attempt.tokens)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)
