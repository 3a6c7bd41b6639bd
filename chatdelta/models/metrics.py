"""Metrics data models."""

from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field


class MetricsSnapshot(BaseModel):
    """Point-in-time view of a ClientMetrics instance.

    ``success_rate`` is a percentage in [0, 100]; it is 0 when no request
    has been recorded. ``cache_hit_rate`` is reserved and stays 0.
    """

    requests_total: int = Field(default=0, ge=0)
    requests_successful: int = Field(default=0, ge=0)
    requests_failed: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    average_latency_ms: int = Field(default=0, ge=0)
    total_tokens_used: int = Field(default=0, ge=0)
    cache_hit_rate: float = Field(default=0.0, ge=0.0, le=100.0)


class SessionSummary(BaseModel):
    """Aggregate of a whole session plus its per-provider snapshots."""

    start_time: datetime
    duration_seconds: int = Field(default=0, ge=0)
    total_requests: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    average_latency_ms: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    provider_stats: Dict[str, MetricsSnapshot] = Field(default_factory=dict)
