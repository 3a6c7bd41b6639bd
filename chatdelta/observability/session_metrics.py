"""Session metrics aggregation.

ClientMetrics counts requests for one provider (or the whole session);
SessionMetrics keeps one ClientMetrics per provider plus a session-wide
instance. Both are safe to update from concurrent workers; the fan-out
executor merges its attempt records in one pass after the barrier, while
chat mode updates them live.
"""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from chatdelta.models.interaction import AttemptRecord
from chatdelta.models.metrics import MetricsSnapshot, SessionSummary


class ClientMetrics:
    """Thread-safe request counters for one provider."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests_total = 0
        self._requests_successful = 0
        self._requests_failed = 0
        self._total_latency_ms = 0.0
        self._total_tokens = 0

    def record_request(
        self, success: bool, latency_ms: float, tokens: Optional[int] = None
    ) -> None:
        """Record one request attempt."""
        with self._lock:
            self._requests_total += 1
            if success:
                self._requests_successful += 1
            else:
                self._requests_failed += 1
            self._total_latency_ms += max(latency_ms, 0.0)
            if tokens:
                self._total_tokens += tokens

    def snapshot(self) -> MetricsSnapshot:
        """Current counters; success rate is a percentage, 0 when empty."""
        with self._lock:
            total = self._requests_total
            return MetricsSnapshot(
                requests_total=total,
                requests_successful=self._requests_successful,
                requests_failed=self._requests_failed,
                success_rate=(
                    self._requests_successful / total * 100 if total else 0.0
                ),
                average_latency_ms=(
                    int(self._total_latency_ms / total) if total else 0
                ),
                total_tokens_used=self._total_tokens,
                # No cache layer yet
                cache_hit_rate=0.0,
            )


class SessionMetrics:
    """Per-provider and session-wide metrics for one invocation."""

    def __init__(self, start_time: Optional[datetime] = None) -> None:
        self.start_time = start_time or datetime.now(timezone.utc)
        self._lock = threading.Lock()
        self._providers: Dict[str, ClientMetrics] = {}
        self._session = ClientMetrics()

    def provider(self, name: str) -> ClientMetrics:
        """Get or create metrics for a provider."""
        with self._lock:
            metrics = self._providers.get(name)
            if metrics is None:
                metrics = ClientMetrics()
                self._providers[name] = metrics
            return metrics

    def record_success(
        self, provider: str, latency_ms: float, tokens: Optional[int] = None
    ) -> None:
        self.provider(provider).record_request(True, latency_ms, tokens)
        self._session.record_request(True, latency_ms, tokens)

    def record_failure(self, provider: str, latency_ms: float) -> None:
        self.provider(provider).record_request(False, latency_ms)
        self._session.record_request(False, latency_ms)

    def record_attempts(self, attempts: Iterable[AttemptRecord]) -> None:
        """Merge the attempt records of a fan-out."""
        for attempt in attempts:
            if attempt.success:
                self.record_success(
                    attempt.provider.value, attempt.latency_ms, attempt.tokens
                )
            else:
                self.record_failure(attempt.provider.value, attempt.latency_ms)

    def session_snapshot(self) -> MetricsSnapshot:
        return self._session.snapshot()

    def summary(self) -> SessionSummary:
        """Aggregate view of the session so far."""
        session = self._session.snapshot()
        duration = datetime.now(timezone.utc) - self.start_time
        with self._lock:
            providers = dict(self._providers)
        return SessionSummary(
            start_time=self.start_time,
            duration_seconds=max(int(duration.total_seconds()), 0),
            total_requests=session.requests_total,
            success_rate=session.success_rate,
            average_latency_ms=session.average_latency_ms,
            total_tokens=session.total_tokens_used,
            provider_stats={
                name: metrics.snapshot() for name, metrics in providers.items()
            },
        )

    def export_json(self) -> Dict[str, Any]:
        """Export as ``{"session": {...}, "providers": {id: {...}}}``."""
        summary = self.summary()
        return {
            "session": {
                "start_time": self.start_time.isoformat(),
                "duration_seconds": summary.duration_seconds,
                "total_requests": summary.total_requests,
                "success_rate": summary.success_rate,
                "average_latency_ms": summary.average_latency_ms,
                "total_tokens": summary.total_tokens,
            },
            "providers": {
                name: stats.model_dump()
                for name, stats in summary.provider_stats.items()
            },
        }

    def save_to_file(self, path: Path) -> None:
        """Write the JSON export, replacing any existing file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.export_json(), f, indent=2)
            f.write("\n")
