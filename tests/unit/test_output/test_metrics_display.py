"""Tests for the metrics table."""

from datetime import datetime, timezone

from chatdelta.models.metrics import MetricsSnapshot, SessionSummary
from chatdelta.output.metrics_display import RULE, format_metrics


def make_summary(tokens: int = 0) -> SessionSummary:
    return SessionSummary(
        start_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        duration_seconds=3,
        total_requests=4,
        success_rate=75.0,
        average_latency_ms=1200,
        total_tokens=tokens,
        provider_stats={
            "gpt": MetricsSnapshot(
                requests_total=2,
                requests_successful=1,
                requests_failed=1,
                success_rate=50.0,
                average_latency_ms=900,
                total_tokens_used=tokens,
            )
        },
    )


class TestFormatMetrics:
    """Tests for format_metrics."""

    def test_headline_lines(self):
        output = format_metrics(make_summary())

        assert "📊 Performance Metrics" in output
        assert "📍 Session Duration: 3s" in output
        assert "📍 Total Requests: 4" in output
        assert "📍 Success Rate: 75.0%" in output
        assert "📍 Avg Latency: 1200ms" in output
        assert output.count(RULE) == 2

    def test_tokens_only_when_reported(self):
        assert "Total Tokens" not in format_metrics(make_summary())
        assert "📍 Total Tokens: 80" in format_metrics(make_summary(tokens=80))

    def test_breakdown_only_when_verbose(self):
        assert "Per-Provider Breakdown" not in format_metrics(make_summary())

        output = format_metrics(make_summary(tokens=80), verbose=True)

        assert "🔍 Per-Provider Breakdown:" in output
        assert "  gpt:" in output
        assert "• Requests: 2 (Success: 50.0%)" in output
        assert "• Tokens Used: 80" in output
        assert "Cache Hit Rate" not in output
