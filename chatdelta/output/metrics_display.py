"""Performance metrics table."""

from typing import List

from chatdelta.models.metrics import SessionSummary

RULE = "━" * 38


def format_metrics(summary: SessionSummary, verbose: bool = False) -> str:
    """Format a session summary as the metrics table.

    The per-provider breakdown is included only when verbose.
    """
    lines: List[str] = [
        "",
        "📊 Performance Metrics",
        RULE,
        f"📍 Session Duration: {summary.duration_seconds}s",
        f"📍 Total Requests: {summary.total_requests}",
        f"📍 Success Rate: {summary.success_rate:.1f}%",
        f"📍 Avg Latency: {summary.average_latency_ms}ms",
    ]
    if summary.total_tokens > 0:
        lines.append(f"📍 Total Tokens: {summary.total_tokens}")

    if verbose and summary.provider_stats:
        lines.append("")
        lines.append("🔍 Per-Provider Breakdown:")
        for provider, stats in summary.provider_stats.items():
            lines.append("")
            lines.append(f"  {provider}:")
            lines.append(
                f"    • Requests: {stats.requests_total} "
                f"(Success: {stats.success_rate:.1f}%)"
            )
            lines.append(f"    • Avg Latency: {stats.average_latency_ms}ms")
            if stats.total_tokens_used > 0:
                lines.append(f"    • Tokens Used: {stats.total_tokens_used}")
            if stats.cache_hit_rate > 0:
                lines.append(f"    • Cache Hit Rate: {stats.cache_hit_rate:.1f}%")

    lines.append(RULE)
    return "\n".join(lines)
