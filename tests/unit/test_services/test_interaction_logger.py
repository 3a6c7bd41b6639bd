"""Unit tests for the interaction audit log"""

from datetime import datetime, timezone

import pytest

from chatdelta.models.config import LogFormat, ProviderId
from chatdelta.models.interaction import (
    AttemptRecord,
    FailureRecord,
    FanOutResult,
    ProviderOutcome,
    Reply,
    SummaryOutcome,
)
from chatdelta.services.interaction_logger import (
    InteractionLogger,
    LogStats,
    iter_json_records,
)
from chatdelta.utils.exceptions import ErrorKind, LogWriteError


@pytest.fixture
def fanout_result():
    """GPT succeeds; Gemini fails twice with a server error."""
    return FanOutResult(
        prompt="What is 2+2?",
        elapsed_ms=1234.5,
        outcomes=[
            ProviderOutcome(
                provider=ProviderId.GPT,
                display_name="ChatGPT",
                reply=Reply(
                    provider=ProviderId.GPT,
                    display_name="ChatGPT",
                    model="gpt-4o",
                    text="4",
                    latency_ms=800.7,
                    tokens=17,
                ),
                attempts=[
                    AttemptRecord(
                        provider=ProviderId.GPT,
                        attempt_index=0,
                        success=True,
                        latency_ms=800.7,
                        tokens=17,
                    )
                ],
            ),
            ProviderOutcome(
                provider=ProviderId.GEMINI,
                display_name="Gemini",
                failure=FailureRecord(
                    provider=ProviderId.GEMINI,
                    display_name="Gemini",
                    kind=ErrorKind.SERVER_ERROR,
                    message="503 unavailable",
                    attempts=2,
                    latency_ms=1200,
                ),
                attempts=[
                    AttemptRecord(
                        provider=ProviderId.GEMINI,
                        attempt_index=i,
                        success=False,
                        latency_ms=600,
                        error_kind=ErrorKind.SERVER_ERROR,
                        error_message="503 unavailable",
                    )
                    for i in range(2)
                ],
            ),
        ],
    )


def build(logger, result, summary=None, **kwargs):
    return (
        logger.builder(result.prompt, **kwargs)
        .with_fanout(result)
        .with_summary(summary)
        .build(total_time_ms=2000)
    )


class TestInteractionBuilder:
    """Tests for record assembly."""

    def test_responses_keyed_by_dispatched_providers(self, tmp_path, fanout_result):
        record = build(InteractionLogger(tmp_path, session_id="s1"), fanout_result)

        assert set(record.responses) == {"gpt", "gemini"}
        assert record.responses["gpt"].success
        assert record.responses["gpt"].response == "4"
        assert record.responses["gpt"].response_time_ms == 800
        assert record.responses["gpt"].tokens_used == 17
        assert record.responses["gemini"].error == "503 unavailable"
        assert record.responses["gemini"].response == ""
        assert record.session_id == "s1"

    def test_metrics_and_errors_off_by_default(self, tmp_path, fanout_result):
        record = build(InteractionLogger(tmp_path), fanout_result)
        assert record.metrics is None
        assert record.errors == []

    def test_metrics(self, tmp_path, fanout_result):
        summary = SummaryOutcome(
            provider=ProviderId.CLAUDE, display_name="Claude", text="s", latency_ms=300.2
        )
        record = build(
            InteractionLogger(tmp_path), fanout_result, summary, include_metrics=True
        )
        assert record.metrics.total_time_ms == 2000
        assert record.metrics.parallel_execution_time_ms == 1234
        assert record.metrics.summary_generation_time_ms == 300
        assert record.metrics.models_queried == 2
        assert record.metrics.successful_responses == 1
        assert record.metrics.failed_responses == 1
        assert record.summary == "s"

    def test_errors_list_every_failed_attempt(self, tmp_path, fanout_result):
        summary = SummaryOutcome(
            provider=ProviderId.CLAUDE, display_name="Claude", error="timeout"
        )
        record = build(
            InteractionLogger(tmp_path), fanout_result, summary, include_errors=True
        )
        assert [(e.model, e.error_type, e.retry_attempt) for e in record.errors] == [
            ("gemini", "SERVER_ERROR", None),
            ("gemini", "SERVER_ERROR", 1),
            ("summary", "SUMMARY_FAILURE", None),
        ]
        assert record.summary is None


class TestWriters:
    """Tests for the three on-disk formats."""

    def test_simple_format(self, tmp_path, fanout_result):
        logger = InteractionLogger(tmp_path, LogFormat.SIMPLE, session_id="abc")
        record = build(logger, fanout_result)

        path = logger.write(record)

        assert path.suffix == ".txt"
        assert path.name == record.timestamp.strftime("%Y%m%d") + ".txt"
        lines = path.read_text().splitlines()
        assert lines[0].startswith("[")
        assert f"Session: abc | Interaction: {record.interaction_id}" in lines[0]
        assert lines[1:] == ["Prompt: What is 2+2?", "gpt: SUCCESS", "gemini: FAILED", "---"]

    def test_structured_format(self, tmp_path, fanout_result):
        logger = InteractionLogger(tmp_path, LogFormat.STRUCTURED)
        summary = SummaryOutcome(
            provider=ProviderId.CLAUDE, display_name="Claude", text="All agree."
        )
        record = build(
            logger, fanout_result, summary, include_metrics=True, include_errors=True
        )

        content = logger.write(record).read_text()

        assert f"=== INTERACTION {record.interaction_id} ===" in content
        assert "--- gpt ---\nSuccess: true\nResponse Time: 800ms\nTokens: 17\nResponse: 4\n" in content
        assert "--- gemini ---\nSuccess: false\nResponse Time: 1200ms\nError: 503 unavailable\n" in content
        assert "--- SUMMARY ---\nAll agree.\n" in content
        assert "--- METRICS ---\nTotal Time: 2000ms\nParallel Execution: 1234ms\n" in content
        assert "--- ERRORS ---\n" in content
        assert "gemini: SERVER_ERROR - 503 unavailable" in content
        assert content.endswith("=" * 40 + "\n\n")

    def test_json_round_trip(self, tmp_path, fanout_result):
        logger = InteractionLogger(tmp_path, LogFormat.JSON)
        first = build(logger, fanout_result, include_metrics=True, include_errors=True)
        second = build(logger, fanout_result)

        logger.write(first)
        path = logger.write(second)

        assert path.suffix == ".json"
        assert list(iter_json_records(path)) == [first, second]

    def test_appends(self, tmp_path, fanout_result):
        logger = InteractionLogger(tmp_path)
        logger.write(build(logger, fanout_result))
        path = logger.write(build(logger, fanout_result))
        assert path.read_text().count("Prompt: What is 2+2?") == 2

    def test_creates_nested_directory(self, tmp_path, fanout_result):
        logger = InteractionLogger(tmp_path / "a" / "b")
        assert logger.write(build(logger, fanout_result)).exists()

    def test_write_failure(self, tmp_path, fanout_result):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        logger = InteractionLogger(blocker)
        with pytest.raises(LogWriteError):
            logger.write(build(logger, fanout_result))

    def test_file_named_for_record_day(self, tmp_path):
        logger = InteractionLogger(tmp_path, LogFormat.STRUCTURED)
        stamp = datetime(2024, 3, 5, 23, 0, tzinfo=timezone.utc)
        assert logger.log_path(stamp) == tmp_path / "20240305.log"


class TestLogStats:
    """Tests for log directory statistics."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0.00 B"),
            (512, "512.00 B"),
            (1536, "1.50 KB"),
            (5 * 1024 * 1024, "5.00 MB"),
            (3 * 1024**4, "3072.00 GB"),
        ],
    )
    def test_size_human_readable(self, size, expected):
        assert LogStats(total_size_bytes=size).size_human_readable() == expected

    def test_counts_files(self, tmp_path, fanout_result):
        logger = InteractionLogger(tmp_path)
        logger.write(build(logger, fanout_result))
        (tmp_path / "other.txt").write_text("12345")

        stats = logger.get_log_stats()

        assert stats.total_files == 2
        assert stats.total_size_bytes > 5
        assert stats.oldest_log is not None
