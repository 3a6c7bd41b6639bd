"""Interaction audit log.

An InteractionBuilder assembles one immutable InteractionRecord from a
fan-out result and an optional summary. The InteractionLogger only writes
records; it appends to ``<log_dir>/YYYYMMDD.<ext>`` in one of three
formats:

- simple (``.txt``): header line, prompt, one status line per provider
- structured (``.log``): blocked sections per provider, summary, metrics
  and errors
- json (``.json``): a stream of pretty-printed objects, one per record
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import structlog
from pydantic import BaseModel

from chatdelta.models.config import LogFormat
from chatdelta.models.interaction import (
    ErrorEntry,
    FanOutResult,
    InteractionRecord,
    ModelResponse,
    PerformanceMetrics,
    SummaryOutcome,
    utc_now,
)
from chatdelta.utils.exceptions import ErrorKind, LogWriteError

logger = structlog.get_logger()

LOG_EXTENSIONS: Dict[LogFormat, str] = {
    LogFormat.SIMPLE: "txt",
    LogFormat.STRUCTURED: "log",
    LogFormat.JSON: "json",
}

RECORD_SEPARATOR = "=" * 40
SUMMARY_ERROR_MODEL = "summary"


def _display_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f UTC")


class LogStats(BaseModel):
    """File count and size of a log directory."""

    total_files: int = 0
    total_size_bytes: int = 0
    oldest_log: Optional[datetime] = None
    newest_log: Optional[datetime] = None

    def size_human_readable(self) -> str:
        """Size with two decimals in B, KB, MB or GB."""
        units = ["B", "KB", "MB", "GB"]
        size = float(self.total_size_bytes)
        unit_index = 0
        while size >= 1024.0 and unit_index < len(units) - 1:
            size /= 1024.0
            unit_index += 1
        return f"{size:.2f} {units[unit_index]}"


class InteractionBuilder:
    """Collects the parts of one interaction and builds its record."""

    def __init__(
        self,
        session_id: str,
        prompt: str,
        include_metrics: bool = False,
        include_errors: bool = False,
        interaction_id: Optional[str] = None,
    ):
        self.session_id = session_id
        self.prompt = prompt
        self.include_metrics = include_metrics
        self.include_errors = include_errors
        self.interaction_id = interaction_id or str(uuid.uuid4())
        self.timestamp = utc_now()
        self._result: Optional[FanOutResult] = None
        self._summary: Optional[SummaryOutcome] = None

    def with_fanout(self, result: FanOutResult) -> "InteractionBuilder":
        self._result = result
        return self

    def with_summary(self, summary: Optional[SummaryOutcome]) -> "InteractionBuilder":
        self._summary = summary
        return self

    def build(self, total_time_ms: float) -> InteractionRecord:
        """Build the record.

        Args:
            total_time_ms: Wall time of the whole interaction

        Returns:
            InteractionRecord with one response entry per dispatched provider
        """
        responses: Dict[str, ModelResponse] = {}
        errors: List[ErrorEntry] = []
        outcomes = self._result.outcomes if self._result is not None else []

        for outcome in outcomes:
            key = outcome.provider.value
            if outcome.reply is not None:
                responses[key] = ModelResponse(
                    model_name=outcome.display_name,
                    response=outcome.reply.text,
                    response_time_ms=int(outcome.reply.latency_ms),
                    tokens_used=outcome.reply.tokens,
                    success=True,
                )
            elif outcome.failure is not None:
                responses[key] = ModelResponse(
                    model_name=outcome.display_name,
                    response_time_ms=int(outcome.failure.latency_ms),
                    success=False,
                    error=outcome.failure.message,
                )

            if self.include_errors:
                for attempt in outcome.attempts:
                    if attempt.success:
                        continue
                    kind = attempt.error_kind or ErrorKind.PROVIDER_ERROR
                    errors.append(
                        ErrorEntry(
                            model=key,
                            error_type=kind.name,
                            message=attempt.error_message or "",
                            retry_attempt=attempt.attempt_index or None,
                        )
                    )

        summary = self._summary
        if self.include_errors and summary is not None and not summary.ok:
            errors.append(
                ErrorEntry(
                    model=SUMMARY_ERROR_MODEL,
                    error_type=ErrorKind.SUMMARY_FAILURE.name,
                    message=summary.error or "",
                )
            )

        metrics = None
        if self.include_metrics:
            successful = sum(1 for r in responses.values() if r.success)
            metrics = PerformanceMetrics(
                total_time_ms=int(total_time_ms),
                parallel_execution_time_ms=(
                    int(self._result.elapsed_ms) if self._result is not None else 0
                ),
                summary_generation_time_ms=(
                    int(summary.latency_ms) if summary is not None else None
                ),
                models_queried=len(responses),
                successful_responses=successful,
                failed_responses=len(responses) - successful,
            )

        return InteractionRecord(
            timestamp=self.timestamp,
            session_id=self.session_id,
            interaction_id=self.interaction_id,
            prompt=self.prompt,
            responses=responses,
            summary=summary.text if summary is not None else None,
            metrics=metrics,
            errors=errors,
        )


class InteractionLogger:
    """Appends interaction records to daily log files."""

    def __init__(
        self,
        log_dir: Path,
        log_format: LogFormat = LogFormat.SIMPLE,
        session_id: Optional[str] = None,
    ):
        """Initialize the logger.

        Args:
            log_dir: Directory for daily log files (created on first write)
            log_format: On-disk format
            session_id: Session identifier; a new UUID when None
        """
        self.log_dir = Path(log_dir)
        self.log_format = log_format
        self.session_id = session_id or str(uuid.uuid4())

    def builder(
        self,
        prompt: str,
        include_metrics: bool = False,
        include_errors: bool = False,
    ) -> InteractionBuilder:
        """Start a record for one prompt in this session."""
        return InteractionBuilder(
            session_id=self.session_id,
            prompt=prompt,
            include_metrics=include_metrics,
            include_errors=include_errors,
        )

    def log_path(self, timestamp: datetime) -> Path:
        day = timestamp.astimezone(timezone.utc).strftime("%Y%m%d")
        return self.log_dir / f"{day}.{LOG_EXTENSIONS[self.log_format]}"

    def write(self, record: InteractionRecord) -> Path:
        """Append a record to the day's log file.

        Returns:
            Path of the file written

        Raises:
            LogWriteError: If the directory or file cannot be written
        """
        path = self.log_path(record.timestamp)
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(self.format_record(record))
        except OSError as e:
            logger.error("interaction_log_write_failed", path=str(path), error=str(e))
            raise LogWriteError(f"Failed to write log file {path}: {e}")

        logger.debug(
            "interaction_logged",
            path=str(path),
            interaction_id=record.interaction_id,
            format=self.log_format.value,
        )
        return path

    def format_record(self, record: InteractionRecord) -> str:
        if self.log_format == LogFormat.JSON:
            return record.model_dump_json(indent=2) + "\n"
        if self.log_format == LogFormat.STRUCTURED:
            return self._format_structured(record)
        return self._format_simple(record)

    def _format_simple(self, record: InteractionRecord) -> str:
        lines = [
            f"[{_display_time(record.timestamp)}] Session: {record.session_id} "
            f"| Interaction: {record.interaction_id}",
            f"Prompt: {record.prompt}",
        ]
        for name, response in record.responses.items():
            lines.append(f"{name}: {'SUCCESS' if response.success else 'FAILED'}")
        if record.summary is not None:
            lines.append(f"Summary: {record.summary}")
        lines.append("---")
        return "\n".join(lines) + "\n"

    def _format_structured(self, record: InteractionRecord) -> str:
        lines = [
            f"=== INTERACTION {record.interaction_id} ===",
            f"Timestamp: {_display_time(record.timestamp)}",
            f"Session: {record.session_id}",
            f"Prompt: {record.prompt}",
            "",
        ]

        for name, response in record.responses.items():
            lines.append(f"--- {name} ---")
            lines.append(f"Success: {str(response.success).lower()}")
            lines.append(f"Response Time: {response.response_time_ms}ms")
            if response.tokens_used is not None:
                lines.append(f"Tokens: {response.tokens_used}")
            if response.success:
                lines.append(f"Response: {response.response}")
            elif response.error is not None:
                lines.append(f"Error: {response.error}")
            lines.append("")

        if record.summary is not None:
            lines.extend(["--- SUMMARY ---", record.summary, ""])

        metrics = record.metrics
        if metrics is not None:
            lines.append("--- METRICS ---")
            lines.append(f"Total Time: {metrics.total_time_ms}ms")
            lines.append(f"Parallel Execution: {metrics.parallel_execution_time_ms}ms")
            if metrics.summary_generation_time_ms is not None:
                lines.append(
                    f"Summary Generation: {metrics.summary_generation_time_ms}ms"
                )
            lines.append(f"Models Queried: {metrics.models_queried}")
            lines.append(f"Successful: {metrics.successful_responses}")
            lines.append(f"Failed: {metrics.failed_responses}")
            lines.append("")

        if record.errors:
            lines.append("--- ERRORS ---")
            for error in record.errors:
                lines.append(
                    f"[{_display_time(error.timestamp)}] {error.model}: "
                    f"{error.error_type} - {error.message}"
                )
            lines.append("")

        lines.extend([RECORD_SEPARATOR, ""])
        return "\n".join(lines) + "\n"

    def get_log_stats(self) -> LogStats:
        """Count files and bytes in the log directory.

        Raises:
            LogWriteError: If the directory cannot be listed
        """
        stats = LogStats()
        try:
            entries = [p for p in self.log_dir.iterdir() if p.is_file()]
        except OSError as e:
            raise LogWriteError(f"Failed to read log directory {self.log_dir}: {e}")

        for entry in entries:
            stat = entry.stat()
            modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            stats.total_files += 1
            stats.total_size_bytes += stat.st_size
            if stats.oldest_log is None or modified < stats.oldest_log:
                stats.oldest_log = modified
            if stats.newest_log is None or modified > stats.newest_log:
                stats.newest_log = modified
        return stats


def iter_json_records(path: Path) -> Iterator[InteractionRecord]:
    """Parse a JSON log file written as a stream of objects."""
    decoder = json.JSONDecoder()
    content = Path(path).read_text(encoding="utf-8")
    index = 0
    while True:
        while index < len(content) and content[index].isspace():
            index += 1
        if index >= len(content):
            return
        data, index = decoder.raw_decode(content, index)
        yield InteractionRecord.model_validate(data)
