"""Interaction data models.

Two groups of models live here:
- Fan-out results (Reply, FailureRecord, AttemptRecord, ProviderOutcome,
  FanOutResult) produced by the executor during one invocation
- Audit records (ModelResponse, PerformanceMetrics, ErrorEntry,
  InteractionRecord) written to disk by the interaction logger
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chatdelta.models.config import ProviderId
from chatdelta.utils.exceptions import ErrorKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Reply(BaseModel):
    """Successful reply from one provider."""

    provider: ProviderId
    display_name: str
    model: str
    text: str
    latency_ms: float = Field(..., ge=0.0)
    tokens: Optional[int] = Field(default=None, ge=0)


class FailureRecord(BaseModel):
    """Final failure of one provider after all attempts."""

    provider: ProviderId
    display_name: str
    kind: ErrorKind
    message: str
    attempts: int = Field(..., ge=1)
    latency_ms: float = Field(..., ge=0.0)


class AttemptRecord(BaseModel):
    """Instrumentation for a single attempt against a provider."""

    provider: ProviderId
    attempt_index: int = Field(..., ge=0)
    success: bool
    latency_ms: float = Field(..., ge=0.0)
    tokens: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None


class ProviderOutcome(BaseModel):
    """Result slot for one dispatched provider: a reply or a failure."""

    provider: ProviderId
    display_name: str
    reply: Optional[Reply] = None
    failure: Optional[FailureRecord] = None
    attempts: List[AttemptRecord] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.reply is not None

    @property
    def latency_ms(self) -> float:
        """Total time spent on this provider across attempts."""
        if self.reply is not None:
            return self.reply.latency_ms
        if self.failure is not None:
            return self.failure.latency_ms
        return 0.0


class FanOutResult(BaseModel):
    """Outcomes of a fan-out, in dispatch order."""

    prompt: str
    outcomes: List[ProviderOutcome] = Field(default_factory=list)
    elapsed_ms: float = 0.0
    started_at: datetime = Field(default_factory=utc_now)

    @property
    def replies(self) -> List[Reply]:
        return [o.reply for o in self.outcomes if o.reply is not None]

    @property
    def failures(self) -> List[FailureRecord]:
        return [o.failure for o in self.outcomes if o.failure is not None]

    @property
    def attempts(self) -> List[AttemptRecord]:
        return [a for o in self.outcomes for a in o.attempts]


# =============================================================================
# AUDIT RECORDS
# =============================================================================


class ModelResponse(BaseModel):
    """Per-provider entry of an interaction record."""

    model_name: str
    response: str = ""
    response_time_ms: int = Field(default=0, ge=0)
    tokens_used: Optional[int] = None
    success: bool
    error: Optional[str] = None


class PerformanceMetrics(BaseModel):
    """Timing summary attached to a record when metrics logging is on."""

    total_time_ms: int = Field(..., ge=0)
    parallel_execution_time_ms: int = Field(..., ge=0)
    summary_generation_time_ms: Optional[int] = None
    models_queried: int = Field(..., ge=0)
    successful_responses: int = Field(..., ge=0)
    failed_responses: int = Field(..., ge=0)


class ErrorEntry(BaseModel):
    """One error observed during an interaction."""

    timestamp: datetime = Field(default_factory=utc_now)
    model: str
    error_type: str
    message: str
    retry_attempt: Optional[int] = None


class InteractionRecord(BaseModel):
    """Audit record written once per prompt.

    The ``responses`` keys are exactly the providers that were dispatched,
    successes and failures alike.
    """

    timestamp: datetime = Field(default_factory=utc_now)
    session_id: str
    interaction_id: str
    prompt: str
    responses: Dict[str, ModelResponse] = Field(default_factory=dict)
    summary: Optional[str] = None
    metrics: Optional[PerformanceMetrics] = None
    errors: List[ErrorEntry] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class SummaryOutcome(BaseModel):
    """Result of the summarizer call."""

    provider: ProviderId
    display_name: str
    text: Optional[str] = None
    latency_ms: float = 0.0
    error: Optional[str] = None
    attempts: List[AttemptRecord] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.text is not None
