"""Configuration models for ChatDelta.

This module defines:
- Closed enumerations (providers, output/log formats, retry strategies)
- ClientConfig: per-invocation provider call settings
- ChatDeltaSettings: file-backed defaults (YAML)
- RunOptions: the raw options of a CLI invocation
- Config and PlanEntry: the validated configuration and provider plan
"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class ProviderId(str, Enum):
    """Stable short token identifying an AI provider."""

    GPT = "gpt"
    GEMINI = "gemini"
    CLAUDE = "claude"


class RetryStrategy(str, Enum):
    """Backoff shape between retry attempts."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


class OutputFormat(str, Enum):
    """Rendered output format."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


class LogFormat(str, Enum):
    """On-disk structured log format."""

    SIMPLE = "simple"
    JSON = "json"
    STRUCTURED = "structured"


DEFAULT_MODELS: Dict[ProviderId, str] = {
    ProviderId.GPT: "gpt-4o",
    ProviderId.GEMINI: "gemini-1.5-pro-latest",
    ProviderId.CLAUDE: "claude-3-5-sonnet-20241022",
}


class ClientConfig(BaseModel):
    """Settings shared by every provider call of an invocation.

    Immutable: each client receives its own copy via ``model_copy()``.
    The timeout bounds a single attempt; retries start a fresh envelope.
    """

    timeout_seconds: float = Field(default=30.0, gt=0.0, description="Per-attempt deadline")
    retries: int = Field(default=0, ge=0, description="Additional attempts on transient failure")
    max_tokens: int = Field(default=1024, gt=0, description="Maximum tokens per reply")
    temperature: Optional[float] = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    retry_strategy: RetryStrategy = Field(default=RetryStrategy.EXPONENTIAL)
    retry_base_delay_seconds: float = Field(
        default=1.0, ge=0.0, le=60.0, description="Base delay for the retry strategy"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "timeout_seconds": 30.0,
                "retries": 2,
                "max_tokens": 1024,
                "temperature": 0.7,
                "retry_strategy": "exponential",
                "retry_base_delay_seconds": 1.0,
            }
        },
    )

    @property
    def max_attempts(self) -> int:
        """Initial attempt plus retries."""
        return self.retries + 1


class ModelSettings(BaseModel):
    """Model overrides per provider."""

    gpt: str = DEFAULT_MODELS[ProviderId.GPT]
    gemini: str = DEFAULT_MODELS[ProviderId.GEMINI]
    claude: str = DEFAULT_MODELS[ProviderId.CLAUDE]

    def for_provider(self, provider: ProviderId) -> str:
        return getattr(self, provider.value)


class ChatDeltaSettings(BaseModel):
    """Defaults loaded from the optional YAML settings file.

    Every field here can be overridden by an explicit CLI flag.
    """

    models: ModelSettings = Field(default_factory=ModelSettings)
    timeout: float = Field(default=30.0, gt=0.0)
    retries: int = Field(default=0, ge=0, le=10)
    retry_strategy: RetryStrategy = RetryStrategy.EXPONENTIAL
    retry_base_delay: float = Field(default=1.0, ge=0.0, le=60.0)
    max_tokens: int = Field(default=1024, gt=0)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    log_dir: Optional[Path] = None
    log_format: LogFormat = LogFormat.SIMPLE

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "models": {"gpt": "gpt-4o-mini"},
                "timeout": 60,
                "retries": 2,
                "retry_strategy": "linear",
                "log_dir": "${HOME}/chatdelta-logs",
            }
        }
    )


class RunOptions(BaseModel):
    """Raw options for one CLI invocation, before validation.

    String-valued choices stay strings here so that validation can
    report a single readable line for an unknown value.
    """

    prompt: Optional[str] = None
    prompt_file: Optional[Path] = None
    log: Optional[Path] = None
    log_dir: Optional[Path] = None
    log_format: Optional[str] = None
    log_metrics: bool = False
    log_errors: bool = False
    session_id: Optional[str] = None
    verbose: bool = False
    quiet: bool = False
    format: str = "text"
    no_summary: bool = False
    only: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    timeout: Optional[float] = None
    retries: Optional[int] = None
    retry_strategy: Optional[str] = None
    gpt_model: Optional[str] = None
    gemini_model: Optional[str] = None
    claude_model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    list_models: bool = False
    test: bool = False
    save_responses: Optional[Path] = None
    raw: bool = False
    conversation: bool = False
    system_prompt: Optional[str] = None
    load_conversation: Optional[Path] = None
    save_conversation: Optional[Path] = None
    progress: bool = False
    show_metrics: bool = False
    metrics_file: Optional[Path] = None
    config_path: Optional[Path] = None

    @field_validator("only", "exclude", mode="before")
    @classmethod
    def split_provider_lists(cls, v: Optional[List[str]]) -> List[str]:
        """Accept repeated flags and comma-separated values alike."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        names: List[str] = []
        for item in v:
            names.extend(part.strip() for part in item.split(",") if part.strip())
        return names


class Config(BaseModel):
    """Validated configuration produced from RunOptions."""

    prompt: Optional[str] = None
    client: ClientConfig
    models: ModelSettings
    output_format: OutputFormat = OutputFormat.TEXT
    log_format: LogFormat = LogFormat.SIMPLE
    log_dir: Path
    log_file: Optional[Path] = None
    log_metrics: bool = False
    log_errors: bool = False
    structured_logging: bool = False
    session_id: Optional[str] = None
    verbose: bool = False
    quiet: bool = False
    no_summary: bool = False
    only: List[ProviderId] = Field(default_factory=list)
    exclude: List[ProviderId] = Field(default_factory=list)
    save_responses: Optional[Path] = None
    raw: bool = False
    progress: bool = False
    show_metrics: bool = False
    metrics_file: Optional[Path] = None
    conversation: bool = False
    system_prompt: Optional[str] = None
    load_conversation: Optional[Path] = None
    save_conversation: Optional[Path] = None

    def should_use(self, provider: ProviderId) -> bool:
        """Apply --only / --exclude to a provider."""
        if self.only:
            return provider in self.only
        if self.exclude:
            return provider not in self.exclude
        return True


class PlanEntry(BaseModel):
    """One provider that will be dispatched.

    The credential is never empty; it is kept opaque so it does not leak
    into reprs or logs.
    """

    provider: ProviderId
    model: str = Field(..., min_length=1)
    credential: SecretStr

    @field_validator("credential")
    @classmethod
    def validate_credential(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("credential must not be empty")
        return v
