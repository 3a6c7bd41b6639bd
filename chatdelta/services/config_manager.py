"""Option validation, settings loading and provider selection.

Turns the raw RunOptions of a CLI invocation into a validated Config and
an ordered provider plan.
"""

import os
import sys
from pathlib import Path
from string import Template
from typing import Callable, List, Optional, TextIO

import structlog
import yaml
from pydantic import SecretStr, ValidationError

from chatdelta.models.config import (
    ChatDeltaSettings,
    ClientConfig,
    Config,
    LogFormat,
    ModelSettings,
    OutputFormat,
    PlanEntry,
    ProviderId,
    RetryStrategy,
    RunOptions,
)
from chatdelta.services.registry import PROVIDER_ORDER, ProviderRegistry
from chatdelta.utils.exceptions import InvalidArgumentError, NoProvidersError

logger = structlog.get_logger()

STDIN_SENTINEL = "-"
VALID_PROVIDERS = ", ".join(p.value for p in ProviderId)

Warn = Callable[[str], None]


def default_settings_path() -> Path:
    return Path.home() / ".chatdelta" / "config.yaml"


def default_log_dir() -> Path:
    return Path.home() / ".chatdelta" / "logs"


def _choices(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


class ConfigManager:
    """Loads settings and validates options for one invocation."""

    def __init__(
        self,
        settings_path: Optional[Path] = None,
        stdin: Optional[TextIO] = None,
    ):
        """Initialize the manager.

        Args:
            settings_path: Explicit YAML settings file. When None, the
                default file is used if it exists.
            stdin: Stream read for the ``-`` prompt sentinel
        """
        self.settings_path = settings_path
        self._stdin = stdin
        self._settings: Optional[ChatDeltaSettings] = None

    def load_settings(self) -> ChatDeltaSettings:
        """Load file-backed defaults.

        Returns:
            ChatDeltaSettings (all defaults when no file is present)

        Raises:
            InvalidArgumentError: If the file is missing, unreadable or invalid
        """
        if self._settings is not None:
            return self._settings

        path = self.settings_path
        if path is None:
            candidate = default_settings_path()
            if not candidate.exists():
                self._settings = ChatDeltaSettings()
                return self._settings
            path = candidate
        elif not path.exists():
            raise InvalidArgumentError(f"Configuration file not found: {path}")

        try:
            raw_content = path.read_text(encoding="utf-8")
            substituted = Template(raw_content).safe_substitute(os.environ)
            data = yaml.safe_load(substituted) or {}
        except (OSError, yaml.YAMLError) as e:
            raise InvalidArgumentError(f"Failed to read config file {path}: {e}")

        if not isinstance(data, dict):
            raise InvalidArgumentError(f"Config file {path} must contain a mapping")

        try:
            self._settings = ChatDeltaSettings(**data)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise InvalidArgumentError(
                f"Invalid configuration in {path}: {location}: {first['msg']}"
            )

        logger.debug("settings_loaded", path=str(path))
        return self._settings

    def validate(self, options: RunOptions) -> Config:
        """Validate options and merge them over the settings file.

        Args:
            options: Raw CLI options

        Returns:
            Validated Config with the prompt resolved

        Raises:
            InvalidArgumentError: With a single human-readable line
        """
        informational = options.list_models or options.test
        has_prompt = options.prompt is not None or options.prompt_file is not None

        if options.prompt is not None and options.prompt_file is not None:
            raise InvalidArgumentError(
                "Cannot use both a prompt argument and --prompt-file"
            )
        if not has_prompt and not informational and not options.conversation:
            raise InvalidArgumentError(
                "Prompt is required unless using --list-models, --test "
                "or --conversation"
            )
        if options.prompt is not None and not options.prompt.strip():
            raise InvalidArgumentError("Prompt cannot be empty")

        if options.verbose and options.quiet:
            raise InvalidArgumentError("Cannot use both --verbose and --quiet flags")

        output_format = self._parse_choice(
            OutputFormat, options.format, "Output format"
        )
        log_format = (
            self._parse_choice(LogFormat, options.log_format, "Log format")
            if options.log_format is not None
            else None
        )
        retry_strategy = (
            self._parse_choice(RetryStrategy, options.retry_strategy, "Retry strategy")
            if options.retry_strategy is not None
            else None
        )

        if options.only and options.exclude:
            raise InvalidArgumentError("Cannot use both --only and --exclude flags")
        only = self._parse_providers(options.only)
        exclude = self._parse_providers(options.exclude)

        if options.temperature is not None and not (
            0.0 <= options.temperature <= 2.0
        ):
            raise InvalidArgumentError("Temperature must be between 0.0 and 2.0")
        if options.timeout is not None and options.timeout <= 0:
            raise InvalidArgumentError("Timeout must be greater than 0")
        if options.retries is not None and options.retries < 0:
            raise InvalidArgumentError("Retries must not be negative")
        if options.max_tokens is not None and options.max_tokens <= 0:
            raise InvalidArgumentError("Max tokens must be greater than 0")

        settings = self.load_settings()

        client = ClientConfig(
            timeout_seconds=_pick(options.timeout, settings.timeout),
            retries=_pick(options.retries, settings.retries),
            max_tokens=_pick(options.max_tokens, settings.max_tokens),
            temperature=_pick(options.temperature, settings.temperature),
            retry_strategy=_pick(retry_strategy, settings.retry_strategy),
            retry_base_delay_seconds=settings.retry_base_delay,
        )
        models = ModelSettings(
            gpt=_pick(options.gpt_model, settings.models.gpt),
            gemini=_pick(options.gemini_model, settings.models.gemini),
            claude=_pick(options.claude_model, settings.models.claude),
        )

        prompt: Optional[str] = None
        if not informational and has_prompt:
            prompt = self.resolve_prompt(options)

        return Config(
            prompt=prompt,
            client=client,
            models=models,
            output_format=output_format,
            log_format=_pick(log_format, settings.log_format),
            log_dir=options.log_dir or settings.log_dir or default_log_dir(),
            log_file=options.log,
            log_metrics=options.log_metrics,
            log_errors=options.log_errors,
            structured_logging=(
                options.log_metrics
                or options.log_errors
                or options.log_dir is not None
            ),
            session_id=options.session_id,
            verbose=options.verbose,
            quiet=options.quiet,
            no_summary=options.no_summary,
            only=only,
            exclude=exclude,
            save_responses=options.save_responses,
            raw=options.raw,
            progress=options.progress,
            show_metrics=options.show_metrics,
            metrics_file=options.metrics_file,
            conversation=options.conversation,
            system_prompt=options.system_prompt,
            load_conversation=options.load_conversation,
            save_conversation=options.save_conversation,
        )

    def resolve_prompt(self, options: RunOptions) -> str:
        """Read the prompt from the argument, stdin or a file.

        Raises:
            InvalidArgumentError: If the source is unreadable or the
                prompt is empty after trimming
        """
        if options.prompt_file is not None:
            try:
                prompt = options.prompt_file.read_text(encoding="utf-8").strip()
            except OSError as e:
                raise InvalidArgumentError(
                    f"Failed to read prompt file {options.prompt_file}: {e}"
                )
        elif options.prompt == STDIN_SENTINEL:
            stream = self._stdin if self._stdin is not None else sys.stdin
            prompt = stream.read().rstrip()
        else:
            prompt = options.prompt or ""

        if not prompt.strip():
            raise InvalidArgumentError("Prompt cannot be empty")
        return prompt

    def build_plan(
        self,
        config: Config,
        registry: ProviderRegistry,
        warn: Optional[Warn] = None,
    ) -> List[PlanEntry]:
        """Select providers: wanted by --only/--exclude and credentialed.

        Missing credentials produce a warning and are skipped.

        Raises:
            NoProvidersError: If no provider remains
        """
        plan: List[PlanEntry] = []
        for provider in PROVIDER_ORDER:
            if not config.should_use(provider):
                continue
            key = registry.credential(provider)
            if key is None:
                if warn is not None:
                    warn(
                        f"Warning: {registry.env_var(provider)} not set, "
                        f"skipping {registry.display_name(provider)}"
                    )
                continue
            plan.append(
                PlanEntry(
                    provider=provider,
                    model=config.models.for_provider(provider),
                    credential=SecretStr(key),
                )
            )

        if not plan:
            raise NoProvidersError()
        logger.debug("provider_plan", providers=[e.provider.value for e in plan])
        return plan

    @staticmethod
    def _parse_choice(enum_cls, value: str, label: str):
        try:
            return enum_cls(value.lower())
        except ValueError:
            raise InvalidArgumentError(
                f"{label} must be one of: {_choices(enum_cls)}"
            )

    @staticmethod
    def _parse_providers(names: List[str]) -> List[ProviderId]:
        providers: List[ProviderId] = []
        for name in names:
            try:
                provider = ProviderId(name.lower())
            except ValueError:
                raise InvalidArgumentError(
                    f"Unknown AI '{name}'. Valid options: {VALID_PROVIDERS}"
                )
            if provider not in providers:
                providers.append(provider)
        return providers


def _pick(value, fallback):
    """CLI value when given, else the settings value."""
    return fallback if value is None else value
