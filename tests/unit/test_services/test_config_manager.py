"""Unit tests for option validation and provider selection"""

import io
from pathlib import Path

import pytest

from chatdelta.models.config import (
    LogFormat,
    OutputFormat,
    ProviderId,
    RetryStrategy,
    RunOptions,
)
from chatdelta.services.config_manager import ConfigManager
from chatdelta.utils.exceptions import InvalidArgumentError, NoProvidersError


@pytest.fixture
def manager(tmp_path):
    """Manager with an empty settings file so the user's home is ignored."""
    settings = tmp_path / "config.yaml"
    settings.write_text("{}\n")
    return ConfigManager(settings_path=settings)


class TestValidate:
    """Tests for ConfigManager.validate."""

    def test_minimal_prompt(self, manager):
        config = manager.validate(RunOptions(prompt="ping"))
        assert config.prompt == "ping"
        assert config.output_format == OutputFormat.TEXT
        assert config.client.timeout_seconds == 30.0
        assert config.structured_logging is False

    def test_prompt_required(self, manager):
        with pytest.raises(InvalidArgumentError, match="Prompt is required"):
            manager.validate(RunOptions())

    @pytest.mark.parametrize(
        "flags", [{"list_models": True}, {"test": True}, {"conversation": True}]
    )
    def test_prompt_optional_for_other_modes(self, manager, flags):
        assert manager.validate(RunOptions(**flags)).prompt is None

    def test_verbose_and_quiet_conflict(self, manager):
        with pytest.raises(InvalidArgumentError, match="--verbose and --quiet"):
            manager.validate(RunOptions(prompt="hi", verbose=True, quiet=True))

    def test_only_and_exclude_conflict(self, manager):
        with pytest.raises(InvalidArgumentError, match="--only and --exclude"):
            manager.validate(RunOptions(prompt="hi", only=["gpt"], exclude=["claude"]))

    def test_unknown_provider(self, manager):
        with pytest.raises(InvalidArgumentError, match="Unknown AI 'llama'"):
            manager.validate(RunOptions(prompt="hi", only=["llama"]))

    def test_invalid_format(self, manager):
        with pytest.raises(InvalidArgumentError, match="Output format"):
            manager.validate(RunOptions(prompt="hi", format="yaml"))

    def test_invalid_retry_strategy(self, manager):
        with pytest.raises(InvalidArgumentError, match="Retry strategy"):
            manager.validate(RunOptions(prompt="hi", retry_strategy="random"))

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("temperature", 3.0, "Temperature"),
            ("timeout", 0, "Timeout"),
            ("retries", -1, "Retries"),
            ("max_tokens", 0, "Max tokens"),
        ],
    )
    def test_range_checks(self, manager, field, value, message):
        with pytest.raises(InvalidArgumentError, match=message):
            manager.validate(RunOptions(prompt="hi", **{field: value}))

    def test_empty_prompt_rejected(self, manager):
        with pytest.raises(InvalidArgumentError, match="cannot be empty"):
            manager.validate(RunOptions(prompt="   "))

    def test_structured_logging_activation(self, manager, tmp_path):
        assert manager.validate(RunOptions(prompt="hi", log_metrics=True)).structured_logging
        assert manager.validate(RunOptions(prompt="hi", log_errors=True)).structured_logging
        config = manager.validate(RunOptions(prompt="hi", log_dir=tmp_path / "logs"))
        assert config.structured_logging
        assert config.log_dir == tmp_path / "logs"

    def test_provider_names_normalized(self, manager):
        config = manager.validate(RunOptions(prompt="hi", only=["GPT", "gemini"]))
        assert config.only == [ProviderId.GPT, ProviderId.GEMINI]


class TestSettingsFile:
    """Tests for YAML settings."""

    def test_settings_supply_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CHATDELTA_TEST_LOGS", str(tmp_path / "env-logs"))
        settings = tmp_path / "config.yaml"
        settings.write_text(
            "timeout: 60\n"
            "retries: 2\n"
            "retry_strategy: linear\n"
            "retry_base_delay: 0.5\n"
            "log_format: json\n"
            "log_dir: ${CHATDELTA_TEST_LOGS}\n"
            "models:\n"
            "  gpt: gpt-4o-mini\n"
        )
        config = ConfigManager(settings_path=settings).validate(RunOptions(prompt="hi"))

        assert config.client.timeout_seconds == 60
        assert config.client.retries == 2
        assert config.client.retry_strategy == RetryStrategy.LINEAR
        assert config.client.retry_base_delay_seconds == 0.5
        assert config.log_format == LogFormat.JSON
        assert config.log_dir == tmp_path / "env-logs"
        assert config.models.gpt == "gpt-4o-mini"
        # A log directory in the settings file does not turn logging on
        assert config.structured_logging is False

    def test_cli_flags_win(self, tmp_path):
        settings = tmp_path / "config.yaml"
        settings.write_text("timeout: 60\nmodels:\n  claude: claude-3-haiku-20240307\n")
        config = ConfigManager(settings_path=settings).validate(
            RunOptions(prompt="hi", timeout=5, claude_model="claude-3-opus-20240229")
        )
        assert config.client.timeout_seconds == 5
        assert config.models.claude == "claude-3-opus-20240229"

    def test_missing_file(self, tmp_path):
        manager = ConfigManager(settings_path=tmp_path / "missing.yaml")
        with pytest.raises(InvalidArgumentError, match="not found"):
            manager.validate(RunOptions(prompt="hi"))

    def test_invalid_values(self, tmp_path):
        settings = tmp_path / "config.yaml"
        settings.write_text("retries: -3\n")
        with pytest.raises(InvalidArgumentError, match="retries"):
            ConfigManager(settings_path=settings).validate(RunOptions(prompt="hi"))


class TestResolvePrompt:
    """Tests for prompt sources."""

    def test_stdin_sentinel_trims_trailing_whitespace(self, tmp_path):
        settings = tmp_path / "config.yaml"
        settings.write_text("{}\n")
        manager = ConfigManager(settings_path=settings, stdin=io.StringIO("  hello\n\n"))
        assert manager.validate(RunOptions(prompt="-")).prompt == "  hello"

    def test_empty_stdin_rejected(self, tmp_path):
        manager = ConfigManager(stdin=io.StringIO("\n"))
        with pytest.raises(InvalidArgumentError, match="cannot be empty"):
            manager.resolve_prompt(RunOptions(prompt="-"))

    def test_prompt_file(self, manager, tmp_path):
        prompt_file = tmp_path / "prompt.txt"
        prompt_file.write_text("\n  from file \n")
        assert manager.validate(RunOptions(prompt_file=prompt_file)).prompt == "from file"

    def test_prompt_and_file_conflict(self, manager, tmp_path):
        with pytest.raises(InvalidArgumentError, match="Cannot use both"):
            manager.validate(RunOptions(prompt="hi", prompt_file=Path("x.txt")))

    def test_unreadable_prompt_file(self, manager, tmp_path):
        with pytest.raises(InvalidArgumentError, match="Failed to read prompt file"):
            manager.validate(RunOptions(prompt_file=tmp_path / "missing.txt"))


class TestBuildPlan:
    """Tests for provider selection."""

    def test_all_credentialed_in_dispatch_order(self, manager, make_registry):
        config = manager.validate(RunOptions(prompt="hi"))
        plan = manager.build_plan(config, make_registry())
        assert [e.provider for e in plan] == [
            ProviderId.GPT,
            ProviderId.GEMINI,
            ProviderId.CLAUDE,
        ]
        assert plan[0].model == "gpt-4o"

    def test_missing_credentials_warn_and_skip(self, manager, make_registry):
        warnings = []
        config = manager.validate(RunOptions(prompt="hi"))
        plan = manager.build_plan(
            config,
            make_registry(environ={"ANTHROPIC_API_KEY": "k", "GEMINI_API_KEY": ""}),
            warn=warnings.append,
        )
        assert [e.provider for e in plan] == [ProviderId.CLAUDE]
        assert warnings == [
            "Warning: OPENAI_API_KEY not set, skipping ChatGPT",
            "Warning: GEMINI_API_KEY not set, skipping Gemini",
        ]

    def test_no_credentials_is_fatal(self, manager, make_registry):
        warnings = []
        config = manager.validate(RunOptions(prompt="hi"))
        with pytest.raises(NoProvidersError):
            manager.build_plan(config, make_registry(environ={}), warn=warnings.append)
        assert len(warnings) == 3

    def test_exclude_everything_is_fatal(self, manager, make_registry):
        config = manager.validate(
            RunOptions(prompt="hi", exclude=["gpt", "gemini", "claude"])
        )
        with pytest.raises(NoProvidersError):
            manager.build_plan(config, make_registry())

    def test_only_filters(self, manager, make_registry):
        config = manager.validate(RunOptions(prompt="hi", only=["claude", "gpt"]))
        plan = manager.build_plan(config, make_registry())
        assert [e.provider for e in plan] == [ProviderId.GPT, ProviderId.CLAUDE]
