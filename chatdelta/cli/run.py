"""Main command: send one prompt to several AI models.

Handles option parsing, the prompt flow and result display. Chat mode
and the informational modes are dispatched from here.
"""

import asyncio
import time
from pathlib import Path
from typing import List, Optional

import typer

from chatdelta.cli.chat import run_chat
from chatdelta.cli.diagnostics import print_available_models, test_connections
from chatdelta.cli.utils import Console, handle_errors, logger, plural
from chatdelta.models.config import Config, RunOptions
from chatdelta.models.interaction import ProviderOutcome, SummaryOutcome
from chatdelta.observability.context import end_session, new_session_id, start_session
from chatdelta.observability.logging import configure_logging, level_for
from chatdelta.observability.session_metrics import SessionMetrics
from chatdelta.orchestration.fanout import FanOutExecutor, ensure_success
from chatdelta.output.metrics_display import format_metrics
from chatdelta.output.renderer import OutputRenderer, save_responses, write_transcript
from chatdelta.services.config_manager import ConfigManager
from chatdelta.services.interaction_logger import InteractionLogger
from chatdelta.services.registry import ProviderRegistry
from chatdelta.services.summarizer import Summarizer, should_summarize
from chatdelta.utils.exceptions import LogWriteError


@handle_errors
def run_command(
    prompt: Optional[str] = typer.Argument(
        None, help="Prompt to send to the AIs ('-' reads standard input)"
    ),
    prompt_file: Optional[Path] = typer.Option(
        None, "--prompt-file", help="Read the prompt from a file"
    ),
    log: Optional[Path] = typer.Option(
        None, "--log", "-l", help="Write a transcript of the interaction to this file"
    ),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Directory for structured interaction logs"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Structured log format: simple, json, structured"
    ),
    log_metrics: bool = typer.Option(
        False, "--log-metrics", help="Include performance metrics in structured logs"
    ),
    log_errors: bool = typer.Option(
        False, "--log-errors", help="Include error details in structured logs"
    ),
    session_id: Optional[str] = typer.Option(
        None, "--session-id", help="Session identifier for structured logs"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show detailed progress and every response"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress progress and warnings"
    ),
    output_format: str = typer.Option(
        "text", "--format", "-f", help="Output format: text, json, markdown"
    ),
    no_summary: bool = typer.Option(
        False, "--no-summary", help="Skip summary generation"
    ),
    only: Optional[List[str]] = typer.Option(
        None, "--only", help="Only query these AIs (gpt, gemini, claude)"
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", help="Do not query these AIs (gpt, gemini, claude)"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Timeout per request attempt in seconds [default: 30]"
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", help="Retry attempts for transient failures [default: 0]"
    ),
    retry_strategy: Optional[str] = typer.Option(
        None, "--retry-strategy", help="Backoff: exponential, linear, fixed"
    ),
    gpt_model: Optional[str] = typer.Option(None, "--gpt-model", help="OpenAI model"),
    gemini_model: Optional[str] = typer.Option(
        None, "--gemini-model", help="Gemini model"
    ),
    claude_model: Optional[str] = typer.Option(
        None, "--claude-model", help="Claude model"
    ),
    max_tokens: Optional[int] = typer.Option(
        None, "--max-tokens", help="Maximum tokens per response [default: 1024]"
    ),
    temperature: Optional[float] = typer.Option(
        None, "--temperature", help="Sampling temperature (0.0-2.0)"
    ),
    list_models: bool = typer.Option(
        False, "--list-models", help="Show available models and exit"
    ),
    test: bool = typer.Option(False, "--test", help="Test API connections and exit"),
    save_responses_dir: Optional[Path] = typer.Option(
        None, "--save-responses", help="Save each response to a file in this directory"
    ),
    raw: bool = typer.Option(False, "--raw", help="Print responses without formatting"),
    conversation: bool = typer.Option(
        False, "--conversation", "-c", help="Start an interactive chat"
    ),
    system_prompt: Optional[str] = typer.Option(
        None, "--system-prompt", help="System prompt for chat mode"
    ),
    load_conversation: Optional[Path] = typer.Option(
        None, "--load-conversation", help="Continue a saved conversation"
    ),
    save_conversation: Optional[Path] = typer.Option(
        None, "--save-conversation", help="Save the conversation to this file"
    ),
    progress: bool = typer.Option(
        False, "--progress", help="Print a line as each AI finishes"
    ),
    show_metrics: bool = typer.Option(
        False, "--show-metrics", help="Print performance metrics"
    ),
    metrics_file: Optional[Path] = typer.Option(
        None, "--metrics-file", help="Write performance metrics as JSON"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="YAML settings file [default: ~/.chatdelta/config.yaml]"
    ),
):
    """Query multiple AI models in parallel and summarize their answers."""
    options = RunOptions(
        prompt=prompt,
        prompt_file=prompt_file,
        log=log,
        log_dir=log_dir,
        log_format=log_format,
        log_metrics=log_metrics,
        log_errors=log_errors,
        session_id=session_id,
        verbose=verbose,
        quiet=quiet,
        format=output_format,
        no_summary=no_summary,
        only=only,
        exclude=exclude,
        timeout=timeout,
        retries=retries,
        retry_strategy=retry_strategy,
        gpt_model=gpt_model,
        gemini_model=gemini_model,
        claude_model=claude_model,
        max_tokens=max_tokens,
        temperature=temperature,
        list_models=list_models,
        test=test,
        save_responses=save_responses_dir,
        raw=raw,
        conversation=conversation,
        system_prompt=system_prompt,
        load_conversation=load_conversation,
        save_conversation=save_conversation,
        progress=progress,
        show_metrics=show_metrics,
        metrics_file=metrics_file,
        config_path=config_path,
    )
    configure_logging(level=level_for(options.verbose, options.quiet))

    # 1. Validate before any network call
    manager = ConfigManager(settings_path=options.config_path)
    config = manager.validate(options)

    if options.list_models:
        print_available_models()
        return

    registry = ProviderRegistry()
    config = config.model_copy(
        update={"session_id": config.session_id or new_session_id()}
    )
    console = Console(quiet=config.quiet, verbose=config.verbose)

    start_session(config.session_id)
    try:
        _dispatch(config, manager, registry, console, test=options.test)
    finally:
        end_session()


def _dispatch(
    config: Config,
    manager: ConfigManager,
    registry: ProviderRegistry,
    console: Console,
    test: bool = False,
) -> None:
    if test:
        asyncio.run(test_connections(config, registry))
        return

    metrics = SessionMetrics()
    try:
        if config.conversation:
            asyncio.run(run_chat(config, registry, console, metrics=metrics))
        else:
            asyncio.run(execute_prompt(config, manager, registry, console, metrics))
    finally:
        # Fatal errors (log write included) are reported after the metrics
        _export_metrics(config, metrics, console)


async def execute_prompt(
    config: Config,
    manager: ConfigManager,
    registry: ProviderRegistry,
    console: Console,
    metrics: SessionMetrics,
) -> None:
    """Fan out the prompt, summarize, render and log.

    Raises:
        NoProvidersError: If no provider could be selected or built
        AllProvidersFailedError: If every provider failed
        LogWriteError: If the interaction log could not be written,
            after all other output
    """
    assert config.prompt is not None
    started = time.monotonic()

    # 2. Plan and build clients
    plan = manager.build_plan(config, registry, warn=console.warn)
    clients = registry.create_clients(plan, config.client, warn=console.warn)

    interaction_logger: Optional[InteractionLogger] = None
    if config.structured_logging:
        interaction_logger = InteractionLogger(
            config.log_dir, config.log_format, session_id=config.session_id
        )

    # 3. Fan out
    console.info(f"Querying {plural(len(clients), 'AI model')}...")
    executor = FanOutExecutor(
        config.client,
        metrics=metrics,
        on_complete=_progress_printer(console, len(clients)) if config.progress else None,
    )
    result = await executor.execute(clients, config.prompt)

    for outcome in result.outcomes:
        if outcome.failure is not None:
            console.failure(
                f"✗ {outcome.provider.value} error: {outcome.failure.message}"
            )
        else:
            console.detail(f"✓ Received response from {outcome.display_name}")

    # 4. Summarize
    replies = result.replies
    summary: Optional[SummaryOutcome] = None
    if replies:
        console.success(f"✓ Received {plural(len(replies), 'response')}")
        if should_summarize(config, replies):
            console.info("Generating summary...")
            summary = await Summarizer(registry, config.models, executor).summarize(
                config.prompt, replies
            )
            if summary is not None and summary.ok:
                console.success("✓ Summary generated")
            elif summary is not None:
                console.warn(f"Warning: Summary generation failed: {summary.error}")

    record = None
    if interaction_logger is not None:
        record = (
            interaction_logger.builder(
                config.prompt,
                include_metrics=config.log_metrics,
                include_errors=config.log_errors,
            )
            .with_fanout(result)
            .with_summary(summary)
            .build(total_time_ms=(time.monotonic() - started) * 1000)
        )

    if not replies:
        if interaction_logger is not None and record is not None:
            try:
                interaction_logger.write(record)
            except LogWriteError as e:
                console.warn(f"Warning: {e}")
        ensure_success(result)

    # 5. Render
    summary_text = summary.text if summary is not None else None
    renderer = OutputRenderer(config.output_format, verbose=config.verbose, raw=config.raw)
    typer.echo(renderer.render(config.prompt, replies, summary_text))

    if config.log_file is not None:
        try:
            write_transcript(config.log_file, config.prompt, replies, summary_text)
            console.success(f"✓ Conversation logged to {config.log_file}")
        except OSError as e:
            console.warn(f"Warning: Failed to create log file {config.log_file}: {e}")

    if config.save_responses is not None:
        try:
            written = save_responses(config.save_responses, replies)
            console.success(
                f"✓ Saved {plural(len(written), 'response')} to {config.save_responses}"
            )
        except OSError as e:
            console.warn(
                f"Warning: Failed to save responses to {config.save_responses}: {e}"
            )

    # 6. Finalize the interaction log last
    if interaction_logger is not None and record is not None:
        interaction_logger.write(record)
        stats = interaction_logger.get_log_stats()
        console.success(
            f"✓ Logged to structured logs ({stats.total_files} files, "
            f"{stats.size_human_readable()})"
        )


def _progress_printer(console: Console, total: int):
    completed = 0

    def on_complete(outcome: ProviderOutcome) -> None:
        nonlocal completed
        completed += 1
        seconds = outcome.latency_ms / 1000
        status = "done" if outcome.ok else "failed"
        console.info(
            f"[{completed}/{total}] {outcome.display_name} {status} ({seconds:.1f}s)"
        )

    return on_complete


def _export_metrics(config: Config, metrics: SessionMetrics, console: Console) -> None:
    if config.show_metrics:
        typer.echo(format_metrics(metrics.summary(), verbose=config.verbose), err=True)
    if config.metrics_file is not None:
        try:
            metrics.save_to_file(config.metrics_file)
        except OSError as e:
            console.warn(
                f"Warning: Failed to write metrics to {config.metrics_file}: {e}"
            )
        else:
            logger.debug("metrics_exported", path=str(config.metrics_file))
