"""Tests for the chat read loop."""

import threading

import pytest

from chatdelta.cli.chat import run_chat
from chatdelta.cli.utils import Console
from chatdelta.models.config import ClientConfig, Config, ModelSettings, ProviderId
from chatdelta.observability.session_metrics import SessionMetrics


def make_config(tmp_path, **kwargs) -> Config:
    return Config(
        client=ClientConfig(retry_base_delay_seconds=0.0),
        models=ModelSettings(),
        log_dir=tmp_path / "logs",
        conversation=True,
        **kwargs,
    )


def scripted_input(lines):
    """read_line stand-in that records which thread called it."""
    pending = list(lines)
    threads = []

    def read_line(prompt: str) -> str:
        threads.append(threading.get_ident())
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read_line, threads


class TestRunChat:
    """Tests for run_chat."""

    @pytest.mark.asyncio
    async def test_input_read_off_event_loop_thread(
        self, tmp_path, make_registry, fake_factories
    ):
        """Reading a line must not block the event loop thread."""
        factories = fake_factories()
        read_line, threads = scripted_input(["hello", "exit"])

        await run_chat(
            make_config(tmp_path, only=[ProviderId.CLAUDE]),
            make_registry(factories=factories),
            Console(quiet=True),
            read_line=read_line,
        )

        assert len(threads) == 2
        assert threading.get_ident() not in threads
        assert factories.calls(ProviderId.CLAUDE) == 1

    @pytest.mark.asyncio
    async def test_turns_feed_session_metrics(
        self, tmp_path, make_registry, fake_factories
    ):
        factories = fake_factories()
        metrics = SessionMetrics()
        read_line, _ = scripted_input(["one", "", "two"])

        await run_chat(
            make_config(tmp_path, prompt="zero"),
            make_registry(factories=factories),
            Console(quiet=True),
            metrics=metrics,
            read_line=read_line,
        )

        # the -c prompt plus two typed lines; blank lines are skipped
        assert factories.calls(ProviderId.GPT) == 3
        assert metrics.session_snapshot().requests_total == 3
