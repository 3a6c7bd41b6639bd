"""Tests for result rendering and file output."""

import json

import pytest

from chatdelta.models.config import OutputFormat, ProviderId
from chatdelta.models.interaction import Reply
from chatdelta.output.renderer import (
    OutputRenderer,
    response_filename,
    save_responses,
    write_transcript,
)


def make_reply(provider: ProviderId, name: str, text: str) -> Reply:
    return Reply(
        provider=provider, display_name=name, model="m", text=text, latency_ms=10
    )


@pytest.fixture
def replies():
    return [
        make_reply(ProviderId.GPT, "ChatGPT", "gpt answer"),
        make_reply(ProviderId.GEMINI, "Gemini", "gemini answer"),
    ]


class TestTextFormat:
    """Tests for the default text output."""

    def test_single_reply_printed_alone(self):
        renderer = OutputRenderer(verbose=True)
        only = [make_reply(ProviderId.CLAUDE, "Claude", "just claude")]
        assert renderer.render("q", only, summary="ignored") == "just claude"

    def test_summary_when_not_verbose(self, replies):
        assert OutputRenderer().render("q", replies, summary="merged") == "merged"

    def test_first_reply_without_summary(self, replies):
        assert OutputRenderer().render("q", replies) == "gpt answer"

    def test_verbose_sections(self, replies):
        output = OutputRenderer(verbose=True).render("q", replies, summary="merged")

        assert output.index("=== ChatGPT ===") < output.index("=== Gemini ===")
        assert "gemini answer" in output
        assert output.endswith("=== Summary ===\nmerged")

    def test_no_replies(self):
        assert OutputRenderer().render("q", []) == ""


class TestOtherFormats:
    """Tests for markdown, json and raw output."""

    def test_markdown(self, replies):
        output = OutputRenderer(OutputFormat.MARKDOWN).render(
            "What is Rust?", replies, summary="merged"
        )

        assert output.startswith("# ChatDelta Results\n")
        assert "**Prompt:** What is Rust?" in output
        assert "## ChatGPT" in output
        assert "## Gemini" in output
        assert "## Summary" in output

    def test_json(self, replies):
        output = OutputRenderer(OutputFormat.JSON).render("q", replies)
        payload = json.loads(output)

        assert payload["prompt"] == "q"
        assert payload["responses"] == {
            "ChatGPT": "gpt answer",
            "Gemini": "gemini answer",
        }
        assert "summary" not in payload

    def test_json_with_summary(self, replies):
        payload = json.loads(
            OutputRenderer(OutputFormat.JSON).render("q", replies, summary="s")
        )
        assert payload["summary"] == "s"

    def test_raw_ignores_format(self, replies):
        renderer = OutputRenderer(OutputFormat.JSON, verbose=True, raw=True)
        assert renderer.render("q", replies, summary="s") == (
            "gpt answer\ngemini answer"
        )


class TestFiles:
    """Tests for saved replies and transcripts."""

    def test_response_filename(self):
        assert response_filename("ChatGPT") == "chatgpt.txt"
        assert response_filename("Chat GPT") == "chat_gpt.txt"

    def test_save_responses(self, tmp_path, replies):
        target = tmp_path / "nested" / "out"

        written = save_responses(target, replies)

        assert [p.name for p in written] == ["chatgpt.txt", "gemini.txt"]
        assert (target / "gemini.txt").read_text(encoding="utf-8") == "gemini answer"

    def test_save_responses_overwrites(self, tmp_path, replies):
        (tmp_path / "chatgpt.txt").write_text("stale")
        save_responses(tmp_path, replies)
        assert (tmp_path / "chatgpt.txt").read_text() == "gpt answer"

    def test_transcript(self, tmp_path, replies):
        path = tmp_path / "conversation.txt"
        path.write_text("old content")

        write_transcript(path, "the prompt", replies, summary="merged")

        content = path.read_text(encoding="utf-8")
        assert "old content" not in content
        assert content.startswith("Prompt:\nthe prompt\n")
        assert "ChatGPT:\ngpt answer\n" in content
        assert content.rstrip().endswith("Summary:\nmerged")
