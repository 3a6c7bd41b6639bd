"""Result rendering.

Formats collected replies and the optional summary as text, markdown or
JSON, and writes the per-provider dump and the single-file transcript.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import structlog

from chatdelta.models.config import OutputFormat
from chatdelta.models.interaction import Reply

logger = structlog.get_logger()


class OutputRenderer:
    """Renders replies for standard output"""

    def __init__(
        self,
        output_format: OutputFormat = OutputFormat.TEXT,
        verbose: bool = False,
        raw: bool = False,
    ):
        self.output_format = output_format
        self.verbose = verbose
        self.raw = raw

    def render(
        self, prompt: str, replies: Sequence[Reply], summary: Optional[str] = None
    ) -> str:
        """Render replies (in dispatch order) and summary as one string."""
        if not replies:
            return ""
        if self.raw:
            return "\n".join(reply.text for reply in replies)
        if self.output_format == OutputFormat.JSON:
            return self._render_json(prompt, replies, summary)
        if self.output_format == OutputFormat.MARKDOWN:
            return self._render_markdown(prompt, replies, summary)
        return self._render_text(replies, summary)

    def _render_text(self, replies: Sequence[Reply], summary: Optional[str]) -> str:
        if len(replies) == 1:
            return replies[0].text

        if not self.verbose:
            return summary if summary is not None else replies[0].text

        lines: List[str] = []
        for reply in replies:
            lines.append(f"=== {reply.display_name} ===")
            lines.append(f"{reply.text}\n")
        if summary is not None:
            lines.append("=== Summary ===")
            lines.append(summary)
        return "\n".join(lines)

    def _render_markdown(
        self, prompt: str, replies: Sequence[Reply], summary: Optional[str]
    ) -> str:
        md_lines = ["# ChatDelta Results\n", f"**Prompt:** {prompt}\n"]
        for reply in replies:
            md_lines.append(f"## {reply.display_name}\n")
            md_lines.append(f"{reply.text}\n")
        if summary is not None:
            md_lines.append("## Summary\n")
            md_lines.append(f"{summary}\n")
        return "\n".join(md_lines)

    def _render_json(
        self, prompt: str, replies: Sequence[Reply], summary: Optional[str]
    ) -> str:
        payload: Dict[str, object] = {
            "prompt": prompt,
            "responses": {reply.display_name: reply.text for reply in replies},
        }
        if summary is not None:
            payload["summary"] = summary
        return json.dumps(payload, indent=2, ensure_ascii=False)


def response_filename(display_name: str) -> str:
    """``Chat GPT`` -> ``chat_gpt.txt``"""
    return f"{display_name.lower().replace(' ', '_')}.txt"


def save_responses(directory: Path, replies: Sequence[Reply]) -> List[Path]:
    """Write each reply to its own file in ``directory``, replacing old ones.

    Raises:
        OSError: If the directory or a file cannot be written
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for reply in replies:
        path = directory / response_filename(reply.display_name)
        path.write_text(reply.text, encoding="utf-8")
        written.append(path)
    logger.debug("responses_saved", directory=str(directory), files=len(written))
    return written


def write_transcript(
    path: Path, prompt: str, replies: Sequence[Reply], summary: Optional[str] = None
) -> None:
    """Write a human-readable transcript, replacing any existing file.

    Raises:
        OSError: If the file cannot be written
    """
    sections = [f"Prompt:\n{prompt}\n"]
    sections.extend(f"{reply.display_name}:\n{reply.text}\n" for reply in replies)
    if summary is not None:
        sections.append(f"Summary:\n{summary}\n")
    with open(path, "w", encoding="utf-8") as f:
        for section in sections:
            f.write(section + "\n")
