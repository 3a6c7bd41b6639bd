"""ChatDelta CLI Package.

Command-line interface that sends one prompt to several AI models at
once and summarizes where their answers agree and differ.

Usage:
    chatdelta "What is the capital of France?"
    chatdelta --only gpt,claude --format markdown "Explain TCP"
    echo "prompt" | chatdelta -
    chatdelta --conversation
    chatdelta --list-models
    chatdelta --test
"""

import typer

from chatdelta.cli.run import run_command

# A single registered command runs without a subcommand name
app = typer.Typer(
    help="ChatDelta: query multiple AI models and compare their answers"
)

app.command(name="chatdelta")(run_command)

__all__ = ["app", "run_command"]
