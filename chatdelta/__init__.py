"""ChatDelta: query multiple AI providers in parallel and connect their replies.

Usage:
    chatdelta "Explain the CAP theorem"
    chatdelta --only gpt,claude --format markdown "Compare Rust and Go"
    chatdelta --conversation
"""

__version__ = "0.4.0"
