"""CLI entry point.

Allows running the CLI as a module: python -m chatdelta.cli
"""

from chatdelta.cli import app

if __name__ == "__main__":
    app()
