"""Allows running ChatDelta as a module: python -m chatdelta"""

from chatdelta.cli import app

if __name__ == "__main__":
    app()
