"""Entry point for ``python -m nodeflow``."""

from nodeflow.cli import app

if __name__ == "__main__":
    app()
