"""Allow running cmdpal as ``python -m cmdpal``."""

from cmdpal.cli import app

if __name__ == "__main__":
    app()
