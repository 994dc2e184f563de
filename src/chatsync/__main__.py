"""
Entry point for running chatsync as a module.

Usage:
    python -m chatsync [command] [options]

Example:
    python -m chatsync outbox status
    python -m chatsync send r1 --text "hello"
    python -m chatsync room show r1
"""

from chatsync.cli.main import cli

if __name__ == "__main__":
    cli()
