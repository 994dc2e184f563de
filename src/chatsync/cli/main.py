"""chatsync CLI entry point - assembles all command groups."""
import logging

import click

from . import __version__
from .outbox_cmd import outbox
from .room_cmd import room
from .send_cmd import send


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Log store and sync warnings')
def cli(verbose: bool):
    """chatsync: offline outbox and message cache for the chat client."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.ERROR,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


cli.add_command(outbox)
cli.add_command(room)
cli.add_command(send)


if __name__ == "__main__":
    cli()
