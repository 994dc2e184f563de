"""Outbox commands: status, list, drain, clear."""
import datetime

import click

from chatsync.offline import queue
from . import runtime
from .output import print_error, print_json, print_success, table


def _fmt_ms(ms: int) -> str:
    return datetime.datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


@click.group()
def outbox():
    """Pending sends awaiting confirmation."""
    pass


@outbox.command()
def status():
    """Show outbox counts by status and room."""
    config = runtime.load_config()
    store = runtime.open_store(config)
    print_json(runtime.run(queue.get_outbox_status(store)))


@outbox.command('list')
@click.option('--limit', '-n', default=10, help='Number of entries to show')
def list_outbox(limit: int):
    """List the oldest pending sends."""
    config = runtime.load_config()
    store = runtime.open_store(config)
    items = runtime.run(queue.peek_outbox(store, limit))

    if not items:
        click.echo("Outbox is empty")
        return

    table(
        ["temp id", "room", "kind", "status", "created"],
        [[i.temp_id, i.room_id, i.kind, i.status, _fmt_ms(i.created_at)] for i in items],
    )


@outbox.command()
def drain():
    """Resend every outbox entry once."""
    config = runtime.load_config()

    async def _drain(sync):
        return await sync.trigger_drain()

    result = runtime.run(runtime.with_sync(config, _drain))
    if result is None:
        print_error("A drain is already running")
        raise SystemExit(1)

    if result["failed"]:
        print_error(f"{result['failed']} of {result['attempted']} sends failed")
    else:
        print_success(f"Delivered {result['delivered']} messages")
    print_json(result)


@outbox.command()
@click.option('--yes', is_flag=True, help='Skip confirmation')
def clear(yes: bool):
    """Drop every outbox entry and its cached copy without sending."""
    config = runtime.load_config()
    store = runtime.open_store(config)
    size = len(runtime.run(queue.get_outbox(store)))
    if size == 0:
        click.echo("Outbox already empty")
        return

    if yes or click.confirm(f"Drop {size} unsent messages?"):
        async def _discard(sync):
            return await sync.discard_outbox()

        cleared = runtime.run(runtime.with_sync(config, _discard))
        print_success(f"Outbox cleared ({len(cleared)} dropped)")
