"""Room commands: show, refresh, older."""
import click

from chatsync.offline.cache import get_rooms
from chatsync.offline.messages import status_label
from . import runtime
from .output import print_json, table


def _timeline_rows(entries: list[dict]) -> list[list[str]]:
    rows = []
    for e in entries:
        payload = e.get("text") if e.get("text") is not None else e.get("imageUrl", "")
        rows.append([
            str(e["createdAt"]),
            e["senderId"],
            payload,
            e.get("statusLabel") or "",
        ])
    return rows


@click.group()
def room():
    """Cached room timelines."""
    pass


@room.command('list')
def list_rooms():
    """List cached rooms."""
    config = runtime.load_config()
    rooms = runtime.run(get_rooms(runtime.open_store(config)))
    if not rooms:
        click.echo("No cached rooms")
        return
    table(["id", "name", "type"],
          [[r.get("_id", ""), r.get("name", ""), "Group" if r.get("isGroup") else "Direct"]
           for r in rooms])


@room.command()
@click.argument('room_id')
@click.option('--json', 'as_json', is_flag=True, help='Print raw entries')
def show(room_id: str, as_json: bool):
    """Show the cached timeline of a room."""
    config = runtime.load_config()

    async def _timeline(sync):
        return await sync.room_timeline(room_id)

    entries = runtime.run(runtime.with_sync(config, _timeline))
    if as_json:
        print_json(entries)
        return
    if not entries:
        click.echo("No cached messages")
        return
    table(["created", "sender", "message", "status"], _timeline_rows(entries))


@room.command()
@click.argument('room_id')
def refresh(room_id: str):
    """Fetch the latest page and reconcile it with the cache."""
    config = runtime.load_config()

    async def _refresh(sync):
        await sync.refresh_room(room_id, limit=config.page_limit)
        return await sync.room_timeline(room_id)

    entries = runtime.run(runtime.with_sync(config, _refresh))
    click.echo(f"{len(entries)} cached messages")


@room.command()
@click.argument('room_id')
@click.option('--before', type=int, default=None,
              help='Load messages older than this timestamp (ms); defaults to oldest cached')
@click.option('--limit', '-n', type=int, default=None, help='Page size')
def older(room_id: str, before: int | None, limit: int | None):
    """Load one page of older history."""
    config = runtime.load_config()

    async def _older(sync):
        cutoff = before
        if cutoff is None:
            timeline = await sync.room_timeline(room_id)
            if not timeline:
                return None
            cutoff = timeline[0]["createdAt"]
        merged = await sync.load_older(room_id, cutoff, limit or config.page_limit)
        return [dict(m.to_dict(), statusLabel=status_label(m)) for m in merged]

    entries = runtime.run(runtime.with_sync(config, _older))
    if entries is None:
        click.echo("No cached messages; pass --before")
        return
    table(["created", "sender", "message", "status"], _timeline_rows(entries))
