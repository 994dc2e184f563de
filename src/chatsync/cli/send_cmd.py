"""Send command: optimistic send through the outbox."""
import click

from chatsync.core.receipt import StopRule
from chatsync.offline.messages import PendingMessage
from . import runtime
from .output import print_error, print_json, print_success


@click.command()
@click.argument('room_id')
@click.option('--text', default=None, help='Message text')
@click.option('--image-url', default=None, help='Image URL (image message)')
@click.option('--sender', default=None, help='Sender id (defaults to CHATSYNC_USER_ID)')
def send(room_id: str, text: str | None, image_url: str | None, sender: str | None):
    """Send a message; it stays in the outbox if the backend is unreachable."""
    config = runtime.load_config()
    kind = "image" if image_url is not None else "text"
    sender_id = sender or config.user_id
    if not sender_id:
        print_error("No sender: pass --sender or set CHATSYNC_USER_ID")
        raise SystemExit(2)

    async def _send(sync):
        return await sync.send_message(room_id, kind, text=text,
                                       image_url=image_url, sender_id=sender_id)

    try:
        result = runtime.run(runtime.with_sync(config, _send))
    except StopRule as e:
        print_error(str(e))
        raise SystemExit(2)

    if isinstance(result, PendingMessage):
        print_error("Send failed; message kept in outbox for retry")
        print_json(result.to_dict())
        raise SystemExit(1)

    print_success(f"Sent {result.id}")
    print_json(result.to_dict())
