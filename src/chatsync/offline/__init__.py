"""Offline mode for the chat client.

Messages are cached per room and sends are queued locally. The outbox
drains when connectivity allows; the timeline shows unconfirmed sends
with a Sending…/Failed label until the backend confirms them.

Usage:
    from chatsync.offline import MemoryStore, OutboxSync

    sync = OutboxSync(MemoryStore(), backend, user_id="u1")
    await sync.on_mount()
    await sync.send_message("r1", "text", text="hi")
    await sync.apply_server_batch("r1", messages)
"""
from chatsync.offline.messages import (
    AnyMessage,
    Message,
    PendingMessage,
    is_pending,
    message_signature,
    new_pending_message,
)
from chatsync.offline.store import FileStore, MemoryStore
from chatsync.offline.cache import (
    append_room_messages,
    get_room_messages,
    set_room_messages,
    get_rooms,
    set_rooms,
    get_users,
    set_users,
)
from chatsync.offline.queue import (
    enqueue_outbox,
    get_outbox,
    get_outbox_status,
    mark_failed_in_outbox,
    remove_from_outbox_by_signature,
)
from chatsync.offline.reconcile import merge_pages, merge_room_messages, reconcile_room
from chatsync.offline.remote import Backend, HttpBackend, RemoteError
from chatsync.offline.sync import OutboxSync

__all__ = [
    # Types
    "AnyMessage",
    "Message",
    "PendingMessage",
    "is_pending",
    "message_signature",
    "new_pending_message",
    # Storage
    "FileStore",
    "MemoryStore",
    # Room cache
    "append_room_messages",
    "get_room_messages",
    "set_room_messages",
    "get_rooms",
    "set_rooms",
    "get_users",
    "set_users",
    # Outbox
    "enqueue_outbox",
    "get_outbox",
    "get_outbox_status",
    "mark_failed_in_outbox",
    "remove_from_outbox_by_signature",
    # Reconciliation
    "merge_pages",
    "merge_room_messages",
    "reconcile_room",
    # Remote
    "Backend",
    "HttpBackend",
    "RemoteError",
    # Sync
    "OutboxSync",
]
