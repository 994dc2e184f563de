"""Device-wide outbox of sends the backend has not confirmed yet.

The outbox is a single blob spanning all rooms. Each mutation is a
read-modify-write of the whole blob, serialised per key by the store so
concurrent mutations from one process do not lose updates.
"""
import logging
from collections import Counter
from typing import Optional

from chatsync.core.constants import OUTBOX_KEY, STATUS_FAILED, STATUS_PENDING
from chatsync.core.receipt import emit_receipt
from chatsync.offline.messages import PendingMessage, message_signature
from chatsync.offline.store import safe_get, safe_update

logger = logging.getLogger("chatsync.outbox")


def _decode(raw) -> list[PendingMessage]:
    items = []
    for entry in raw if isinstance(raw, list) else []:
        try:
            items.append(PendingMessage.from_dict(entry))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("skipping malformed outbox entry: %s", e)
    return items


def _encode(items: list[PendingMessage]) -> list[dict]:
    return [item.to_dict() for item in items]


async def _mutate(store, fn) -> Optional[list[PendingMessage]]:
    result = []

    def apply(raw):
        result[:] = fn(_decode(raw))
        return _encode(result)

    if await safe_update(store, OUTBOX_KEY, [], apply) is None:
        return None
    return result


async def get_outbox(store) -> list[PendingMessage]:
    return _decode(await safe_get(store, OUTBOX_KEY, []))


async def set_outbox(store, items: list[PendingMessage]) -> bool:
    items = list(items)
    return await _mutate(store, lambda _: items) is not None


async def enqueue_outbox(store, item: PendingMessage, device_id: str = "default") -> int:
    """Append one pending send.

    Returns:
        Outbox size after the append (0 if the write was dropped)
    """
    items = await _mutate(store, lambda existing: existing + [item])
    size = len(items) if items is not None else 0

    emit_receipt("outbox_enqueue", {
        "device_id": device_id,
        "temp_id": item.temp_id,
        "room_id": item.room_id,
        "kind": item.kind,
        "outbox_size": size,
    })

    return size


async def remove_from_outbox_by_signature(store, signature: str) -> int:
    """Delete every entry whose derived signature matches.

    Returns:
        Number of entries removed
    """
    removed = []

    def drop(existing):
        kept = []
        for item in existing:
            if message_signature(item) == signature:
                removed.append(item)
            else:
                kept.append(item)
        return kept

    if await _mutate(store, drop) is None:
        return 0
    return len(removed)


async def remove_from_outbox(store, temp_id: str) -> bool:
    """Delete the entry with ``temp_id``. Returns True if one was removed."""
    removed = []

    def drop(existing):
        kept = [item for item in existing if item.temp_id != temp_id]
        removed.append(len(existing) - len(kept))
        return kept

    if await _mutate(store, drop) is None:
        return False
    return removed[0] > 0


async def mark_failed_in_outbox(store, temp_id: str) -> bool:
    """Flip one entry to failed without removing it."""
    hits = []

    def mark(existing):
        updated = []
        for item in existing:
            if item.temp_id == temp_id:
                hits.append(item)
                item = item.mark_failed()
            updated.append(item)
        return updated

    if await _mutate(store, mark) is None:
        return False
    return bool(hits)


async def clear_outbox(store) -> list[PendingMessage]:
    """Drop every entry. Returns the entries that were cleared."""
    cleared = []

    def drop_all(existing):
        cleared.extend(existing)
        return []

    if await _mutate(store, drop_all) is None:
        return []
    return cleared


async def peek_outbox(store, n: int = 10) -> list[PendingMessage]:
    """Oldest N entries by createdAt, without removing them."""
    items = sorted(await get_outbox(store), key=lambda item: item.created_at)
    return items[:n]


async def get_outbox_status(store) -> dict:
    """Summary counts for status displays.

    Returns:
        Dict with total, pending_count, failed_count and per-room counts
    """
    items = await get_outbox(store)
    statuses = Counter(item.status for item in items)
    rooms = Counter(item.room_id for item in items)
    return {
        "total": len(items),
        "pending_count": statuses.get(STATUS_PENDING, 0),
        "failed_count": statuses.get(STATUS_FAILED, 0),
        "rooms": dict(sorted(rooms.items())),
        "oldest_created_at": min((item.created_at for item in items), default=None),
    }
