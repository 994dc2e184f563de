"""Reconciliation of server batches with the local room cache.

Three sources are merged for a room: the new server batch, cached
confirmed messages, and cached pending/failed sends. Confirmed messages
are deduplicated by id with the server batch winning. A pending entry is
dropped when a confirmed message with its signature is present, each
confirmed message superseding at most one pending entry. Everything else
survives, so unconfirmed sends outlive restarts and partial syncs.

A server that stamps createdAt itself breaks the signature match; the
pending entry then stays visible next to the confirmed one until the
drain swaps it using the id returned by the send call.
"""
from collections import Counter
from typing import Iterable

from chatsync.config import features
from chatsync.core.receipt import emit_receipt
from chatsync.offline.cache import get_room_messages, sort_and_trim, update_room_messages
from chatsync.offline.messages import (
    AnyMessage,
    Message,
    PendingMessage,
    message_key,
    message_signature,
)
from chatsync.offline.queue import remove_from_outbox


def merge_room_messages(
    server_messages: Iterable[Message],
    cached: Iterable[AnyMessage],
) -> tuple[list[AnyMessage], dict]:
    """Pure merge step.

    Args:
        server_messages: Newly received confirmed messages
        cached: Current cache contents (confirmed and pending)

    Returns:
        (merged sequence sorted by createdAt, stats dict)
    """
    cached = list(cached)

    confirmed: dict[str, Message] = {}
    for m in cached:
        if isinstance(m, Message):
            confirmed[m.id] = m
    server_count = 0
    for m in server_messages:
        confirmed[m.id] = m
        server_count += 1

    available = Counter(message_signature(m) for m in confirmed.values())
    multiset = features.FEATURE_MULTISET_SIGNATURE_MATCH

    kept: list[PendingMessage] = []
    seen_temp_ids = set()
    superseded: list[str] = []
    for m in cached:
        if not isinstance(m, PendingMessage) or m.temp_id in seen_temp_ids:
            continue
        seen_temp_ids.add(m.temp_id)
        sig = message_signature(m)
        if available[sig] > 0:
            superseded.append(m.temp_id)
            if multiset:
                available[sig] -= 1
            continue
        kept.append(m)

    merged = sorted([*confirmed.values(), *kept], key=lambda m: m.created_at)
    stats = {
        "server_count": server_count,
        "pending_kept": len(kept),
        "pending_superseded": len(superseded),
        "superseded_temp_ids": superseded,
    }
    return merged, stats


async def reconcile_room(store, room_id: str, server_messages: Iterable[Message],
                         device_id: str = "default") -> list[AnyMessage]:
    """Merge a server batch into the room cache and persist it.

    Messages for other rooms are ignored. The cache cap applies on write.
    Pending entries superseded by the batch are delivered already, so they
    also leave the outbox (by temp token) and are never resent.

    Returns:
        The stored sequence (the merged, trimmed one if the write was dropped)
    """
    batch = [m for m in server_messages if m.room_id == room_id]
    merged = []
    stats = {}

    def merge(existing):
        result, counts = merge_room_messages(batch, existing)
        merged[:] = result
        stats.update(counts)
        return result

    stored = await update_room_messages(store, room_id, merge)
    if stored is None:
        if not stats:
            merge(await get_room_messages(store, room_id))
        stored = sort_and_trim(merged)

    for temp_id in stats.get("superseded_temp_ids", []):
        await remove_from_outbox(store, temp_id)

    emit_receipt("reconcile", {
        "device_id": device_id,
        "room_id": room_id,
        "server_count": stats.get("server_count", len(batch)),
        "pending_kept": stats.get("pending_kept", 0),
        "pending_superseded": stats.get("pending_superseded", 0),
        "cache_size": len(stored),
    })

    return stored


def merge_pages(latest: Iterable[AnyMessage],
                older: Iterable[AnyMessage]) -> list[AnyMessage]:
    """Merge an older history page into the live window.

    Entries are keyed by id (temp token for pending ones); the live window
    wins on collision. Result is sorted by createdAt.
    """
    older = list(older)
    latest = list(latest)
    if not older:
        return latest
    by_key: dict[str, AnyMessage] = {}
    for m in older + latest:
        by_key[message_key(m)] = m
    return sorted(by_key.values(), key=lambda m: m.created_at)
