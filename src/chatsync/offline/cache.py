"""Local message cache: one ordered, bounded blob per room.

Every write sorts entries ascending by createdAt (stable) and keeps the
most recent MAX_MESSAGES_PER_ROOM, evicting the oldest first. Rooms and
users directories are cached as plain blobs for the room list screen.
"""
import logging
from typing import Callable, Iterable, Optional

from chatsync.core.constants import (
    MAX_MESSAGES_PER_ROOM,
    ROOMS_KEY,
    USERS_KEY,
    messages_key,
)
from chatsync.offline.messages import (
    AnyMessage,
    Message,
    PendingMessage,
    message_from_dict,
    message_signature,
)
from chatsync.offline.store import safe_get, safe_set, safe_update

logger = logging.getLogger("chatsync.cache")


def sort_and_trim(messages: Iterable[AnyMessage],
                  limit: int = MAX_MESSAGES_PER_ROOM) -> list[AnyMessage]:
    ordered = sorted(messages, key=lambda m: m.created_at)
    if len(ordered) > limit:
        ordered = ordered[-limit:]
    return ordered


def decode_messages(raw: list) -> list[AnyMessage]:
    """Decode stored entries, skipping any that are malformed."""
    decoded = []
    for entry in raw if isinstance(raw, list) else []:
        try:
            decoded.append(message_from_dict(entry))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("skipping malformed cache entry: %s", e)
    return decoded


def encode_messages(messages: Iterable[AnyMessage]) -> list[dict]:
    return [m.to_dict() for m in messages]


async def get_room_messages(store, room_id: str,
                            fallback: Optional[list] = None) -> list[AnyMessage]:
    raw = await safe_get(store, messages_key(room_id), None)
    if raw is None:
        return list(fallback) if fallback is not None else []
    return decode_messages(raw)


async def update_room_messages(
    store,
    room_id: str,
    fn: Callable[[list[AnyMessage]], Iterable[AnyMessage]],
) -> Optional[list[AnyMessage]]:
    """Read-modify-write one room under its key lock, then sort and trim.

    Returns:
        The stored sequence, or None when the write was dropped
    """
    result = []

    def apply(raw):
        trimmed = sort_and_trim(fn(decode_messages(raw)))
        result[:] = trimmed
        return encode_messages(trimmed)

    written = await safe_update(store, messages_key(room_id), [], apply)
    if written is None:
        return None
    return result


async def set_room_messages(store, room_id: str,
                            messages: Iterable[AnyMessage]) -> Optional[list[AnyMessage]]:
    """Replace a room's cache with ``messages`` sorted and trimmed."""
    messages = list(messages)
    return await update_room_messages(store, room_id, lambda _: messages)


async def append_room_messages(store, room_id: str,
                               new_messages: Iterable[AnyMessage]) -> Optional[list[AnyMessage]]:
    new_messages = list(new_messages)
    return await update_room_messages(store, room_id,
                                      lambda existing: existing + new_messages)


async def prune_pending_from_room_by_signature(store, room_id: str,
                                               signature: str) -> Optional[list[AnyMessage]]:
    """Drop pending entries with ``signature``; confirmed ones stay."""
    def prune(existing):
        return [
            m for m in existing
            if not (isinstance(m, PendingMessage) and message_signature(m) == signature)
        ]

    return await update_room_messages(store, room_id, prune)


async def remove_pending_from_room(store, room_id: str,
                                   temp_ids: Iterable[str]) -> Optional[list[AnyMessage]]:
    """Drop the pending entries whose temp token is in ``temp_ids``."""
    temp_ids = set(temp_ids)

    def drop(existing):
        return [
            m for m in existing
            if not (isinstance(m, PendingMessage) and m.temp_id in temp_ids)
        ]

    return await update_room_messages(store, room_id, drop)


async def mark_failed_in_room(store, room_id: str,
                              temp_id: str) -> Optional[list[AnyMessage]]:
    def mark(existing):
        return [
            m.mark_failed() if isinstance(m, PendingMessage) and m.temp_id == temp_id else m
            for m in existing
        ]

    return await update_room_messages(store, room_id, mark)


async def confirm_in_room(store, room_id: str, temp_id: str,
                          message: Message) -> Optional[list[AnyMessage]]:
    """Swap the pending entry ``temp_id`` for its confirmed form.

    If the feed already delivered a message with the same id, the pending
    entry is only removed.
    """
    def confirm(existing):
        kept = [
            m for m in existing
            if not (isinstance(m, PendingMessage) and m.temp_id == temp_id)
        ]
        if not any(isinstance(m, Message) and m.id == message.id for m in kept):
            kept.append(message)
        return kept

    return await update_room_messages(store, room_id, confirm)


# Directories

async def get_rooms(store) -> list[dict]:
    return await safe_get(store, ROOMS_KEY, [])


async def set_rooms(store, rooms: list[dict]) -> bool:
    return await safe_set(store, ROOMS_KEY, rooms)


async def get_users(store) -> list[dict]:
    return await safe_get(store, USERS_KEY, [])


async def set_users(store, users: list[dict]) -> bool:
    return await safe_set(store, USERS_KEY, users)
