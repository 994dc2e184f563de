"""Sync trigger: drains the outbox against the remote send operation.

One OutboxSync instance is owned per process (the room screen's hook in a
UI, the CLI otherwise). A drain is attempted once per mount and again on
demand after a retry action or reconnect signal.

Drain process:
1. Skip entirely if another drain is in flight (no queueing)
2. Snapshot the outbox
3. Send each entry once, regardless of earlier failures in the pass
4. Confirmed: remove from outbox, swap the room cache entry
5. Rejected: mark failed in outbox and room cache
"""
import asyncio
import logging
from typing import Optional

from chatsync.config import features
from chatsync.core.constants import DEFAULT_PAGE_LIMIT
from chatsync.core.receipt import emit_receipt
from chatsync.offline.cache import (
    append_room_messages,
    confirm_in_room,
    get_room_messages,
    mark_failed_in_room,
    prune_pending_from_room_by_signature,
    remove_pending_from_room,
)
from chatsync.offline.messages import (
    AnyMessage,
    PendingMessage,
    message_signature,
    new_pending_message,
    status_label,
)
from chatsync.offline.queue import (
    clear_outbox,
    enqueue_outbox,
    get_outbox,
    mark_failed_in_outbox,
    remove_from_outbox,
)
from chatsync.offline.reconcile import merge_pages, reconcile_room
from chatsync.offline.remote import Backend

logger = logging.getLogger("chatsync.sync")


class OutboxSync:
    """Owns the drain guard and the optimistic send flow."""

    def __init__(self, store, backend: Backend, device_id: str = "default",
                 user_id: str = ""):
        self.store = store
        self.backend = backend
        self.device_id = device_id
        self.user_id = user_id
        self._drain_lock = asyncio.Lock()
        self._in_flight: set[str] = set()
        self._confirmed: set[str] = set()

    @property
    def draining(self) -> bool:
        return self._drain_lock.locked()

    async def on_mount(self) -> Optional[dict]:
        """Called once when the owning screen mounts."""
        if not features.FEATURE_DRAIN_ON_MOUNT:
            return None
        return await self.trigger_drain()

    async def trigger_drain(self) -> Optional[dict]:
        """Drain the whole outbox once.

        Returns:
            Summary dict (attempted, delivered, failed), or None when
            another drain was already running and this call was dropped
        """
        if self._drain_lock.locked():
            return None

        async with self._drain_lock:
            outbox = await get_outbox(self.store)
            attempted = delivered = failed = 0

            for item in outbox:
                if not await self._still_queued(item):
                    continue
                attempted += 1
                if await self._deliver(item) is not None:
                    delivered += 1
                else:
                    failed += 1

            summary = {
                "attempted": attempted,
                "delivered": delivered,
                "failed": failed,
            }
            emit_receipt("drain", {"device_id": self.device_id, **summary})
            return summary

    async def send_message(
        self,
        room_id: str,
        kind: str,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
        sender_id: Optional[str] = None,
        created_at: Optional[int] = None,
    ) -> AnyMessage:
        """Optimistic send: cache and enqueue first, then try the backend.

        Raises:
            StopRule: payload does not match kind (nothing is stored)

        Returns:
            The confirmed message, or the pending entry marked failed
        """
        item = new_pending_message(
            room_id,
            sender_id or self.user_id,
            kind,
            text=text,
            image_url=image_url,
            created_at=created_at,
            device_id=self.device_id,
        )
        # A drain started meanwhile must not pick the new entry up from its snapshot
        self._in_flight.add(item.temp_id)
        try:
            await append_room_messages(self.store, room_id, [item])
            await enqueue_outbox(self.store, item, self.device_id)
            confirmed = await self._deliver(item)
        finally:
            self._in_flight.discard(item.temp_id)

        if confirmed is None:
            return item.mark_failed()
        return confirmed

    async def _still_queued(self, item: PendingMessage) -> bool:
        """False once the entry was sent, confirmed or removed since the snapshot."""
        if item.temp_id in self._in_flight or item.temp_id in self._confirmed:
            return False
        current = await get_outbox(self.store)
        if item.temp_id in self._in_flight or item.temp_id in self._confirmed:
            return False
        return any(queued.temp_id == item.temp_id for queued in current)

    async def _deliver(self, item: PendingMessage):
        """One send attempt. Never raises; returns the confirmed message or None."""
        self._in_flight.add(item.temp_id)
        try:
            try:
                message_id = await self.backend.send(
                    item.room_id,
                    item.kind,
                    text=item.text,
                    image_url=item.image_url,
                    client_created_at=item.created_at,
                )
            except Exception as e:
                logger.info("send %s failed: %s", item.temp_id, e)
                await self._fail(item, e)
                return None
            return await self._confirm(item, str(message_id))
        finally:
            self._in_flight.discard(item.temp_id)

    async def _confirm(self, item: PendingMessage, message_id: str):
        confirmed = item.confirm(message_id)
        self._confirmed.add(item.temp_id)
        await remove_from_outbox(self.store, item.temp_id)
        if features.FEATURE_CONFIRM_WITH_SERVER_ID:
            await confirm_in_room(self.store, item.room_id, item.temp_id, confirmed)
        else:
            await prune_pending_from_room_by_signature(
                self.store, item.room_id, message_signature(item)
            )

        emit_receipt("send_confirmed", {
            "device_id": self.device_id,
            "temp_id": item.temp_id,
            "room_id": item.room_id,
            "message_id": message_id,
        })
        return confirmed

    async def _fail(self, item: PendingMessage, error: Exception):
        await mark_failed_in_outbox(self.store, item.temp_id)
        await mark_failed_in_room(self.store, item.room_id, item.temp_id)

        emit_receipt("send_failed", {
            "device_id": self.device_id,
            "temp_id": item.temp_id,
            "room_id": item.room_id,
            "error": f"{type(error).__name__}: {error}",
        })

    async def discard_outbox(self) -> list[PendingMessage]:
        """Give up on every unsent message.

        The entries leave the outbox and their room caches, so nothing keeps
        showing a send that will never be retried.

        Returns:
            The discarded entries
        """
        cleared = await clear_outbox(self.store)
        by_room: dict[str, list[str]] = {}
        for item in cleared:
            by_room.setdefault(item.room_id, []).append(item.temp_id)
        for room_id, temp_ids in sorted(by_room.items()):
            await remove_pending_from_room(self.store, room_id, temp_ids)
        return cleared

    async def apply_server_batch(self, room_id: str, messages) -> list[AnyMessage]:
        """Feed a subscription update into the room cache."""
        return await reconcile_room(self.store, room_id, messages, self.device_id)

    async def refresh_room(self, room_id: str,
                           limit: int = DEFAULT_PAGE_LIMIT) -> list[AnyMessage]:
        """Fetch the latest page and reconcile it. Offline leaves the cache as is."""
        try:
            latest = await self.backend.list_by_room(room_id, limit=limit)
        except Exception as e:
            logger.info("refresh %s failed: %s", room_id, e)
            return await get_room_messages(self.store, room_id)
        return await self.apply_server_batch(room_id, latest)

    async def load_older(self, room_id: str, before: int,
                         limit: int = DEFAULT_PAGE_LIMIT) -> list[AnyMessage]:
        """Load one page older than ``before`` and merge it into the timeline.

        The page is also reconciled into the cache; the cap may evict it.

        Returns:
            Current cache merged with the older page, sorted by createdAt
        """
        current = await get_room_messages(self.store, room_id)
        try:
            page = await self.backend.list_by_room(room_id, limit=limit, before=before)
        except Exception as e:
            logger.info("older page for %s failed: %s", room_id, e)
            return current

        merged = merge_pages(current, page)
        await reconcile_room(self.store, room_id, page, self.device_id)

        emit_receipt("page_merge", {
            "device_id": self.device_id,
            "room_id": room_id,
            "before": before,
            "page_size": len(page),
            "merged_size": len(merged),
        })
        return merged

    async def room_timeline(self, room_id: str) -> list[dict]:
        """Cached timeline for display, each entry with its status label."""
        entries = []
        for m in await get_room_messages(self.store, room_id):
            entry = m.to_dict()
            entry["statusLabel"] = status_label(m)
            entries.append(entry)
        return entries
