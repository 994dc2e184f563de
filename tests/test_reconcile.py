"""Tests for reconciliation and page merging."""
import asyncio

import chatsync.config.features as features
from chatsync.core.constants import OUTBOX_KEY, messages_key
from chatsync.offline.cache import get_room_messages, set_room_messages
from chatsync.offline.messages import Message, PendingMessage, message_signature
from chatsync.offline.queue import enqueue_outbox, get_outbox, set_outbox
from chatsync.offline.reconcile import merge_pages, merge_room_messages, reconcile_room
from conftest import make_message, make_pending
from test_store import BrokenStore


class TestMergeRoomMessages:
    """Pure merge of server batch with cached entries."""

    def test_server_wins_on_id(self):
        cached = [make_message("m1", 1000, text="old")]
        server = [make_message("m1", 1000, text="edited")]
        merged, _ = merge_room_messages(server, cached)
        assert [m.text for m in merged] == ["edited"]

    def test_cached_confirmed_kept(self):
        cached = [make_message("m0", 500)]
        merged, _ = merge_room_messages([make_message("m1", 1000)], cached)
        assert [m.id for m in merged] == ["m0", "m1"]

    def test_unmatched_pending_kept(self):
        cached = [make_pending("t1", 1500, text="later")]
        merged, stats = merge_room_messages([make_message("m1", 1000)], cached)
        assert [type(m) for m in merged] == [Message, PendingMessage]
        assert stats["pending_kept"] == 1

    def test_matched_pending_superseded(self):
        pending = make_pending("t1", 1000, text="hi")
        server = make_message("m1", 1000, text="hi")
        merged, stats = merge_room_messages([server], [pending])
        assert merged == [server]
        assert stats["pending_superseded"] == 1

    def test_failed_entries_survive(self):
        failed = make_pending("t1", 1000, status="failed")
        merged, _ = merge_room_messages([], [failed])
        assert merged == [failed]

    def test_server_time_leaves_duplicate_visible(self):
        pending = make_pending("t1", 1000, text="hi")
        server = make_message("m1", 1007, text="hi")
        merged, _ = merge_room_messages([server], [pending])
        assert len(merged) == 2

    def test_identical_pending_sends_both_kept(self):
        a = make_pending("t1", 1000, text="hi")
        b = make_pending("t2", 1000, text="hi")
        merged, _ = merge_room_messages([], [a, b])
        assert [m.temp_id for m in merged] == ["t1", "t2"]

    def test_one_confirmation_consumes_one_pending(self):
        a = make_pending("t1", 1000, text="hi")
        b = make_pending("t2", 1000, text="hi")
        server = make_message("m1", 1000, text="hi")
        merged, stats = merge_room_messages([server], [a, b])
        assert [type(m) for m in merged] == [Message, PendingMessage]
        assert stats["pending_superseded"] == 1

    def test_set_matching_when_multiset_disabled(self, monkeypatch):
        monkeypatch.setattr(features, "FEATURE_MULTISET_SIGNATURE_MATCH", False)
        a = make_pending("t1", 1000, text="hi")
        b = make_pending("t2", 1000, text="hi")
        merged, _ = merge_room_messages([make_message("m1", 1000, text="hi")], [a, b])
        assert [type(m) for m in merged] == [Message]


class TestReconcileRoom:
    """Reconciliation persists through the room cache."""

    def test_idempotent_byte_for_byte(self, store):
        asyncio.run(set_room_messages(store, "r1", [
            make_message("m0", 100),
            make_pending("t1", 900, text="queued"),
            make_pending("t2", 1000, text="hi", status="failed"),
        ]))
        server = [make_message("m1", 1000, text="hi"), make_message("m2", 1000, text="hey"),
                  make_message("m3", 1200)]

        asyncio.run(reconcile_room(store, "r1", server))
        first = store.data[messages_key("r1")]
        asyncio.run(reconcile_room(store, "r1", server))
        second = store.data[messages_key("r1")]

        assert first == second

    def test_confirmation_removes_pending_and_outbox(self, store):
        pending = make_pending("t1", 1000, text="hi")
        asyncio.run(set_room_messages(store, "r1", [pending]))
        asyncio.run(enqueue_outbox(store, pending))

        server = make_message("m1", 1000, text="hi")
        stored = asyncio.run(reconcile_room(store, "r1", [server]))

        sig = message_signature(server)
        assert [m for m in stored if message_signature(m) == sig] == [server]
        assert asyncio.run(get_outbox(store)) == []
        assert store.data[OUTBOX_KEY] == "[]"

    def test_one_confirmation_clears_one_identical_send(self, store):
        a = make_pending("t1", 1000, text="hi")
        b = make_pending("t2", 1000, text="hi")
        asyncio.run(set_room_messages(store, "r1", [a, b]))
        asyncio.run(set_outbox(store, [a, b]))

        asyncio.run(reconcile_room(store, "r1", [make_message("m1", 1000, text="hi")]))

        assert [i.temp_id for i in asyncio.run(get_outbox(store))] == ["t2"]

    def test_unmatched_pending_stays_queued(self, store):
        pending = make_pending("t1", 1000, text="hi")
        asyncio.run(set_room_messages(store, "r1", [pending]))
        asyncio.run(set_outbox(store, [pending]))

        asyncio.run(reconcile_room(store, "r1", [make_message("m1", 1001, text="hi")]))

        assert [i.temp_id for i in asyncio.run(get_outbox(store))] == ["t1"]

    def test_dropped_write_returns_trimmed_merge(self, store):
        asyncio.run(set_room_messages(store, "r1", [make_pending("t1", 5000)]))
        broken = BrokenStore(fail_read=False, fail_write=True, data=store.data)
        server = [make_message(f"m{i}", i) for i in range(250)]

        stored = asyncio.run(reconcile_room(broken, "r1", server))

        assert len(stored) == 200
        assert stored[-1].temp_id == "t1"
        assert [type(m) for m in asyncio.run(get_room_messages(broken, "r1"))] == [PendingMessage]

    def test_unreadable_store_still_trims(self):
        broken = BrokenStore()
        server = [make_message(f"m{i}", i) for i in range(250)]
        stored = asyncio.run(reconcile_room(broken, "r1", server))
        assert len(stored) == 200
        assert stored[0].id == "m50"

    def test_ignores_other_rooms(self, store):
        stored = asyncio.run(reconcile_room(store, "r1", [
            make_message("m1", 1, room_id="r1"),
            make_message("m2", 2, room_id="r2"),
        ]))
        assert [m.id for m in stored] == ["m1"]

    def test_applies_cap(self, store):
        server = [make_message(f"m{i}", i) for i in range(250)]
        stored = asyncio.run(reconcile_room(store, "r1", server))
        assert len(stored) == 200
        assert stored[0].id == "m50"

    def test_emits_receipt(self, store, capsys):
        asyncio.run(reconcile_room(store, "r1", [make_message("m1", 1)]))
        assert '"receipt_type": "reconcile"' in capsys.readouterr().out

    def test_pending_survives_restart(self, store):
        asyncio.run(set_room_messages(store, "r1", [make_pending("t1", 2000)]))
        asyncio.run(reconcile_room(store, "r1", [make_message("m1", 1000)]))
        asyncio.run(reconcile_room(store, "r1", []))
        stored = asyncio.run(get_room_messages(store, "r1"))
        assert [type(m) for m in stored] == [Message, PendingMessage]


class TestMergePages:
    """Older history pages merge into the live window."""

    def test_no_older_page(self):
        latest = [make_message("m2", 2)]
        assert merge_pages(latest, []) == latest

    def test_dedupes_by_id_and_sorts(self):
        latest = [make_message("m3", 30), make_message("m4", 40)]
        older = [make_message("m1", 10), make_message("m2", 20), make_message("m3", 30)]
        merged = merge_pages(latest, older)
        assert [m.id for m in merged] == ["m1", "m2", "m3", "m4"]

    def test_live_window_wins(self):
        latest = [make_message("m1", 10, text="new")]
        older = [make_message("m1", 10, text="old")]
        assert merge_pages(latest, older)[0].text == "new"

    def test_keeps_pending(self):
        latest = [make_pending("t1", 50)]
        older = [make_message("m1", 10)]
        assert [type(m) for m in merge_pages(latest, older)] == [Message, PendingMessage]
