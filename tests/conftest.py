"""Test configuration and fixtures for chatsync.

FakeBackend: in-memory stand-in for the chat backend
Factories: confirmed and pending message builders
Fixtures: stores, backends, feature flag reset
"""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

import pytest

from chatsync.offline.messages import Message, PendingMessage
from chatsync.offline.store import FileStore, MemoryStore


class FakeBackend:
    """Records send calls and fails while ``fail`` is set.

    ``gate`` holds every send until set; ``gates`` holds sends per text.
    """

    def __init__(self, fail: bool = False, pages: dict | None = None):
        self.fail = fail
        self.fail_texts: set[str] = set()
        self.pages = pages or {}
        self.sent: list[dict] = []
        self.gate = None
        self.gates: dict = {}
        self.closed = False
        self._next_id = 0

    async def send(self, room_id, kind, text=None, image_url=None, client_created_at=None):
        self.sent.append({
            "room_id": room_id,
            "kind": kind,
            "text": text,
            "image_url": image_url,
            "client_created_at": client_created_at,
        })
        gate = self.gates.get(text, self.gate)
        if gate is not None:
            await gate.wait()
        if self.fail or text in self.fail_texts:
            raise ConnectionError("backend unreachable")
        self._next_id += 1
        return f"m{self._next_id}"

    async def list_by_room(self, room_id, limit=50, before=None):
        if self.fail:
            raise ConnectionError("backend unreachable")
        rows = sorted(self.pages.get(room_id, []), key=lambda m: m.created_at)
        if before is not None:
            rows = [m for m in rows if m.created_at < before]
        return rows[-limit:]

    async def aclose(self):
        self.closed = True


def make_message(message_id: str, created_at: int, room_id: str = "r1",
                 sender_id: str = "u1", text: str | None = None,
                 image_url: str | None = None) -> Message:
    if text is None and image_url is None:
        text = f"msg {message_id}"
    return Message(
        id=message_id,
        room_id=room_id,
        sender_id=sender_id,
        kind="image" if image_url is not None else "text",
        created_at=created_at,
        text=text,
        image_url=image_url,
    )


def make_pending(temp_id: str, created_at: int, room_id: str = "r1",
                 sender_id: str = "u1", text: str | None = "hi",
                 image_url: str | None = None, status: str = "pending") -> PendingMessage:
    return PendingMessage(
        temp_id=temp_id,
        room_id=room_id,
        sender_id=sender_id,
        kind="image" if image_url is not None else "text",
        created_at=created_at,
        text=None if image_url is not None else text,
        image_url=image_url,
        status=status,
    )


@pytest.fixture
def store() -> MemoryStore:
    """Fresh in-memory store."""
    return MemoryStore()


@pytest.fixture
def file_store(tmp_path) -> FileStore:
    """File store rooted in a temp directory."""
    return FileStore(tmp_path / "store")


@pytest.fixture
def backend() -> FakeBackend:
    """Backend that confirms every send."""
    return FakeBackend()


@pytest.fixture(autouse=True)
def default_features(monkeypatch):
    """Pin feature flags to their shipped defaults for every test."""
    import chatsync.config.features as features
    monkeypatch.setattr(features, 'FEATURE_DRAIN_ON_MOUNT', True)
    monkeypatch.setattr(features, 'FEATURE_CONFIRM_WITH_SERVER_ID', True)
    monkeypatch.setattr(features, 'FEATURE_MULTISET_SIGNATURE_MATCH', True)
