"""Message types for the offline cache and outbox.

Confirmed messages come from the backend and are immutable. Pending
messages are created locally at send time and carry a temporary token
until the backend confirms them.

Stored JSON uses the backend's camelCase field names so blobs stay
readable by every client sharing the store.
"""
import random
import string
import time
from dataclasses import dataclass, replace
from typing import Optional, Union

from chatsync.core.constants import (
    KIND_IMAGE,
    KIND_TEXT,
    MESSAGE_KINDS,
    PENDING_STATUSES,
    STATUS_FAILED,
    STATUS_LABELS,
    STATUS_PENDING,
    TEMP_ID_SUFFIX_LEN,
)
from chatsync.core.receipt import StopRule, emit_receipt

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class Message:
    """Server-confirmed message."""
    id: str
    room_id: str
    sender_id: str
    kind: str
    created_at: int
    text: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def status(self) -> Optional[str]:
        return None

    def to_dict(self) -> dict:
        data = {
            "_id": self.id,
            "roomId": self.room_id,
            "senderId": self.sender_id,
            "kind": self.kind,
            "createdAt": self.created_at,
        }
        if self.text is not None:
            data["text"] = self.text
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            id=str(data["_id"]),
            room_id=str(data["roomId"]),
            sender_id=str(data["senderId"]),
            kind=str(data["kind"]),
            created_at=int(data["createdAt"]),
            text=data.get("text"),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class PendingMessage:
    """Locally originated message awaiting confirmation."""
    temp_id: str
    room_id: str
    sender_id: str
    kind: str
    created_at: int
    text: Optional[str] = None
    image_url: Optional[str] = None
    status: str = STATUS_PENDING

    def mark_failed(self) -> "PendingMessage":
        return replace(self, status=STATUS_FAILED)

    def confirm(self, message_id: str) -> Message:
        """Build the confirmed form using the id returned by the send call."""
        return Message(
            id=message_id,
            room_id=self.room_id,
            sender_id=self.sender_id,
            kind=self.kind,
            created_at=self.created_at,
            text=self.text,
            image_url=self.image_url,
        )

    def to_dict(self) -> dict:
        data = {
            "tempId": self.temp_id,
            "roomId": self.room_id,
            "senderId": self.sender_id,
            "kind": self.kind,
            "createdAt": self.created_at,
            "status": self.status,
        }
        if self.text is not None:
            data["text"] = self.text
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PendingMessage":
        status = data.get("status", STATUS_PENDING)
        if status not in PENDING_STATUSES:
            status = STATUS_PENDING
        return cls(
            temp_id=str(data["tempId"]),
            room_id=str(data["roomId"]),
            sender_id=str(data["senderId"]),
            kind=str(data["kind"]),
            created_at=int(data["createdAt"]),
            text=data.get("text"),
            image_url=data.get("imageUrl"),
            status=status,
        )


AnyMessage = Union[Message, PendingMessage]


def is_pending(message: AnyMessage) -> bool:
    return isinstance(message, PendingMessage)


def message_from_dict(data: dict) -> AnyMessage:
    """Decode a stored entry; the presence of tempId marks a pending one."""
    if data.get("tempId") is not None:
        return PendingMessage.from_dict(data)
    return Message.from_dict(data)


def message_signature(message: AnyMessage) -> str:
    """Correlation key shared by a pending send and its confirmed message.

    Two sends from the same sender in the same millisecond with the same
    payload share a signature.
    """
    text = message.text if message.text is not None else ""
    image = message.image_url if message.image_url is not None else ""
    return f"{message.sender_id}|{message.created_at}|{text}|{image}"


def message_key(message: AnyMessage) -> str:
    """Identity within a timeline: server id, or temporary token."""
    if isinstance(message, PendingMessage):
        return message.temp_id
    return message.id


def status_label(message: AnyMessage) -> Optional[str]:
    return STATUS_LABELS.get(message.status)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_temp_id(ms: Optional[int] = None) -> str:
    """Temporary token: creation time plus a random base36 suffix."""
    if ms is None:
        ms = now_ms()
    suffix = "".join(random.choices(_BASE36, k=TEMP_ID_SUFFIX_LEN))
    return f"tmp_{ms}_{suffix}"


def validate_payload(kind: str, text: Optional[str], image_url: Optional[str],
                     device_id: str = "default"):
    """Reject a send whose payload does not match its kind.

    Raises:
        StopRule: unknown kind, missing payload, or both payloads set
    """
    problem = None
    if kind not in MESSAGE_KINDS:
        problem = f"unknown kind {kind!r}"
    elif kind == KIND_TEXT and (not text or not text.strip() or image_url is not None):
        problem = "text message needs non-empty text and no imageUrl"
    elif kind == KIND_IMAGE and (not image_url or text is not None):
        problem = "image message needs imageUrl and no text"

    if problem:
        emit_receipt("anomaly", {
            "device_id": device_id,
            "metric": "payload",
            "classification": "violation",
            "action": "reject",
            "detail": problem,
        })
        raise StopRule(f"Invalid message: {problem}")


def new_pending_message(
    room_id: str,
    sender_id: str,
    kind: str,
    text: Optional[str] = None,
    image_url: Optional[str] = None,
    created_at: Optional[int] = None,
    device_id: str = "default",
) -> PendingMessage:
    """Create a pending message stamped with the client clock."""
    validate_payload(kind, text, image_url, device_id)
    if created_at is None:
        created_at = now_ms()
    if text is not None:
        text = text.strip()
    return PendingMessage(
        temp_id=new_temp_id(created_at),
        room_id=room_id,
        sender_id=sender_id,
        kind=kind,
        created_at=created_at,
        text=text,
        image_url=image_url,
    )
