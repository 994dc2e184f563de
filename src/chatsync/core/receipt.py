"""Receipts: the audit trail of the offline layer.

Every outbox, drain and reconcile step prints one JSON line to stdout so a
device's sync history can be replayed from its logs.

Functions:
    dual_hash: SHA256:BLAKE3 digest of a receipt payload
    emit_receipt: Print a receipt stamped with time, device and payload hash
    StopRule: Exception for rejected input at the API boundary
"""
import hashlib
import json
from datetime import datetime, timezone

import blake3


class StopRule(Exception):
    """A send was rejected before touching the cache or outbox."""
    pass


def dual_hash(data: bytes | str | dict | list) -> str:
    """Digest ``data`` as 'sha256hex:blake3hex'.

    Dicts and lists are hashed in their canonical JSON form (sorted keys,
    no whitespace), so equal payloads hash equally across devices.
    """
    if isinstance(data, (dict, list)):
        data = json.dumps(data, sort_keys=True, separators=(",", ":"))
    if isinstance(data, str):
        data = data.encode("utf-8")

    return f"{hashlib.sha256(data).hexdigest()}:{blake3.blake3(data).hexdigest()}"


def emit_receipt(receipt_type: str, data: dict, device_id: str = "default") -> dict:
    """Print one sync event as a JSON line and return it.

    A ``device_id`` inside ``data`` takes precedence over the argument, so
    callers can pass the owning OutboxSync's device through the payload.

    Returns:
        The receipt: ``data`` plus receipt_type, ts (UTC, Z suffix),
        device_id and payload_hash
    """
    device_id = data.get("device_id", device_id)

    receipt = {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "device_id": device_id,
        "payload_hash": dual_hash(data),
        **data
    }

    print(json.dumps(receipt, sort_keys=True), flush=True)

    return receipt
