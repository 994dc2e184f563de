"""Receipt schema definitions and validation.

Constants:
    RECEIPT_SCHEMAS: Schema dicts keyed by receipt_type
    REQUIRED_FIELDS: Fields required in all receipts

Functions:
    validate_receipt: Validate receipt against schema
"""
from .receipt import StopRule


# Required fields for all receipt types
REQUIRED_FIELDS = ["receipt_type", "ts", "device_id", "payload_hash"]


RECEIPT_SCHEMAS = {
    "outbox_enqueue": {
        "temp_id": str,
        "room_id": str,
        "kind": str,
        "outbox_size": int,
    },
    "send_confirmed": {
        "temp_id": str,
        "room_id": str,
        "message_id": str,
    },
    "send_failed": {
        "temp_id": str,
        "room_id": str,
        "error": str,
    },
    "drain": {
        "attempted": int,
        "delivered": int,
        "failed": int,
    },
    "reconcile": {
        "room_id": str,
        "server_count": int,
        "pending_kept": int,
        "pending_superseded": int,
        "cache_size": int,
    },
    "page_merge": {
        "room_id": str,
        "before": int,
        "page_size": int,
        "merged_size": int,
    },
    "anomaly": {
        "metric": str,
        "classification": str,
        "action": str,
    },
}


def validate_receipt(receipt: dict) -> bool:
    """Validate receipt has required fields and matches schema.

    Args:
        receipt: Receipt dict to validate

    Returns:
        True if valid

    Raises:
        StopRule: If validation fails (missing field, wrong type or
            unknown receipt_type)
    """
    if not isinstance(receipt, dict):
        raise StopRule("Receipt must be a dict")

    for field in REQUIRED_FIELDS:
        if field not in receipt:
            raise StopRule(f"Missing required field: {field}")

    receipt_type = receipt["receipt_type"]
    if receipt_type not in RECEIPT_SCHEMAS:
        raise StopRule(f"Unknown receipt_type: {receipt_type}")

    for field, expected in RECEIPT_SCHEMAS[receipt_type].items():
        if field not in receipt:
            raise StopRule(f"{receipt_type}: missing field {field}")
        if not isinstance(receipt[field], expected):
            raise StopRule(f"{receipt_type}: field {field} has wrong type")

    return True
