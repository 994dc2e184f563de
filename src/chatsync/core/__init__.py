"""Core subpackage for chatsync primitives.

Exports all from receipt.py, schemas.py, and constants.py.
"""
from .receipt import dual_hash, emit_receipt, StopRule
from .schemas import RECEIPT_SCHEMAS, REQUIRED_FIELDS, validate_receipt
from .constants import (
    MAX_MESSAGES_PER_ROOM,
    DEFAULT_PAGE_LIMIT,
    OUTBOX_KEY,
    ROOMS_KEY,
    USERS_KEY,
    messages_key,
    STATUS_PENDING,
    STATUS_FAILED,
    STATUS_LABELS,
)

__all__ = [
    # Receipt primitives
    "dual_hash",
    "emit_receipt",
    "StopRule",
    # Schemas
    "RECEIPT_SCHEMAS",
    "REQUIRED_FIELDS",
    "validate_receipt",
    # Constants
    "MAX_MESSAGES_PER_ROOM",
    "DEFAULT_PAGE_LIMIT",
    "OUTBOX_KEY",
    "ROOMS_KEY",
    "USERS_KEY",
    "messages_key",
    "STATUS_PENDING",
    "STATUS_FAILED",
    "STATUS_LABELS",
]
