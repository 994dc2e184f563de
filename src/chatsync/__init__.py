"""
chatsync - offline outbox and reconciliation for a chat client

Keeps a bounded per-room message cache and a device-wide outbox of
unconfirmed sends, merges server batches with local state, and drains the
outbox against the backend when connectivity allows.
"""

__version__ = "0.1.0"

from chatsync.core.receipt import dual_hash, emit_receipt, StopRule
from chatsync.offline import (
    FileStore,
    HttpBackend,
    MemoryStore,
    Message,
    OutboxSync,
    PendingMessage,
)

__all__ = [
    "dual_hash",
    "emit_receipt",
    "StopRule",
    "FileStore",
    "HttpBackend",
    "MemoryStore",
    "Message",
    "OutboxSync",
    "PendingMessage",
    "__version__",
]
