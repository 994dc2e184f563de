"""Feature flags for chatsync.

Flags are read at call time (``features.FLAG``), so tests and embedders can
flip them with monkeypatch or plain assignment.
"""

# =============================================================================
# Sync trigger
# =============================================================================

# Drain the outbox automatically when a room screen mounts the sync hook
FEATURE_DRAIN_ON_MOUNT = True

# =============================================================================
# Reconciliation
# =============================================================================

# On a confirmed send, replace the pending cache entry with a confirmed entry
# carrying the server id. When off, the pending entry is only pruned and the
# confirmed message appears once the subscription feed delivers it.
FEATURE_CONFIRM_WITH_SERVER_ID = True

# Each confirmed message supersedes at most one pending entry with the same
# signature. When off, one confirmed message hides every pending entry that
# shares its signature.
FEATURE_MULTISET_SIGNATURE_MATCH = True
