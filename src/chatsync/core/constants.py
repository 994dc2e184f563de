"""chatsync constants and limits.

All magic numbers live here. No exceptions.
"""

# Room message cache
MAX_MESSAGES_PER_ROOM = 200

# Pagination
DEFAULT_PAGE_LIMIT = 50

# Storage keys
ROOMS_KEY = "offline:rooms"
USERS_KEY = "offline:users"
OUTBOX_KEY = "offline:outbox"
MESSAGES_KEY_PREFIX = "offline:messages:"


def messages_key(room_id: str) -> str:
    return f"{MESSAGES_KEY_PREFIX}{room_id}"


# Message kinds and statuses
KIND_TEXT = "text"
KIND_IMAGE = "image"
MESSAGE_KINDS = (KIND_TEXT, KIND_IMAGE)

STATUS_PENDING = "pending"
STATUS_FAILED = "failed"
PENDING_STATUSES = (STATUS_PENDING, STATUS_FAILED)

# Display labels for the timeline
STATUS_LABELS = {
    STATUS_PENDING: "Sending…",
    STATUS_FAILED: "Failed",
}

# Temporary token suffix length (base36 chars)
TEMP_ID_SUFFIX_LEN = 8

# HTTP backend
HTTP_TIMEOUT_SECONDS = 30.0
HTTP_CONNECT_TIMEOUT_SECONDS = 10.0
