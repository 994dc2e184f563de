"""chatsync runtime configuration.

All settings can be overridden via environment variables with the
CHATSYNC_ prefix.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

from chatsync.core.constants import DEFAULT_PAGE_LIMIT, HTTP_TIMEOUT_SECONDS


@dataclass
class SyncConfig:
    """Client sync configuration."""

    # Storage
    store_dir: Path = field(default_factory=lambda: Path.home() / ".chatsync" / "store")

    # Backend
    base_url: str = "http://localhost:3210"
    auth_token: str = ""
    request_timeout: float = HTTP_TIMEOUT_SECONDS

    # Identity
    device_id: str = "default"
    user_id: str = ""

    # History
    page_limit: int = DEFAULT_PAGE_LIMIT

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Load configuration from environment variables."""
        config = cls()

        if "CHATSYNC_STORE_DIR" in os.environ:
            config.store_dir = Path(os.environ["CHATSYNC_STORE_DIR"])

        if "CHATSYNC_BASE_URL" in os.environ:
            config.base_url = os.environ["CHATSYNC_BASE_URL"]
        if "CHATSYNC_AUTH_TOKEN" in os.environ:
            config.auth_token = os.environ["CHATSYNC_AUTH_TOKEN"]
        if "CHATSYNC_TIMEOUT" in os.environ:
            config.request_timeout = float(os.environ["CHATSYNC_TIMEOUT"])

        if "CHATSYNC_DEVICE_ID" in os.environ:
            config.device_id = os.environ["CHATSYNC_DEVICE_ID"]
        if "CHATSYNC_USER_ID" in os.environ:
            config.user_id = os.environ["CHATSYNC_USER_ID"]

        if "CHATSYNC_PAGE_LIMIT" in os.environ:
            config.page_limit = int(os.environ["CHATSYNC_PAGE_LIMIT"])

        return config

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []

        if not self.base_url.startswith(("http://", "https://")):
            errors.append(f"base_url must be http(s), got {self.base_url!r}")

        if self.request_timeout <= 0:
            errors.append(f"request_timeout must be > 0, got {self.request_timeout}")

        if self.page_limit < 1 or self.page_limit > 500:
            errors.append(f"page_limit must be 1-500, got {self.page_limit}")

        if not self.device_id:
            errors.append("device_id must not be empty")

        return errors


# Default configuration instance
DEFAULT_CONFIG = SyncConfig.from_env()
