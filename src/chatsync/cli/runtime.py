"""Wiring shared by CLI commands: config, store, backend, event loop."""
import asyncio

from chatsync.config.settings import SyncConfig
from chatsync.offline.remote import HttpBackend
from chatsync.offline.store import FileStore
from chatsync.offline.sync import OutboxSync


def load_config() -> SyncConfig:
    return SyncConfig.from_env()


def open_store(config: SyncConfig) -> FileStore:
    return FileStore(config.store_dir)


def open_backend(config: SyncConfig) -> HttpBackend:
    return HttpBackend.from_config(config)


def run(coro):
    return asyncio.run(coro)


async def with_sync(config: SyncConfig, fn):
    """Run ``fn(sync)`` with a connected OutboxSync, closing the backend after."""
    backend = open_backend(config)
    try:
        sync = OutboxSync(open_store(config), backend,
                          device_id=config.device_id, user_id=config.user_id)
        return await fn(sync)
    finally:
        await backend.aclose()
