"""Persistent key-value store for whole JSON blobs.

Two backends share one interface (``get_item`` / ``set_item`` on string
blobs, ``lock`` for a per-key mutex):
- MemoryStore: in-process dict, for tests and ephemeral sessions
- FileStore: one JSON file per key under a directory

The ``safe_*`` helpers are what the cache and outbox use. They never
raise: reads fall back to the caller's default, failed writes are dropped
and logged. ``safe_update`` serialises read-modify-write per key so two
mutations of the same blob from one process cannot lose each other.
"""
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import quote

import aiofiles

logger = logging.getLogger("chatsync.store")


class _KeyLocks:
    """Per-key asyncio locks, rebuilt when the running loop changes."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def lock(self, key: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._lock_loop:
            self._lock_loop = loop
            self._locks = {}
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]


class MemoryStore(_KeyLocks):
    """Dict-backed store."""

    def __init__(self, data: Optional[dict[str, str]] = None):
        super().__init__()
        self.data: dict[str, str] = dict(data or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.data[key] = value


class FileStore(_KeyLocks):
    """Directory-backed store. Writes go to a temp file then rename."""

    def __init__(self, root: Path | str):
        super().__init__()
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}.json"

    async def get_item(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()

    async def set_item(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(value)
        os.replace(tmp_path, path)


def encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


async def safe_get(store, key: str, fallback: Any) -> Any:
    """Read and decode a blob; any failure yields ``fallback``."""
    try:
        raw = await store.get_item(key)
    except Exception as e:
        logger.warning("read failed for %s: %s", key, e)
        return fallback
    if not raw:
        return fallback
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning("corrupt blob at %s: %s", key, e)
        return fallback


async def safe_set(store, key: str, value: Any) -> bool:
    """Encode and write a blob. Returns False when the write was dropped."""
    try:
        await store.set_item(key, encode(value))
    except Exception as e:
        logger.warning("write dropped for %s: %s", key, e)
        return False
    return True


async def safe_update(store, key: str, fallback: Any,
                      fn: Callable[[Any], Any]) -> Optional[Any]:
    """Atomic read-modify-write of one key.

    ``fn`` receives the decoded current value (``fallback`` when missing or
    corrupt) and returns the value to store. If the read itself fails the
    mutation is dropped, so a transient I/O error never overwrites the
    stored blob with ``fallback``.

    Returns:
        The value written, or None when the mutation was dropped
    """
    async with store.lock(key):
        try:
            raw = await store.get_item(key)
        except Exception as e:
            logger.warning("update dropped for %s, read failed: %s", key, e)
            return None
        current = fallback
        if raw:
            try:
                current = json.loads(raw)
            except ValueError as e:
                logger.warning("corrupt blob at %s replaced: %s", key, e)
        value = fn(current)
        if not await safe_set(store, key, value):
            return None
        return value
