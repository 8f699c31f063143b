"""
Durable key/value storage for the local replica and the cart.

Values are opaque strings (JSON documents). Every backend writes a key as a
single unit, so a reader in another process sees either the old or the new
document, never a partial one.

Backends:
- InMemoryKeyValueStore: tests and ephemeral runs
- FileKeyValueStore: one file per key, written via temp file + os.replace
- RedisKeyValueStore: shared storage across processes/hosts
"""

import hashlib
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import redis

from storefront.core.config import Settings
from storefront.core.exceptions import LocalStorageFailure

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal string store; failures surface as LocalStorageFailure."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key was never written."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Overwrite ``key`` atomically."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""


class InMemoryKeyValueStore(KeyValueStore):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class FileKeyValueStore(KeyValueStore):
    """Stores each key as ``<root>/<sha1(key)>.json``."""

    def __init__(self, root: str):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalStorageFailure(f"Cannot create storage directory {self.root}: {e}") from e

    def _path(self, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.root / f"{digest}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalStorageFailure(f"Failed to read '{key}': {e}", {"key": key}) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(value)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise LocalStorageFailure(f"Failed to write '{key}': {e}", {"key": key}) from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise LocalStorageFailure(f"Failed to delete '{key}': {e}", {"key": key}) from e


class RedisKeyValueStore(KeyValueStore):

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        ))

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            raise LocalStorageFailure(f"Redis read failed for '{key}': {e}", {"key": key}) from e

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except redis.RedisError as e:
            raise LocalStorageFailure(f"Redis write failed for '{key}': {e}", {"key": key}) from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise LocalStorageFailure(f"Redis delete failed for '{key}': {e}", {"key": key}) from e


def create_kv_store(config: Settings) -> KeyValueStore:
    """Build the store selected by ``STORAGE_BACKEND``."""
    backend = config.STORAGE_BACKEND.lower()

    if backend == "redis":
        if not config.REDIS_URL:
            raise LocalStorageFailure("STORAGE_BACKEND=redis requires REDIS_URL")
        logger.info("Using Redis key/value store")
        return RedisKeyValueStore.from_url(config.REDIS_URL)

    if backend == "memory":
        logger.warning("Using in-memory key/value store; nothing will survive a restart")
        return InMemoryKeyValueStore()

    if backend == "file":
        logger.info(f"Using file key/value store at {config.STORAGE_PATH}")
        return FileKeyValueStore(config.STORAGE_PATH)

    raise LocalStorageFailure(f"Unknown STORAGE_BACKEND '{config.STORAGE_BACKEND}'")
