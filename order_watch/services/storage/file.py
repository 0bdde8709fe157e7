"""
File Key/Value Store with Concurrency Control

Development store: one JSON document per key inside the configured data
directory, each guarded by its own lock file so the API process and the
helper scripts never interleave partial writes.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from filelock import FileLock, Timeout

from order_watch.services.storage.base import BaseKeyValueStore, StorageError

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileKeyValueStore(BaseKeyValueStore):
    """Lock-protected JSON file store."""

    def __init__(self, directory: str | Path, lock_timeout: float = 10):
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout
        logger.info(f"FileKeyValueStore initialized (directory={self.directory})")

    @property
    def provider_name(self) -> str:
        return "file"

    def _ensure_directory(self) -> None:
        """Create data directory if needed."""
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.directory}")

    def _paths(self, key: str) -> tuple[Path, Path]:
        name = _UNSAFE_KEY_CHARS.sub("_", key)
        return self.directory / f"{name}.json", self.directory / f"{name}.json.lock"

    def _read(self, key: str) -> Optional[Any]:
        path, lock_path = self._paths(key)
        if not path.exists():
            return None
        with FileLock(str(lock_path), timeout=self.lock_timeout):
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

    def _write(self, key: str, value: Any) -> None:
        self._ensure_directory()
        path, lock_path = self._paths(key)
        payload = json.dumps(value, ensure_ascii=False, indent=2)
        with FileLock(str(lock_path), timeout=self.lock_timeout):
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(path)

    def _delete(self, key: str) -> None:
        path, lock_path = self._paths(key)
        with FileLock(str(lock_path), timeout=self.lock_timeout):
            path.unlink(missing_ok=True)
        lock_path.unlink(missing_ok=True)

    async def get(self, key: str) -> Optional[Any]:
        try:
            return await asyncio.to_thread(self._read, key)
        except Timeout as e:
            raise StorageError(f"Timed out waiting for lock on {key}") from e
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {key}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except Timeout as e:
            raise StorageError(f"Timed out waiting for lock on {key}") from e
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Could not write {key}: {e}") from e
        logger.debug(f"Stored {key}")

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, key)
        except Timeout as e:
            raise StorageError(f"Timed out waiting for lock on {key}") from e
        except OSError as e:
            raise StorageError(f"Could not delete {key}: {e}") from e

    async def health_check(self) -> bool:
        try:
            self._ensure_directory()
        except OSError:
            return False
        return self.directory.is_dir()
