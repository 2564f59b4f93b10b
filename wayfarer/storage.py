"""Key-value save storage.

The engine needs only get/set/list/delete of opaque string values. Durability
(atomic writes, caching) is the provider's business, not the engine's.

Two providers are included:

    JsonFileStore — one file per key under a base directory. Writes go to a
                    temp file and are renamed into place.
    MemoryStore   — a dict. Useful for tests and throwaway sessions.

Every provider reports I/O failure as StorageUnavailable.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

from wayfarer.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class SaveStore(Protocol):
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str) -> None: ...
    async def list(self) -> list[str]: ...
    async def delete(self, key: str) -> None: ...


class JsonFileStore:
    """File-per-key store.

    Directory layout:

        {base}/
          {quoted key}.json   ← value, verbatim
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create save directory {self._base}: {e}") from e

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        return self._base / f"{quote(key, safe='')}.json"

    # ------------------------------------------------------------------
    # SaveStore
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageUnavailable(f"Cannot read {key!r}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write {key!r}: {e}") from e
        logger.debug("store set key=%s bytes=%d", key, len(value))

    async def list(self) -> list[str]:
        try:
            names = [p.name for p in self._base.glob("*.json")]
        except OSError as e:
            raise StorageUnavailable(f"Cannot list {self._base}: {e}") from e
        return sorted(unquote(name[: -len(".json")]) for name in names)

    async def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot delete {key!r}: {e}") from e


class MemoryStore:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def list(self) -> list[str]:
        return sorted(self.data)

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)
