from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, TypeVar

"""Timed cache owned by the caller.

Extraction and metric functions stay cache-agnostic; callers that want to
avoid re-reading a source wrap the call in ``TimedCache.get_or_compute``.

A store keeps ``key -> (value, stored_at)``; the cache decides freshness
with an injectable clock, so expiry is testable without sleeping. Values
must be JSON-serializable for ``JsonFileStore``.
"""

__all__ = [
    "CacheStore",
    "MemoryStore",
    "JsonFileStore",
    "TimedCache",
]

logger = logging.getLogger(__name__)

V = TypeVar("V")


class CacheStore(Protocol):
    def get(self, key: str) -> tuple[Any, float] | None: ...

    def set(self, key: str, value: Any, stored_at: float) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> tuple[Any, float] | None:
        return self._data.get(key)

    def set(self, key: str, value: Any, stored_at: float) -> None:
        self._data[key] = (value, stored_at)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore:
    """One JSON file per key under ``directory``.

    Unreadable or corrupt entries are treated as absent.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self.directory / f"{digest}.json"

    def get(self, key: str) -> tuple[Any, float] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            item = json.loads(path.read_text(encoding="utf-8"))
            if item.get("key") != key:
                return None
            return item["data"], float(item["ts"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("cache entry unreadable key=%s err=%s", key, e)
            return None

    def set(self, key: str, value: Any, stored_at: float) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = {"key": key, "ts": stored_at, "data": value}
        self._path(key).write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class TimedCache:
    """Freshness-bounded cache over a store.

    Args:
        store: backing store
        max_age_seconds: entries older than this are expired (and deleted)
        clock: returns the current time in seconds (default ``time.time``)
    """

    def __init__(
        self,
        store: CacheStore,
        max_age_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    def get(self, key: str) -> Any | None:
        item = self.store.get(key)
        if item is None:
            return None
        value, stored_at = item
        if self.clock() - stored_at >= self.max_age_seconds:
            logger.debug("cache expired key=%s", key)
            self.store.delete(key)
            return None
        return value

    def put(self, key: str, value: Any) -> None:
        self.store.set(key, value, self.clock())

    def get_or_compute(self, key: str, compute: Callable[[], V]) -> V:
        """Cached value for ``key`` or the result of ``compute()``.

        Exceptions from ``compute`` propagate and nothing is stored.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache hit key=%s", key)
            return cached
        value = compute()
        self.put(key, value)
        return value
