"""Time-based caches for remote registry reads.

The registry only talks to the ``Cache`` protocol, so tests (or callers that
must not touch the home directory) can swap in ``MemoryCache``.
"""

from __future__ import annotations

import json
import re
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

DEFAULT_TTL = 24 * 60 * 60


class Cache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def put(self, key: str, value: Any, ttl: float = DEFAULT_TTL) -> None: ...


def cache_key(*parts: str) -> str:
    """Join *parts* into a filesystem-safe key."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", "_".join(parts))


class FileCache:
    """JSON files under *cache_dir*, one per key.

    Each entry stores ``{"data", "timestamp", "ttl"}``; an entry older than
    its ttl, or one that cannot be parsed, reads as a miss.
    """

    def __init__(self, cache_dir: str | Path, clock: Callable[[], float] = time.time) -> None:
        self.cache_dir = Path(cache_dir)
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{cache_key(key)}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            if self._clock() - entry["timestamp"] > entry["ttl"]:
                return None
            return entry["data"]
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def put(self, key: str, value: Any, ttl: float = DEFAULT_TTL) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        entry = {"data": value, "timestamp": self._clock(), "ttl": ttl}
        self._path(key).write_text(json.dumps(entry, indent=2), encoding="utf-8")

    def clear(self) -> None:
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)


class MemoryCache:
    """In-process cache with the same expiry rules as ``FileCache``."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, tuple[Any, float, float]] = {}
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stamp, ttl = entry
        if self._clock() - stamp > ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: Any, ttl: float = DEFAULT_TTL) -> None:
        self._entries[key] = (value, self._clock(), ttl)

    def clear(self) -> None:
        self._entries.clear()
