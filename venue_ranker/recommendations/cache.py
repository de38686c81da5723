from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any

from .config import DEFAULT_SERVICE_CONFIG


class ResponseCache:
    """TTL cache for ranking responses, keyed on the request fields."""

    def __init__(self, ttl: float = DEFAULT_SERVICE_CONFIG.cache_ttl) -> None:
        self.ttl = ttl
        self._entries: dict[str, tuple[float, Any]] = {}  # key -> (expires_at, value)
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(request_dict: dict[str, Any]) -> str:
        normalized = json.dumps(request_dict, sort_keys=True, default=str)
        return hashlib.sha256(normalized.encode()).hexdigest()[:16]

    def get(self, request_dict: dict[str, Any]) -> Any | None:
        key = self.make_key(request_dict)
        with self._lock:
            entry = self._entries.get(key)
            if entry and time.time() < entry[0]:
                self.hits += 1
                return entry[1]
            if entry:
                del self._entries[key]
            self.misses += 1
            return None

    def set(self, request_dict: dict[str, Any], value: Any, ttl: float | None = None) -> None:
        """Store *value*; *ttl* overrides the cache default for this entry."""
        ttl = self.ttl if ttl is None else ttl
        if ttl <= 0:
            return
        with self._lock:
            self._entries[self.make_key(request_dict)] = (time.time() + ttl, value)

    def stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "ttl_seconds": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0


_cache = ResponseCache()


def cache_get(request_dict: dict[str, Any]) -> Any | None:
    return _cache.get(request_dict)


def cache_set(request_dict: dict[str, Any], value: Any, ttl: float | None = None) -> None:
    _cache.set(request_dict, value, ttl=ttl)


def get_cache_stats() -> dict[str, Any]:
    return _cache.stats()


def clear_cache() -> None:
    _cache.clear()
