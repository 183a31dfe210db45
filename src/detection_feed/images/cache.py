"""
Resolution Cache - session-scoped store of resolved image URLs.

Keyed by (subject_id, asset_kind). An entry is written once, when a
resolution succeeds, and only goes away through invalidate(). There is no
time-based expiry: signed URLs that go stale show up as load failures and
the caller decides whether to invalidate.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)

CacheKey = tuple[Any, str]
Origin = Literal["primary", "fallback"]


@dataclass(frozen=True)
class CacheEntry:
    """A resolved URL and where it came from."""

    url: str
    origin: Origin


def cache_key(subject_id: Any, asset_kind: str) -> CacheKey:
    return (subject_id, asset_kind)


class ResolutionCache:
    """
    Write-once-per-key URL store.

    One instance per session, passed to every resolver that needs it.
    """

    def __init__(self):
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: CacheKey, entry: CacheEntry) -> CacheEntry:
        """
        Store ``entry`` unless the key is already resolved.

        Returns:
            The entry now held for ``key`` (the existing one if present)
        """
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                if existing != entry:
                    logger.debug(f"Cache key {key} already resolved, keeping {existing.origin}")
                return existing
            self._entries[key] = entry
            return entry

    def invalidate(self, key: CacheKey) -> bool:
        """
        Drop the entry for ``key``.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Invalidated cached URL for {key}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
