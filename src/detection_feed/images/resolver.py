"""
Image Resolver - turns (subject_id, asset_kind) into a loadable URL.

Resolution order:
1. Resolution cache hit - returned as is, no network call
2. Primary lookup (backend image URL endpoint) - cached with origin=primary
3. Static fallback path, when the caller has one - cached with origin=fallback
4. UNAVAILABLE - never an exception

Concurrent requests for the same uncached key share one in-flight lookup,
so two callers can never race to cache different URLs for one key.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from ..utils.constants import DEFAULT_RESOLVER_WORKERS
from .cache import CacheEntry, CacheKey, ResolutionCache, cache_key

logger = logging.getLogger(__name__)

# Asset kinds the backend serves per detection
ASSET_KINDS = (
    "food_1",
    "food_2",
    "initial_ocr",
    "initial_ocr_2",
    "final_ocr",
    "final_ocr_2",
)


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of a resolve() call.

    Attributes:
        url: Loadable URL, None when unavailable
        origin: "primary" or "fallback", None when unavailable
    """

    url: str | None
    origin: str | None = None

    @property
    def available(self) -> bool:
        return self.url is not None

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> "Resolution":
        return cls(url=entry.url, origin=entry.origin)


UNAVAILABLE = Resolution(url=None)

PrimaryLookup = Callable[[Any, str], str]
StaticUrlBuilder = Callable[[str], str]


class ImageResolver:
    """
    Resolves detection image URLs through the shared ResolutionCache.

    Args:
        cache: Session cache, shared with other resolvers/consumers
        lookup: Primary strategy, (subject_id, asset_kind) -> URL; raises on failure
        static_url: Builds a URL from a static file path
        max_workers: Thread pool size for lookups of distinct keys
    """

    def __init__(
        self,
        cache: ResolutionCache,
        lookup: PrimaryLookup,
        static_url: StaticUrlBuilder,
        max_workers: int = DEFAULT_RESOLVER_WORKERS,
    ):
        self.cache = cache
        self._lookup = lookup
        self._static_url = static_url
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ImageResolver"
        )
        self._in_flight: dict[CacheKey, Future] = {}
        self._lock = threading.Lock()

    def resolve(
        self,
        subject_id: Any,
        asset_kind: str,
        fallback_static_path: str | None = None,
        timeout: float | None = None,
    ) -> Resolution:
        """
        Resolve and wait for the result.

        Args:
            subject_id: Detection id
            asset_kind: food_1, initial_ocr, ...
            fallback_static_path: Static path to use if the lookup fails
            timeout: Seconds to wait (None = until the lookup finishes)

        Returns:
            Resolution (UNAVAILABLE if nothing could be resolved)
        """
        return self.resolve_async(subject_id, asset_kind, fallback_static_path).result(
            timeout=timeout
        )

    def resolve_async(
        self,
        subject_id: Any,
        asset_kind: str,
        fallback_static_path: str | None = None,
    ) -> "Future[Resolution]":
        """
        Start (or join) a resolution without blocking.

        A caller joining an in-flight lookup gets the same Future as the
        caller that started it, so the fallback path of the first caller
        is the one used.

        Returns:
            Future resolving to a Resolution
        """
        key = cache_key(subject_id, asset_kind)

        entry = self.cache.get(key)
        if entry is not None:
            return _completed(Resolution.from_entry(entry))

        with self._lock:
            # Re-check under the lock: a lookup may have landed meanwhile
            entry = self.cache.get(key)
            if entry is not None:
                return _completed(Resolution.from_entry(entry))

            future = self._in_flight.get(key)
            if future is not None:
                logger.debug(f"Joining in-flight lookup for {key}")
                return future

            future = self._executor.submit(
                self._resolve_uncached, key, subject_id, asset_kind, fallback_static_path
            )
            self._in_flight[key] = future

        future.add_done_callback(lambda f: self._forget(key, f))
        return future

    def invalidate(self, subject_id: Any, asset_kind: str) -> bool:
        """Drop the cached URL so the next resolve() looks it up again."""
        return self.cache.invalidate(cache_key(subject_id, asset_kind))

    def close(self) -> None:
        """Cancel queued lookups and stop the worker threads."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        with self._lock:
            self._in_flight.clear()

    def _forget(self, key: CacheKey, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def _resolve_uncached(
        self,
        key: CacheKey,
        subject_id: Any,
        asset_kind: str,
        fallback_static_path: str | None,
    ) -> Resolution:
        try:
            url = self._lookup(subject_id, asset_kind)
        except Exception as e:
            logger.warning(
                f"Failed to get image URL for detection {subject_id}, type {asset_kind}: {e}"
            )
            url = None

        if url:
            entry = self.cache.set(key, CacheEntry(url=url, origin="primary"))
            return Resolution.from_entry(entry)

        if fallback_static_path:
            url = self._static_url(fallback_static_path)
            entry = self.cache.set(key, CacheEntry(url=url, origin="fallback"))
            logger.debug(f"Using static fallback for {key}: {url}")
            return Resolution.from_entry(entry)

        return UNAVAILABLE


def _completed(resolution: Resolution) -> "Future[Resolution]":
    future: Future = Future()
    future.set_result(resolution)
    return future
