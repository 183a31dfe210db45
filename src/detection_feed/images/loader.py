"""
Image Loader - fetches a resolved URL with bounded retry.

This is the render-time step, separate from resolution: a URL that
resolved fine can still fail to load (expired signature, flaky storage).
The same URL is re-requested up to ``max_retries`` times with a fixed
delay; after that the caller gets a LoadError and shows a placeholder.
"""

import logging
import threading
from typing import Callable

import requests

from ..models.errors import LoadError
from ..utils.constants import DEFAULT_HTTP_TIMEOUT, LOAD_RETRY_DELAY, MAX_LOAD_RETRIES
from .resolver import Resolution

logger = logging.getLogger(__name__)


class ImageLoader:
    """
    Downloads image bytes for resolved URLs.

    Resolved URLs are usually signed storage URLs on another host, so the
    loader uses its own session without the backend credential.

    Config options:
        max_retries: Extra attempts after the first failure (default: 2)
        retry_delay: Fixed seconds between attempts (default: 1.0)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        max_retries: int = MAX_LOAD_RETRIES,
        retry_delay: float = LOAD_RETRY_DELAY,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._timeout = timeout
        # Set on close() so a pending retry delay returns immediately
        self._closed = threading.Event()

    def load(self, url: str) -> bytes:
        """
        Fetch ``url``, retrying the same URL on failure.

        Args:
            url: Resolved image URL

        Returns:
            Image bytes

        Raises:
            LoadError: After 1 + max_retries failed attempts, or if the
                loader was closed while waiting to retry
        """
        attempts = 0
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            attempts = attempt + 1
            try:
                response = self._session.get(url, timeout=self._timeout)
                response.raise_for_status()
                return response.content
            except requests.RequestException as e:
                last_error = e

            if attempt < self._max_retries:
                logger.debug(
                    f"Image load failed, retry {attempt + 1}/{self._max_retries} "
                    f"in {self._retry_delay}s: {url}"
                )
                if self._closed.wait(timeout=self._retry_delay):
                    break

        logger.warning(f"Image could not be loaded after {attempts} attempt(s): {url}")
        raise LoadError(url, attempts, f"Image could not be loaded after retries: {last_error}")

    def load_resolution(
        self,
        resolution: Resolution,
        on_error: Callable[[Exception], None] | None = None,
    ) -> bytes | None:
        """
        Load a Resolution, degrading to None for a placeholder.

        Args:
            resolution: Result of ImageResolver.resolve()
            on_error: Called with the LoadError when loading gives up

        Returns:
            Image bytes, or None when the image is unavailable
        """
        if not resolution.available:
            return None
        try:
            return self.load(resolution.url)
        except LoadError as e:
            if on_error:
                on_error(e)
            return None

    @property
    def session(self) -> requests.Session:
        return self._session

    def close(self) -> None:
        self._closed.set()
        if self._owns_session:
            self._session.close()
