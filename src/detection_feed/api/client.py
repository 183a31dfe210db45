"""
Backend API client - the outbound calls the feed depends on.

Covers the three collaborators of the detection pipeline:
- review submission for a detection
- asset URL lookup for detection images
- static file URL building (used as the image fallback)

Everything else the dashboard backend offers (CRUD, analytics) is out of scope.
"""

import logging
from typing import Any
from urllib.parse import quote, urlencode

import requests

from ..models.errors import ResolutionError, TransportError
from ..utils.constants import DEFAULT_HTTP_TIMEOUT, STREAM_PATH

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class ApiClient:
    """
    Thin wrapper over a requests.Session bound to one backend.

    Config options:
        base_url: Backend origin, e.g. "https://waste.example.com"
        token: Bearer credential (sent as Authorization header on REST calls)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

        logger.debug(f"ApiClient initialized: {self.base_url}")

    @property
    def session(self) -> requests.Session:
        return self._session

    def close(self) -> None:
        self._session.close()

    def static_url(self, path: str) -> str:
        """
        Build the URL of a file served from the backend's static mount.

        Deterministic: the same path always yields the same URL.
        """
        return f"{self.base_url}/static/{path.lstrip('/')}"

    def stream_url(self, credential: str, path: str = STREAM_PATH) -> str:
        """
        Build the event stream URL.

        The credential travels as a query parameter because server-sent
        event transports cannot carry custom headers.

        Raises:
            TransportError: If no credential is given
        """
        if not credential:
            raise TransportError("No authentication token found")
        return f"{self.base_url}{path}?{urlencode({'token': credential})}"

    def get_detection_image_url(self, detection_id: Any, image_type: str) -> str:
        """
        Look up the loadable URL for one detection image.

        The backend usually answers with a time-limited signed storage URL.

        Args:
            detection_id: Detection id
            image_type: Asset kind (food_1, food_2, initial_ocr, ...)

        Returns:
            The resolved URL

        Raises:
            ResolutionError: On network failure, non-2xx answer, or a
                response without a ``url`` field
        """
        endpoint = (
            f"{self.base_url}{API_PREFIX}/images/detection/"
            f"{quote(str(detection_id))}/image/{quote(image_type)}/url"
        )
        try:
            response = self._session.get(endpoint, timeout=self._timeout)
        except requests.RequestException as e:
            raise ResolutionError(f"Image URL lookup failed: {e}") from e

        if not response.ok:
            raise ResolutionError(
                f"Image URL lookup returned {response.status_code} for "
                f"detection {detection_id} ({image_type})"
            )

        try:
            url = response.json().get("url")
        except (ValueError, AttributeError) as e:
            raise ResolutionError(f"Malformed image URL response: {e}") from e

        if not url:
            raise ResolutionError(f"No URL for detection {detection_id} ({image_type})")
        return url

    def review_detection(self, detection_id: Any, review_data: dict[str, Any]) -> dict:
        """
        Submit a review for a detection.

        Args:
            detection_id: Detection id
            review_data: {"review_status": ..., "review_notes": ...}

        Returns:
            Updated detection snapshot from the backend

        Raises:
            requests.RequestException: On network failure or non-2xx answer
        """
        endpoint = f"{self.base_url}{API_PREFIX}/detections/{quote(str(detection_id))}/review"
        response = self._session.put(endpoint, json=review_data, timeout=self._timeout)
        response.raise_for_status()
        logger.debug(f"Review submitted for detection {detection_id}")
        return response.json()
