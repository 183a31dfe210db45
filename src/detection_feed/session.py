"""
Feed Session

Builds and owns every component of one live session: API client, stream
client, bus, merger, attention window, router and the image resolver.
Nothing outlives stop(); a new session starts from an empty cache and
an empty record set.
"""

import logging
import threading
from typing import Any

import requests

from .api import ApiClient
from .config import Config
from .images import ImageLoader, ImageResolver, Resolution, ResolutionCache
from .models.detection import DetectionRecord
from .models.errors import TransportError
from .processor import (
    AttentionPolicy,
    AttentionWindow,
    DetectionStateMerger,
    EventBus,
    EventRouter,
)
from .stream import SSETransport, StreamClient, Transport
from .utils.timers import TimerFactory

logger = logging.getLogger(__name__)

ATTENTION_CLOSED_CHANNEL = "attention_closed"
CONNECTION_ERROR_CHANNEL = "connection_error"


class FeedSession:
    """
    One live detection feed.

    Args:
        config: Validated configuration
        token: Bearer credential for the stream and the API
        transport: Stream transport (SSETransport over the API session by default)
        http_session: requests.Session shared by the API client and the transport
        timer_factory: Timer factory for reconnect and auto-dismiss
    """

    def __init__(
        self,
        config: Config,
        token: str | None = None,
        transport: Transport | None = None,
        http_session: requests.Session | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.config = config
        self.token = token

        self.api = ApiClient(
            config.api.base_url,
            token=token,
            timeout=config.api.timeout_seconds,
            session=http_session,
        )

        # Images
        self.cache = ResolutionCache()
        self.resolver = ImageResolver(
            self.cache,
            lookup=self.api.get_detection_image_url,
            static_url=self.api.static_url,
            max_workers=config.images.max_workers,
        )
        self.loader = ImageLoader(
            max_retries=config.images.max_load_retries,
            retry_delay=config.images.load_retry_delay_seconds,
            timeout=config.api.timeout_seconds,
        )

        # Event processing
        self.bus = EventBus()
        self.merger = DetectionStateMerger()
        self.policy = AttentionPolicy(
            allowed_capabilities=config.attention.capabilities_allowed,
            no_waste_category=config.attention.no_waste_category,
            no_waste_dismiss_ms=config.attention.no_waste_dismiss_ms,
            default_dismiss_ms=config.attention.default_dismiss_ms,
        )
        self.window = AttentionWindow(
            self.policy,
            submit=self.api.review_detection,
            on_close=self._on_window_closed,
            timer_factory=timer_factory,
        )
        self.router = EventRouter(
            self.merger,
            self.bus,
            self.window,
            viewer_capabilities=config.viewer.capabilities,
        )

        # Stream
        self.stream = StreamClient(
            transport or SSETransport(
                session=self.api.session,
                connect_timeout=config.api.timeout_seconds,
                read_timeout=config.stream.read_timeout_seconds,
            ),
            url_builder=lambda credential: self.api.stream_url(credential, config.stream.path),
            max_attempts=config.stream.max_reconnect_attempts,
            reconnect_delay=config.stream.reconnect_delay_seconds,
            timer_factory=timer_factory,
        )

    def start(self) -> None:
        """
        Subscribe to the event stream.

        Raises:
            TransportError: If no token is configured
        """
        if not self.token:
            raise TransportError("No authentication token found")
        logger.info(f"Connecting to {self.api.base_url}{self.config.stream.path}")
        self.stream.connect(self.token, self.router.handle, self._on_stream_error)

    def stop(self) -> None:
        """Tear down: stream, timers, in-flight lookups, records and cache."""
        self.stream.disconnect()
        self.router.reset()
        self.resolver.close()
        self.loader.close()
        self.cache.clear()
        self.bus.clear()
        self.api.close()
        logger.info("Feed session stopped")

    def resolve_image(
        self, detection_id: Any, image_type: str, fallback_path: str | None = None
    ) -> Resolution:
        return self.resolver.resolve(detection_id, image_type, fallback_path)

    def load_image(
        self, detection_id: Any, image_type: str, fallback_path: str | None = None
    ) -> bytes | None:
        """Resolve and fetch an image; None means show a placeholder."""
        resolution = self.resolve_image(detection_id, image_type, fallback_path)
        return self.loader.load_resolution(resolution)

    def _on_stream_error(self, error: TransportError) -> None:
        self.bus.publish(CONNECTION_ERROR_CHANNEL, {"message": str(error)})

    def _on_window_closed(self, record: DetectionRecord, reason: str) -> None:
        self.bus.publish(ATTENTION_CLOSED_CHANNEL, {"id": record.id, "reason": reason})
