"""
Stream Client - owns the single live event subscription.

Lifecycle:
1. connect() closes any existing subscription and opens a new one
2. Transport opens -> reconnect counter resets to 0
3. Each message is parsed as a {type, data} envelope and handed to on_event
4. Transport error -> on_error, then a reconnect after 5s * attempt
   (5, 10, 15, 20, 25s); after 5 attempts the client stays disconnected
   until connect() is called again
5. disconnect() closes everything and clears the pending reconnect

Malformed messages are dropped without touching the connection.
"""

import json
import logging
import threading
from enum import Enum
from typing import Any, Callable

from ..models.errors import ParseError, TransportError
from ..utils.constants import MAX_RECONNECT_ATTEMPTS, RECONNECT_DELAY
from ..utils.event_schema import StreamEnvelope, is_valid_event
from ..utils.timers import SingleSlotTimer, TimerFactory
from .transport import Connection, Transport

logger = logging.getLogger(__name__)

EventCallback = Callable[[StreamEnvelope], None]
ErrorCallback = Callable[[TransportError], None]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    ERROR = "error"
    RECONNECT_SCHEDULED = "reconnect-scheduled"


def parse_envelope(raw: str) -> StreamEnvelope:
    """
    Parse one stream message.

    Args:
        raw: Message text (the SSE data block)

    Returns:
        Envelope with ``type``, ``data`` and, if sent, ``timestamp``

    Raises:
        ParseError: If the text is not JSON or not an envelope
    """
    try:
        decoded: Any = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid JSON in stream message: {e}") from e

    if not is_valid_event(decoded):
        raise ParseError("Stream message is not a {type, data} envelope")

    envelope: StreamEnvelope = {"type": decoded["type"], "data": decoded.get("data")}
    if "timestamp" in decoded:
        envelope["timestamp"] = decoded["timestamp"]
    return envelope


class StreamClient:
    """
    At-most-one-connection event stream client with linear backoff.

    Args:
        transport: Opens connections (SSETransport in production)
        url_builder: Maps a credential to the subscription URL
        max_attempts: Reconnect attempts before giving up (default: 5)
        reconnect_delay: Base delay in seconds, multiplied by attempt number
        timer_factory: Creates the reconnect timer (threading.Timer)
    """

    def __init__(
        self,
        transport: Transport,
        url_builder: Callable[[str], str],
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = RECONNECT_DELAY,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._transport = transport
        self._url_builder = url_builder
        self._max_attempts = max_attempts
        self._reconnect_delay = reconnect_delay
        self._reconnect_timer = SingleSlotTimer("StreamReconnect", timer_factory)

        self._lock = threading.RLock()
        self._connection: Connection | None = None
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        # Bumped on every connect/disconnect; callbacks from older
        # connections compare against it and bail out
        self._generation = 0

        self._credential: str | None = None
        self._on_event: EventCallback | None = None
        self._on_error: ErrorCallback | None = None

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def reconnect_attempts(self) -> int:
        with self._lock:
            return self._attempts

    @property
    def pending_reconnect_delay(self) -> float | None:
        """Delay of the scheduled reconnect in seconds, None if none is pending."""
        return self._reconnect_timer.delay

    def is_connected(self) -> bool:
        """True only while the transport is actually open."""
        with self._lock:
            return self._connection is not None and self._connection.is_open

    def connect(
        self,
        credential: str,
        on_event: EventCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """
        Open the subscription, replacing any existing one.

        An explicit connect starts a fresh backoff cycle.

        Raises:
            TransportError: If ``credential`` is empty; nothing is opened
        """
        if not credential:
            logger.error("No authentication token found, not connecting")
            raise TransportError("No authentication token found")

        with self._lock:
            self._attempts = 0
            self._credential = credential
            self._on_event = on_event
            self._on_error = on_error
            failure = self._open_locked()

        if failure is not None:
            self._handle_error(*failure)

    def disconnect(self) -> None:
        """Close the subscription and cancel any pending reconnect. Idempotent."""
        with self._lock:
            self._generation += 1
            self._close_connection_locked()
            self._reconnect_timer.cancel()
            self._attempts = 0
            was_active = self._state != ConnectionState.DISCONNECTED
            self._state = ConnectionState.DISCONNECTED

        if was_active:
            logger.info("Stream disconnected")

    def _open_locked(self) -> tuple[int, TransportError] | None:
        """Open a connection. Returns (generation, error) if it failed synchronously."""
        self._close_connection_locked()
        self._reconnect_timer.cancel()
        self._generation += 1
        generation = self._generation
        self._state = ConnectionState.CONNECTING

        try:
            url = self._url_builder(self._credential)
            self._connection = self._transport.open(
                url,
                on_open=lambda: self._handle_open(generation),
                on_message=lambda raw: self._handle_message(generation, raw),
                on_error=lambda error: self._handle_error(generation, error),
            )
        except TransportError as e:
            return generation, e
        except Exception as e:
            logger.error(f"Failed to create stream connection: {e}", exc_info=True)
            return generation, TransportError(f"Failed to create stream connection: {e}")
        return None

    def _close_connection_locked(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _handle_open(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._state = ConnectionState.OPEN
            self._attempts = 0
        logger.info("Stream connection established")

    def _handle_message(self, generation: int, raw: str) -> None:
        with self._lock:
            if generation != self._generation:
                return
            on_event = self._on_event

        try:
            envelope = parse_envelope(raw)
        except ParseError as e:
            logger.debug(f"Dropping stream message: {e}")
            return

        if on_event is None:
            return
        try:
            on_event(envelope)
        except Exception as e:
            logger.error(f"Stream event handler failed: {e}", exc_info=True)

    def _handle_error(self, generation: int, error: TransportError) -> None:
        with self._lock:
            if generation != self._generation:
                return
            # Stale callbacks from this connection must not fire after this point
            self._generation += 1
            self._close_connection_locked()
            self._state = ConnectionState.ERROR
            on_error = self._on_error

            if self._attempts < self._max_attempts:
                self._attempts += 1
                delay = self._reconnect_delay * self._attempts
                self._state = ConnectionState.RECONNECT_SCHEDULED
                self._reconnect_timer.schedule(delay, self._reconnect)
                logger.warning(
                    f"Stream error: {error}; reconnect {self._attempts}/"
                    f"{self._max_attempts} in {delay:.0f}s"
                )
            else:
                self._state = ConnectionState.DISCONNECTED
                logger.error(
                    f"Stream error: {error}; giving up after {self._max_attempts} reconnect attempts"
                )

        if on_error is not None:
            try:
                on_error(error)
            except Exception as e:
                logger.error(f"Stream error handler failed: {e}", exc_info=True)

    def _reconnect(self) -> None:
        with self._lock:
            if self._state != ConnectionState.RECONNECT_SCHEDULED:
                return
            logger.info(f"Attempting to reconnect stream (attempt {self._attempts})")
            failure = self._open_locked()

        if failure is not None:
            self._handle_error(*failure)
