"""
Stream Transport - server-sent events over a streaming HTTP response.

Each open() starts one daemon reader thread bound to one connection.
The reader frames the body into SSE messages and hands each ``data``
block to the caller as text. Closing a connection silences its
callbacks, so a stale reader can never report into a newer connection.
"""

import logging
import threading
from typing import Callable, Protocol

import requests

from ..models.errors import TransportError
from ..utils.constants import DEFAULT_HTTP_TIMEOUT, STREAM_READ_TIMEOUT

logger = logging.getLogger(__name__)

OnOpen = Callable[[], None]
OnMessage = Callable[[str], None]
OnError = Callable[[TransportError], None]


class Connection(Protocol):
    """Handle for one open (or opening) subscription."""

    @property
    def is_open(self) -> bool: ...

    def close(self) -> None: ...


class Transport(Protocol):
    """
    Protocol for stream transports.

    Callbacks may run on any thread. on_error fires at most once per
    connection and never after close().
    """

    def open(
        self, url: str, on_open: OnOpen, on_message: OnMessage, on_error: OnError
    ) -> Connection: ...


class SSEConnection:
    """One server-sent events subscription, read on a daemon thread."""

    def __init__(
        self,
        session: requests.Session,
        url: str,
        on_open: OnOpen,
        on_message: OnMessage,
        on_error: OnError,
        connect_timeout: float,
        read_timeout: float,
    ):
        self._session = session
        self._url = url
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._timeouts = (connect_timeout, read_timeout)
        self._closed = threading.Event()
        self._open = threading.Event()
        self._response: requests.Response | None = None
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name="SSEReader", daemon=True)

    @property
    def is_open(self) -> bool:
        return self._open.is_set() and not self._closed.is_set()

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        self._closed.set()
        self._open.clear()
        with self._lock:
            response, self._response = self._response, None
        if response is not None:
            # Unblocks iter_lines() in the reader thread
            response.close()

    def _run(self) -> None:
        try:
            response = self._session.get(
                self._url,
                stream=True,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
                timeout=self._timeouts,
            )
            with self._lock:
                if self._closed.is_set():
                    response.close()
                    return
                self._response = response

            if not response.ok:
                raise TransportError(f"Stream request failed with status {response.status_code}")

            if response.encoding is None:
                response.encoding = "utf-8"

            self._open.set()
            self._on_open()
            self._read_events(response)

            if not self._closed.is_set():
                raise TransportError("Stream closed by server")

        except requests.RequestException as e:
            self._fail(TransportError(f"Stream connection error: {e}"))
        except TransportError as e:
            self._fail(e)
        except Exception as e:
            # urllib3 can raise odd errors when the body is closed mid-read
            if not self._closed.is_set():
                logger.error(f"Unexpected stream reader error: {e}", exc_info=True)
            self._fail(TransportError(f"Stream reader failed: {e}"))
        finally:
            self._open.clear()

    def _read_events(self, response: requests.Response) -> None:
        """Frame the SSE body: ``data:`` lines accumulate until a blank line."""
        data_lines: list[str] = []
        for line in response.iter_lines(chunk_size=1, decode_unicode=True):
            if self._closed.is_set():
                return
            if line is None:
                continue
            if line == "":
                if data_lines:
                    self._dispatch("\n".join(data_lines))
                    data_lines = []
                continue
            if line.startswith(":"):
                continue  # comment / heartbeat

            name, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if name == "data":
                data_lines.append(value)

        if data_lines and not self._closed.is_set():
            self._dispatch("\n".join(data_lines))

    def _dispatch(self, message: str) -> None:
        try:
            self._on_message(message)
        except Exception as e:
            logger.error(f"Stream message handler failed: {e}", exc_info=True)

    def _fail(self, error: TransportError) -> None:
        self._open.clear()
        if self._closed.is_set():
            return
        self._closed.set()
        logger.debug(f"SSE transport error: {error}")
        try:
            self._on_error(error)
        except Exception as e:
            logger.error(f"Stream error handler failed: {e}", exc_info=True)


class SSETransport:
    """
    Opens SSEConnection instances on a shared requests.Session.

    Config options:
        connect_timeout: Seconds to wait for the server to accept
        read_timeout: Seconds of silence before the stream counts as dead
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        connect_timeout: float = DEFAULT_HTTP_TIMEOUT,
        read_timeout: float = STREAM_READ_TIMEOUT,
    ):
        self._session = session or requests.Session()
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout

    def open(
        self, url: str, on_open: OnOpen, on_message: OnMessage, on_error: OnError
    ) -> SSEConnection:
        connection = SSEConnection(
            self._session,
            url,
            on_open,
            on_message,
            on_error,
            self._connect_timeout,
            self._read_timeout,
        )
        connection.start()
        return connection
