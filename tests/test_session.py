"""
Tests for SSE framing and for a full feed session wired with fakes.
"""

import json
import unittest
from unittest import mock

import requests

from detection_feed.config import Config
from detection_feed.models.errors import TransportError
from detection_feed.processor import DETECTION_CHANNEL
from detection_feed.session import (
    ATTENTION_CLOSED_CHANNEL,
    CONNECTION_ERROR_CHANNEL,
    FeedSession,
)
from detection_feed.stream import ConnectionState
from detection_feed.stream.transport import SSEConnection

from fakes import FakeTimerFactory, FakeTransport


def stream_response(lines, ok=True, status_code=200):
    response = mock.Mock()
    response.ok = ok
    response.status_code = status_code
    response.encoding = None
    response.iter_lines.return_value = iter(lines)
    return response


class TestSSEConnection(unittest.TestCase):
    """Test SSE framing on the reader (run synchronously)."""

    def setUp(self):
        self.session = mock.Mock()
        self.opened = []
        self.messages = []
        self.errors = []

    def connection(self):
        return SSEConnection(
            self.session,
            "http://backend/api/v1/events/stream?token=t",
            on_open=lambda: self.opened.append(True),
            on_message=self.messages.append,
            on_error=self.errors.append,
            connect_timeout=5,
            read_timeout=60,
        )

    def test_frames_data_blocks(self):
        self.session.get.return_value = stream_response(
            [
                'data: {"type": "camera_status", "data": {}}',
                "",
                ": heartbeat",
                "",
                "event: message",
                "data: line one",
                "data:line two",
                "",
            ]
        )

        self.connection()._run()

        self.assertEqual(self.opened, [True])
        self.assertEqual(
            self.messages, ['{"type": "camera_status", "data": {}}', "line one\nline two"]
        )
        # Server ended the stream
        self.assertEqual(len(self.errors), 1)
        self.assertIsInstance(self.errors[0], TransportError)

    def test_request_options(self):
        self.session.get.return_value = stream_response([])
        self.connection()._run()

        args, kwargs = self.session.get.call_args
        self.assertTrue(kwargs["stream"])
        self.assertEqual(kwargs["headers"]["Accept"], "text/event-stream")
        self.assertEqual(kwargs["timeout"], (5, 60))

    def test_lines_read_unbuffered(self):
        response = stream_response(["data: x", ""])
        self.session.get.return_value = response
        self.connection()._run()

        response.iter_lines.assert_called_once_with(chunk_size=1, decode_unicode=True)
        self.assertEqual(self.messages, ["x"])

    def test_http_error_reported(self):
        self.session.get.return_value = stream_response([], ok=False, status_code=401)
        self.connection()._run()

        self.assertEqual(self.opened, [])
        self.assertIn("401", str(self.errors[0]))

    def test_network_error_reported_once(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        connection = self.connection()
        connection._run()

        self.assertEqual(len(self.errors), 1)
        self.assertFalse(connection.is_open)

    def test_no_error_after_close(self):
        self.session.get.return_value = stream_response(["data: x", ""])
        connection = self.connection()
        connection.close()
        connection._run()

        self.assertEqual(self.errors, [])
        self.assertEqual(self.messages, [])


class TestFeedSession(unittest.TestCase):
    """Test the assembled pipeline."""

    def setUp(self):
        self.http = mock.Mock()
        self.http.headers = {}
        self.transport = FakeTransport()
        self.timers = FakeTimerFactory()
        config = Config.model_validate({"viewer": {"capabilities": ["worker"]}})
        self.session = FeedSession(
            config,
            token="secret",
            transport=self.transport,
            http_session=self.http,
            timer_factory=self.timers,
        )

    def send(self, event_type, **data):
        self.transport.last.message(json.dumps({"type": event_type, "data": data}))

    def test_start_requires_token(self):
        session = FeedSession(Config(), token=None, transport=self.transport)
        with self.assertRaises(TransportError):
            session.start()
        self.assertEqual(self.transport.connections, [])

    def test_stream_to_bus(self):
        published = []
        self.session.bus.subscribe(DETECTION_CHANNEL, published.append)

        self.session.start()
        self.assertIn("/api/v1/events/stream?token=secret", self.transport.last.url)
        self.transport.last.open()

        self.send("detection_analyzing", id=42, description="Analyzing...")
        self.send("detection_food_classified", id=42, category="PROTEIN", description="beef")

        self.assertEqual(self.session.stream.state, ConnectionState.OPEN)
        self.assertEqual(len(published), 2)
        self.assertEqual(published[-1]["category"], "PROTEIN")
        self.assertEqual(self.session.window.subject_id, 42)

    def test_connection_error_published(self):
        errors = []
        self.session.bus.subscribe(CONNECTION_ERROR_CHANNEL, errors.append)
        self.session.start()

        self.transport.last.fail(TransportError("lost"))

        self.assertEqual(errors, [{"message": "lost"}])
        self.assertEqual(self.timers.last.delay, 5.0)

    def test_auto_dismiss_published(self):
        closed = []
        self.session.bus.subscribe(ATTENTION_CLOSED_CHANNEL, closed.append)
        self.session.start()
        self.transport.last.open()

        self.send("new_detection", id=3, category="NO_WASTE", initial_weight=0, final_weight=0)
        self.timers.last.fire()

        self.assertEqual(closed, [{"id": 3, "reason": "auto"}])

    def test_stop_tears_everything_down(self):
        self.session.start()
        connection = self.transport.last
        connection.open()
        self.send("new_detection", id=3, category="PROTEIN", initial_weight=5, final_weight=1)
        countdown = self.timers.last

        self.session.stop()

        self.assertTrue(connection.closed)
        self.assertTrue(countdown.cancelled)
        self.assertEqual(self.session.stream.state, ConnectionState.DISCONNECTED)
        self.assertFalse(self.session.window.is_open)
        self.assertEqual(len(self.session.merger), 0)
        self.assertEqual(len(self.session.cache), 0)

    def test_resolve_image_through_api(self):
        response = mock.Mock()
        response.ok = True
        response.json.return_value = {"url": "https://storage/signed.jpg"}
        self.http.get.return_value = response

        resolution = self.session.resolve_image(42, "food_1")

        self.assertEqual(resolution.url, "https://storage/signed.jpg")
        self.assertEqual(resolution.origin, "primary")
        self.session.stop()


class TestImageLoadCredentials(unittest.TestCase):
    """Image loads go to storage hosts and must not carry the backend token."""

    def test_loader_request_has_no_authorization(self):
        session = FeedSession(Config(), token="secret-token")
        response = mock.Mock()
        response.raise_for_status.return_value = None
        response.content = b"jpeg-bytes"
        try:
            with mock.patch.object(requests.Session, "send", return_value=response) as send:
                content = session.loader.load(
                    "https://bucket.s3.amazonaws.com/img.jpg?X-Amz-Signature=abc"
                )

            self.assertEqual(content, b"jpeg-bytes")
            prepared = send.call_args[0][0]
            self.assertNotIn("Authorization", prepared.headers)
            self.assertNotIn("secret-token", str(prepared.headers))
        finally:
            session.stop()

    def test_api_session_keeps_authorization(self):
        session = FeedSession(Config(), token="secret-token")
        try:
            self.assertIsNot(session.loader.session, session.api.session)
            self.assertEqual(session.api.session.headers["Authorization"], "Bearer secret-token")
        finally:
            session.stop()


if __name__ == "__main__":
    unittest.main()
