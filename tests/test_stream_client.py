"""
Tests for the event stream client (connection lifecycle, backoff, parsing).
"""

import unittest

from detection_feed.models.errors import ParseError, TransportError
from detection_feed.stream.client import ConnectionState, StreamClient, parse_envelope

from fakes import FakeTimerFactory, FakeTransport


def make_client(transport=None, max_attempts=5, reconnect_delay=5.0):
    timers = FakeTimerFactory()
    transport = transport or FakeTransport()
    client = StreamClient(
        transport,
        url_builder=lambda token: f"http://backend/api/v1/events/stream?token={token}",
        max_attempts=max_attempts,
        reconnect_delay=reconnect_delay,
        timer_factory=timers,
    )
    return client, transport, timers


class TestParseEnvelope(unittest.TestCase):
    """Test stream message parsing."""

    def test_valid_envelope(self):
        envelope = parse_envelope('{"type": "detection_analyzing", "data": {"id": 7}}')
        self.assertEqual(envelope["type"], "detection_analyzing")
        self.assertEqual(envelope["data"], {"id": 7})
        self.assertNotIn("timestamp", envelope)

    def test_timestamp_kept(self):
        envelope = parse_envelope('{"type": "x", "data": {}, "timestamp": "2024-01-01T00:00:00"}')
        self.assertEqual(envelope["timestamp"], "2024-01-01T00:00:00")

    def test_invalid_json(self):
        with self.assertRaises(ParseError):
            parse_envelope("not json {")

    def test_not_an_envelope(self):
        with self.assertRaises(ParseError):
            parse_envelope("[1, 2, 3]")
        with self.assertRaises(ParseError):
            parse_envelope('{"data": {"id": 1}}')


class TestConnect(unittest.TestCase):
    """Test connect/disconnect lifecycle."""

    def test_connect_opens_one_connection(self):
        client, transport, _ = make_client()
        client.connect("secret", on_event=lambda e: None)

        self.assertEqual(len(transport.connections), 1)
        self.assertIn("token=secret", transport.last.url)
        self.assertEqual(client.state, ConnectionState.CONNECTING)
        self.assertFalse(client.is_connected())

        transport.last.open()
        self.assertEqual(client.state, ConnectionState.OPEN)
        self.assertTrue(client.is_connected())

    def test_empty_credential_never_touches_transport(self):
        client, transport, _ = make_client()
        with self.assertRaises(TransportError):
            client.connect("", on_event=lambda e: None)
        with self.assertRaises(TransportError):
            client.connect(None, on_event=lambda e: None)

        self.assertEqual(transport.connections, [])
        self.assertEqual(client.state, ConnectionState.DISCONNECTED)

    def test_connect_replaces_existing_connection(self):
        client, transport, _ = make_client()
        received = []
        client.connect("secret", on_event=received.append)
        first = transport.last
        first.open()

        client.connect("secret", on_event=received.append)
        second = transport.last

        self.assertIsNot(first, second)
        self.assertTrue(first.closed)
        self.assertFalse(second.closed)

        # Messages from the replaced connection are ignored
        first.message('{"type": "camera_status", "data": {}}')
        self.assertEqual(received, [])

    def test_disconnect_is_idempotent(self):
        client, transport, _ = make_client()
        client.connect("secret", on_event=lambda e: None)
        transport.last.open()

        client.disconnect()
        client.disconnect()

        self.assertTrue(transport.last.closed)
        self.assertEqual(client.state, ConnectionState.DISCONNECTED)
        self.assertFalse(client.is_connected())

    def test_disconnect_without_connect(self):
        client, transport, _ = make_client()
        client.disconnect()
        self.assertEqual(client.state, ConnectionState.DISCONNECTED)


class TestMessages(unittest.TestCase):
    """Test message delivery."""

    def test_event_delivered(self):
        client, transport, _ = make_client()
        received = []
        client.connect("secret", on_event=received.append)
        transport.last.open()

        transport.last.message('{"type": "detection_analyzing", "data": {"id": 1}}')

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0]["data"]["id"], 1)

    def test_malformed_message_dropped_connection_kept(self):
        client, transport, timers = make_client()
        received = []
        client.connect("secret", on_event=received.append)
        transport.last.open()

        transport.last.message("garbage")
        transport.last.message('{"no_type": true}')
        transport.last.message('{"type": "camera_status", "data": {"status": "online"}}')

        self.assertEqual(len(received), 1)
        self.assertEqual(client.state, ConnectionState.OPEN)
        self.assertEqual(len(transport.connections), 1)
        self.assertEqual(timers.timers, [])

    def test_handler_exception_does_not_break_stream(self):
        client, transport, _ = make_client()

        def boom(event):
            raise RuntimeError("handler failed")

        client.connect("secret", on_event=boom)
        transport.last.open()
        transport.last.message('{"type": "x", "data": {}}')

        self.assertEqual(client.state, ConnectionState.OPEN)


class TestReconnect(unittest.TestCase):
    """Test the linear backoff reconnect policy."""

    def test_backoff_schedule_then_give_up(self):
        """Five failures in a row schedule 5, 10, 15, 20, 25s; the sixth gives up."""
        client, transport, timers = make_client()
        errors = []
        client.connect("secret", on_event=lambda e: None, on_error=errors.append)

        delays = []
        for _ in range(5):
            transport.last.fail(TransportError("connection lost"))
            self.assertEqual(client.state, ConnectionState.RECONNECT_SCHEDULED)
            delays.append(timers.last.delay)
            timers.last.fire()

        self.assertEqual(delays, [5.0, 10.0, 15.0, 20.0, 25.0])
        self.assertEqual(len(transport.connections), 6)

        transport.last.fail(TransportError("connection lost"))
        self.assertEqual(client.state, ConnectionState.DISCONNECTED)
        self.assertIsNone(client.pending_reconnect_delay)
        self.assertEqual(len(timers.timers), 5)
        self.assertEqual(len(errors), 6)

    def test_successful_open_resets_attempts(self):
        client, transport, timers = make_client()
        client.connect("secret", on_event=lambda e: None)

        transport.last.fail(TransportError("lost"))
        timers.last.fire()
        transport.last.fail(TransportError("lost"))
        self.assertEqual(timers.last.delay, 10.0)
        timers.last.fire()

        transport.last.open()
        self.assertEqual(client.reconnect_attempts, 0)

        transport.last.fail(TransportError("lost"))
        self.assertEqual(timers.last.delay, 5.0)

    def test_explicit_connect_starts_fresh_cycle(self):
        client, transport, timers = make_client(max_attempts=1)
        client.connect("secret", on_event=lambda e: None)
        transport.last.fail(TransportError("lost"))
        timers.last.fire()
        transport.last.fail(TransportError("lost"))
        self.assertEqual(client.state, ConnectionState.DISCONNECTED)

        client.connect("secret", on_event=lambda e: None)
        transport.last.fail(TransportError("lost"))
        self.assertEqual(client.state, ConnectionState.RECONNECT_SCHEDULED)
        self.assertEqual(timers.last.delay, 5.0)

    def test_disconnect_cancels_pending_reconnect(self):
        client, transport, timers = make_client()
        client.connect("secret", on_event=lambda e: None)
        transport.last.fail(TransportError("lost"))
        pending = timers.last
        self.assertEqual(client.pending_reconnect_delay, 5.0)

        client.disconnect()

        self.assertTrue(pending.cancelled)
        self.assertIsNone(client.pending_reconnect_delay)
        self.assertEqual(client.reconnect_attempts, 0)

        # A late fire must not reopen anything
        pending.callback()
        self.assertEqual(len(transport.connections), 1)
        self.assertEqual(client.state, ConnectionState.DISCONNECTED)

    def test_second_error_from_same_connection_ignored(self):
        client, transport, timers = make_client()
        client.connect("secret", on_event=lambda e: None)
        connection = transport.last

        connection.fail(TransportError("lost"))
        connection.fail(TransportError("lost again"))

        self.assertEqual(len(timers.timers), 1)
        self.assertEqual(client.reconnect_attempts, 1)

    def test_synchronous_open_failure_schedules_reconnect(self):
        transport = FakeTransport(fail_with=TransportError("refused"))
        client, _, timers = make_client(transport=transport)
        errors = []

        client.connect("secret", on_event=lambda e: None, on_error=errors.append)

        self.assertEqual(client.state, ConnectionState.RECONNECT_SCHEDULED)
        self.assertEqual(timers.last.delay, 5.0)
        self.assertEqual(len(errors), 1)

    def test_zero_attempts_never_reconnects(self):
        client, transport, timers = make_client(max_attempts=0)
        client.connect("secret", on_event=lambda e: None)
        transport.last.fail(TransportError("lost"))

        self.assertEqual(client.state, ConnectionState.DISCONNECTED)
        self.assertEqual(timers.timers, [])


if __name__ == "__main__":
    unittest.main()
