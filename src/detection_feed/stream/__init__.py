"""
Event stream subscription - client with reconnect policy, and SSE transport.
"""

from .client import ConnectionState, StreamClient, parse_envelope
from .transport import SSEConnection, SSETransport, Transport

__all__ = [
    "ConnectionState",
    "SSEConnection",
    "SSETransport",
    "StreamClient",
    "Transport",
    "parse_envelope",
]
