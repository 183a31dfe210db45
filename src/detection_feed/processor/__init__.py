"""
Event processing - bus, per-detection merge, attention policy and routing.
"""

from .attention import AttentionPolicy, AttentionWindow
from .bus import WILDCARD, EventBus
from .merger import DetectionStateMerger
from .router import (
    DETECTION_CHANNEL,
    REVIEWED_CHANNEL,
    STREAM_EVENT_CHANNEL,
    EventRouter,
)

__all__ = [
    "AttentionPolicy",
    "AttentionWindow",
    "DETECTION_CHANNEL",
    "DetectionStateMerger",
    "EventBus",
    "EventRouter",
    "REVIEWED_CHANNEL",
    "STREAM_EVENT_CHANNEL",
    "WILDCARD",
]
