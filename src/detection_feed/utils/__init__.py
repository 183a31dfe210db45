"""
Utility modules for constants, the event schema and timers.
"""

from .constants import (
    DEFAULT_DISMISS_MS,
    MAX_LOAD_RETRIES,
    MAX_RECONNECT_ATTEMPTS,
    NO_WASTE_CATEGORY,
    NO_WASTE_DISMISS_MS,
    RECONNECT_DELAY,
)
from .display import category_label, format_weight, status_label
from .event_schema import (
    DETECTION_EVENT_TYPES,
    EVENT_TYPE_AI_ERROR,
    EVENT_TYPE_ANALYZING,
    EVENT_TYPE_CAMERA_STATUS,
    EVENT_TYPE_COMPLETE,
    EVENT_TYPE_FOOD_CLASSIFIED,
    EVENT_TYPE_INITIAL_OCR_COMPLETE,
    EVENT_TYPE_NEW_DETECTION,
    EVENT_TYPE_RECENT_DETECTIONS,
    EVENT_TYPE_SYSTEM_ALERT,
    NEW_DETECTION_EVENT_TYPES,
    SIDE_CHANNEL_EVENT_TYPES,
    StreamEnvelope,
    get_event_id,
    get_event_summary,
    is_valid_event,
)
from .timers import SingleSlotTimer

__all__ = [
    "DEFAULT_DISMISS_MS",
    "DETECTION_EVENT_TYPES",
    "EVENT_TYPE_AI_ERROR",
    "EVENT_TYPE_ANALYZING",
    "EVENT_TYPE_CAMERA_STATUS",
    "EVENT_TYPE_COMPLETE",
    "EVENT_TYPE_FOOD_CLASSIFIED",
    "EVENT_TYPE_INITIAL_OCR_COMPLETE",
    "EVENT_TYPE_NEW_DETECTION",
    "EVENT_TYPE_RECENT_DETECTIONS",
    "EVENT_TYPE_SYSTEM_ALERT",
    "MAX_LOAD_RETRIES",
    "MAX_RECONNECT_ATTEMPTS",
    "NEW_DETECTION_EVENT_TYPES",
    "NO_WASTE_CATEGORY",
    "NO_WASTE_DISMISS_MS",
    "RECONNECT_DELAY",
    "SIDE_CHANNEL_EVENT_TYPES",
    "SingleSlotTimer",
    "StreamEnvelope",
    "category_label",
    "format_weight",
    "get_event_id",
    "get_event_summary",
    "is_valid_event",
    "status_label",
]
