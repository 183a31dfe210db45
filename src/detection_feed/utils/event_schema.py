"""
Event Schema - Contract between the backend event stream and the feed.

Every server-sent message carries one JSON envelope:

    {"type": "detection_complete", "data": {...}, "timestamp": "..."}

Detection events arrive in stages for the same detection id. Each stage
carries only the fields the backend learned at that point, so consumers
must merge them rather than replace.

Event Types:
    detection_analyzing: New tray captured, classifier running
    detection_food_classified: Category and description known
    detection_initial_ocr_complete: Initial scale weight read
    detection_complete: Final weight read, net waste known
    detection_ai_error: Processing failed on the backend
    new_detection: Legacy single-shot detection event
    camera_status: Camera online/offline side channel
    recent_detections: Recent detections list side channel
    system_alert: Operator-facing system message
"""

from typing import Any, Literal, TypedDict

from .display import format_weight

# Progressive detection event types
EVENT_TYPE_ANALYZING = "detection_analyzing"
EVENT_TYPE_FOOD_CLASSIFIED = "detection_food_classified"
EVENT_TYPE_INITIAL_OCR_COMPLETE = "detection_initial_ocr_complete"
EVENT_TYPE_COMPLETE = "detection_complete"
EVENT_TYPE_AI_ERROR = "detection_ai_error"

# Legacy single-shot detection
EVENT_TYPE_NEW_DETECTION = "new_detection"

# Side channels
EVENT_TYPE_CAMERA_STATUS = "camera_status"
EVENT_TYPE_RECENT_DETECTIONS = "recent_detections"
EVENT_TYPE_SYSTEM_ALERT = "system_alert"

EventType = Literal[
    "detection_analyzing",
    "detection_food_classified",
    "detection_initial_ocr_complete",
    "detection_complete",
    "detection_ai_error",
    "new_detection",
    "camera_status",
    "recent_detections",
    "system_alert",
]

# Events that carry (part of) a detection record
DETECTION_EVENT_TYPES = frozenset(
    {
        EVENT_TYPE_ANALYZING,
        EVENT_TYPE_FOOD_CLASSIFIED,
        EVENT_TYPE_INITIAL_OCR_COMPLETE,
        EVENT_TYPE_COMPLETE,
        EVENT_TYPE_AI_ERROR,
        EVENT_TYPE_NEW_DETECTION,
    }
)

# Events that start a new detection-of-interest (as opposed to refreshing one)
NEW_DETECTION_EVENT_TYPES = frozenset({EVENT_TYPE_ANALYZING, EVENT_TYPE_NEW_DETECTION})

SIDE_CHANNEL_EVENT_TYPES = frozenset(
    {EVENT_TYPE_CAMERA_STATUS, EVENT_TYPE_RECENT_DETECTIONS, EVENT_TYPE_SYSTEM_ALERT}
)


class StreamEnvelope(TypedDict, total=False):
    """
    One parsed server-sent message.

    Required fields:
        type: Event type string (unknown types are ignored downstream)
        data: Event payload

    Optional fields:
        timestamp: ISO timestamp set by the backend
    """

    type: str
    data: dict[str, Any]
    timestamp: str


class DetectionData(TypedDict, total=False):
    """
    Payload of a detection event. Only ``id`` is guaranteed.

    Later stages add fields; ``status`` is set explicitly by the backend
    on some deployments and always wins over derivation.
    """

    id: int
    status: str
    category: str
    description: str
    confidence: float
    initial_weight: float
    final_weight: float
    net_weight: float
    tray_id: int
    camera_id: int
    image_path: str
    error_message: str


def is_valid_event(event: Any) -> bool:
    """
    Validate that a parsed message has the envelope shape.

    Args:
        event: Decoded JSON value

    Returns:
        True if event is a dict with a string ``type``
    """
    return isinstance(event, dict) and isinstance(event.get("type"), str)


def get_event_id(event: dict) -> Any:
    """Return the detection id embedded in ``event["data"]``, or None."""
    data = event.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("id")


def get_event_summary(event: dict) -> str:
    """
    Get a human-readable summary of an event.

    Args:
        event: Envelope dictionary

    Returns:
        Summary string for logging
    """
    event_type = event.get("type", "UNKNOWN")
    data = event.get("data") or {}
    if not isinstance(data, dict):
        return f"{event_type} (non-object payload)"
    detection_id = data.get("id", "?")

    if event_type == EVENT_TYPE_ANALYZING:
        return f"detection={detection_id} analyzing"

    elif event_type == EVENT_TYPE_FOOD_CLASSIFIED:
        category = data.get("category", "?")
        return f"detection={detection_id} classified category={category}"

    elif event_type == EVENT_TYPE_INITIAL_OCR_COMPLETE:
        weight = format_weight(data.get("initial_weight"))
        return f"detection={detection_id} initial_weight={weight}"

    elif event_type == EVENT_TYPE_COMPLETE:
        weight = format_weight(data.get("net_weight"))
        return f"detection={detection_id} complete net={weight}"

    elif event_type == EVENT_TYPE_AI_ERROR:
        message = data.get("error_message", "unknown error")
        return f"detection={detection_id} ai_error: {message}"

    elif event_type == EVENT_TYPE_NEW_DETECTION:
        category = data.get("category", "?")
        return f"detection={detection_id} new category={category}"

    elif event_type == EVENT_TYPE_CAMERA_STATUS:
        camera = data.get("camera_id", data.get("id", "?"))
        return f"camera={camera} status={data.get('status', '?')}"

    elif event_type == EVENT_TYPE_SYSTEM_ALERT:
        severity = data.get("severity", "info")
        return f"alert[{severity}] {data.get('message', '')}"

    else:
        return f"{event_type}"
