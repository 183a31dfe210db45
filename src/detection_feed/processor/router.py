"""
Event Router

Routes parsed stream envelopes to the merger, the attention window and the
event bus. It is the on_event callback of the StreamClient.

Detection events:
    merged per id -> published on DETECTION_CHANNEL -> may open/refresh
    the attention window
Side-channel events (camera_status, recent_detections, system_alert):
    republished on a channel named after the event type
Every envelope:
    published on STREAM_EVENT_CHANNEL first
Unknown types:
    ignored
"""

import logging
import threading
from typing import Any, Iterable

from ..models.detection import DetectionRecord, ProcessingStatus, derive_status
from ..models.review import ReviewAction
from ..utils.display import category_label, format_weight
from ..utils.event_schema import (
    DETECTION_EVENT_TYPES,
    EVENT_TYPE_AI_ERROR,
    EVENT_TYPE_ANALYZING,
    EVENT_TYPE_COMPLETE,
    EVENT_TYPE_FOOD_CLASSIFIED,
    EVENT_TYPE_INITIAL_OCR_COMPLETE,
    EVENT_TYPE_NEW_DETECTION,
    EVENT_TYPE_SYSTEM_ALERT,
    NEW_DETECTION_EVENT_TYPES,
    SIDE_CHANNEL_EVENT_TYPES,
    DetectionData,
    StreamEnvelope,
    get_event_id,
    get_event_summary,
)
from .attention import AttentionWindow
from .bus import EventBus
from .merger import DetectionStateMerger

logger = logging.getLogger(__name__)

# Bus channels
STREAM_EVENT_CHANNEL = "stream_event"
DETECTION_CHANNEL = "new_detection"
REVIEWED_CHANNEL = "detection_reviewed"


class EventRouter:
    """
    Glue between the stream, the merger, the attention window and the bus.

    Merging and attention decisions run under one lock, so events handled
    from the reader thread and actions from the operator never interleave.

    Args:
        merger: Per-id record store
        bus: Local broadcast surface
        window: Interrupting view for reviewers
        viewer_capabilities: Capabilities of the current viewer
    """

    def __init__(
        self,
        merger: DetectionStateMerger,
        bus: EventBus,
        window: AttentionWindow,
        viewer_capabilities: Iterable[str] = (),
    ):
        self.merger = merger
        self.bus = bus
        self.window = window
        self.viewer_capabilities = frozenset(viewer_capabilities)
        self._lock = threading.RLock()
        self._current_id: Any = None
        self._event_count = 0

    @property
    def current_id(self) -> Any:
        """Id of the latest detection-of-interest."""
        with self._lock:
            return self._current_id

    @property
    def event_count(self) -> int:
        with self._lock:
            return self._event_count

    def handle(self, envelope: StreamEnvelope) -> DetectionRecord | None:
        """
        Route one envelope.

        Returns:
            Merged record copy for detection events, None otherwise
        """
        event_type = envelope.get("type")
        with self._lock:
            self._event_count += 1
        logger.debug(f"Event: {get_event_summary(envelope)}")

        self.bus.publish(STREAM_EVENT_CHANNEL, envelope)

        if event_type in DETECTION_EVENT_TYPES:
            return self._handle_detection(envelope)

        if event_type in SIDE_CHANNEL_EVENT_TYPES:
            data = envelope.get("data")
            if event_type == EVENT_TYPE_SYSTEM_ALERT:
                self._log_alert(data)
            self.bus.publish(event_type, data)
            return None

        logger.debug(f"Ignoring unknown event type '{event_type}'")
        return None

    def perform_action(self, action: ReviewAction | str) -> DetectionRecord | None:
        """
        Run a review action from the attention window.

        The backend's updated snapshot is merged back into the record.

        Returns:
            Updated record copy, or None if the action was ignored

        Raises:
            SubmissionError: If submission failed (window stays open)
        """
        snapshot = self.window.perform(action)
        if not isinstance(snapshot, dict) or snapshot.get("id") is None:
            return None

        with self._lock:
            record = self.merger.apply({"type": REVIEWED_CHANNEL, "data": snapshot}).copy()
        self.bus.publish(REVIEWED_CHANNEL, record.to_dict())
        return record

    def reset(self) -> None:
        """Session end: close the window and forget every record."""
        with self._lock:
            self.window.close("teardown")
            self.merger.clear()
            self._current_id = None

    def _handle_detection(self, envelope: StreamEnvelope) -> DetectionRecord | None:
        event_type = envelope["type"]
        detection_id = get_event_id(envelope)
        if detection_id is None:
            logger.warning(f"Dropping {event_type} event without a detection id")
            return None

        data: DetectionData = dict(envelope["data"])
        if event_type == EVENT_TYPE_AI_ERROR:
            data["status"] = ProcessingStatus.AI_ERROR.value

        with self._lock:
            if event_type in NEW_DETECTION_EVENT_TYPES:
                previous = self._current_id
                if previous is not None and previous != detection_id:
                    self.merger.discard(previous)
                self._current_id = detection_id

            record = self.merger.apply({"type": event_type, "data": data})
            snapshot = record.copy()

            if self.window.policy.should_attend(record, self.viewer_capabilities, event_type):
                self.window.open(record)
            else:
                self.window.refresh(record)

        self._log_notice(event_type, snapshot)
        self.bus.publish(DETECTION_CHANNEL, snapshot.to_dict())
        return snapshot

    def _log_notice(self, event_type: str, record: DetectionRecord) -> None:
        reviewer = self.window.policy.can_review(self.viewer_capabilities)

        if event_type == EVENT_TYPE_ANALYZING:
            message = "New detection captured - analyzing..."
        elif event_type == EVENT_TYPE_FOOD_CLASSIFIED:
            message = f"Food classified: {record.description}"
        elif event_type == EVENT_TYPE_INITIAL_OCR_COMPLETE:
            message = f"Initial weight: {format_weight(record.initial_weight)}"
        elif event_type == EVENT_TYPE_COMPLETE:
            message = f"Detection complete - Net waste: {format_weight(record.net_weight)}"
        elif event_type == EVENT_TYPE_AI_ERROR:
            logger.error(f"AI processing failed: {record.error_message} (detection {record.id})")
            return
        elif event_type == EVENT_TYPE_NEW_DETECTION:
            if reviewer:
                message = f"New {category_label(record.category)} detection received!"
            else:
                message = f"New {category_label(record.category)} detected!"
        else:
            return

        status = derive_status(record).value
        logger.info(f"{message} (detection {record.id}, {status})")

    @staticmethod
    def _log_alert(data: Any) -> None:
        if not isinstance(data, dict):
            return
        message = data.get("message", "")
        if data.get("severity") == "error":
            logger.error(f"System alert: {message}")
        else:
            logger.info(f"System alert: {message}")
