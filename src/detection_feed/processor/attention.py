"""
Attention Policy - when to interrupt the operator, and for how long.

AttentionPolicy holds the pure decisions:
- should_attend: viewer can review AND the event starts a new detection
- auto_dismiss_delay: 1s for "no waste", 10s otherwise, only once finished
- actions_enabled: accept/review/cancel only once finished

AttentionWindow is the stateful side: the one interrupting view, its
auto-dismiss countdown and the review actions performed from it.
"""

import logging
import threading
from typing import Any, Callable, Iterable

import requests

from ..models.detection import DetectionRecord, ProcessingStatus, derive_status
from ..models.errors import SubmissionError
from ..models.review import ReviewAction
from ..utils.constants import (
    DEFAULT_DISMISS_MS,
    DEFAULT_REVIEW_CAPABILITIES,
    NO_WASTE_CATEGORY,
    NO_WASTE_DISMISS_MS,
)
from ..utils.display import status_label
from ..utils.event_schema import NEW_DETECTION_EVENT_TYPES
from ..utils.timers import SingleSlotTimer, TimerFactory

logger = logging.getLogger(__name__)

ReviewSubmitter = Callable[[Any, dict[str, str]], dict]
CloseCallback = Callable[[DetectionRecord, str], None]

# Close reasons passed to on_close
CLOSE_MANUAL = "manual"
CLOSE_AUTO = "auto"
CLOSE_ACTION = "action"
CLOSE_REPLACED = "replaced"


class AttentionPolicy:
    """
    Decision rules for the interrupting detection view.

    Args:
        allowed_capabilities: Viewer capabilities that may review detections
        no_waste_category: Category that dismisses quickly
        no_waste_dismiss_ms: Auto-dismiss delay for that category
        default_dismiss_ms: Auto-dismiss delay for everything else
    """

    def __init__(
        self,
        allowed_capabilities: Iterable[str] = DEFAULT_REVIEW_CAPABILITIES,
        no_waste_category: str = NO_WASTE_CATEGORY,
        no_waste_dismiss_ms: int = NO_WASTE_DISMISS_MS,
        default_dismiss_ms: int = DEFAULT_DISMISS_MS,
    ):
        self.allowed_capabilities = frozenset(c.lower() for c in allowed_capabilities)
        self.no_waste_category = no_waste_category
        self.no_waste_dismiss_ms = no_waste_dismiss_ms
        self.default_dismiss_ms = default_dismiss_ms

    def can_review(self, viewer_capabilities: Iterable[str]) -> bool:
        return any(c.lower() in self.allowed_capabilities for c in viewer_capabilities)

    def should_attend(
        self,
        record: DetectionRecord | None,
        viewer_capabilities: Iterable[str],
        event_type: str,
    ) -> bool:
        """
        Decide whether a record should open the interrupting view.

        Only events that announce a new detection qualify; later stages of
        the same detection refresh an already open view instead.
        """
        if record is None or not self.can_review(viewer_capabilities):
            return False
        return event_type in NEW_DETECTION_EVENT_TYPES

    def auto_dismiss_delay(self, record: DetectionRecord | None) -> int | None:
        """
        Milliseconds until the view closes itself, or None for no auto-dismiss.
        """
        if not self.actions_enabled(record):
            return None
        if record.category == self.no_waste_category:
            return self.no_waste_dismiss_ms
        return self.default_dismiss_ms

    @staticmethod
    def actions_enabled(record: DetectionRecord | None) -> bool:
        return record is not None and derive_status(record).is_terminal


class AttentionWindow:
    """
    The single interrupting view for one detection at a time.

    Owns one auto-dismiss timer. Opening a different detection, closing
    manually, or acting on the detection cancels it, and the timer
    callback checks the subject id so a late fire is ignored.

    Args:
        policy: Decision rules
        submit: Review submission call, (detection_id, payload) -> snapshot
        on_close: Called with (record, reason) whenever the window closes
        timer_factory: Creates the auto-dismiss timer (threading.Timer)
    """

    def __init__(
        self,
        policy: AttentionPolicy,
        submit: ReviewSubmitter | None = None,
        on_close: CloseCallback | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.policy = policy
        self._submit = submit
        self._on_close = on_close
        self._timer = SingleSlotTimer("AutoDismiss", timer_factory)
        self._lock = threading.RLock()
        self._subject: DetectionRecord | None = None
        self._submitting = False

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._subject is not None

    @property
    def subject(self) -> DetectionRecord | None:
        """Copy of the detection on screen, None when closed."""
        with self._lock:
            return self._subject.copy() if self._subject is not None else None

    @property
    def subject_id(self) -> Any:
        with self._lock:
            return self._subject.id if self._subject is not None else None

    @property
    def status(self) -> ProcessingStatus:
        with self._lock:
            return derive_status(self._subject)

    @property
    def actions_enabled(self) -> bool:
        with self._lock:
            return not self._submitting and self.policy.actions_enabled(self._subject)

    @property
    def auto_dismiss_pending(self) -> bool:
        return self._timer.pending

    def open(self, record: DetectionRecord) -> None:
        """
        Show ``record``, replacing whatever was on screen.

        A different detection replaces the current one (its countdown is
        cancelled); the same detection is just refreshed.
        """
        with self._lock:
            previous = self._subject
            if previous is not None and previous.id != record.id:
                self._timer.cancel()
                logger.debug(f"Attention window: detection {previous.id} replaced by {record.id}")
            self._subject = record.copy()
            self._rearm_locked()

        if previous is not None and previous.id != record.id:
            self._notify_close(previous, CLOSE_REPLACED)

        logger.info(
            f"Attention window open: detection {record.id} ({status_label(derive_status(record))})"
        )

    def refresh(self, record: DetectionRecord) -> bool:
        """
        Update the on-screen detection if ``record`` is the same one.

        Returns:
            True if the window showed this detection and was refreshed
        """
        with self._lock:
            if self._subject is None or self._subject.id != record.id:
                return False
            self._subject = record.copy()
            self._rearm_locked()
        return True

    def close(self, reason: str = CLOSE_MANUAL) -> bool:
        """
        Close the window and cancel its countdown.

        Returns:
            True if the window was open
        """
        return self._close(reason)

    def _close(self, reason: str, expected_id: Any = None) -> bool:
        with self._lock:
            subject = self._subject
            if subject is None:
                return False
            if expected_id is not None and subject.id != expected_id:
                return False
            self._timer.cancel()
            self._subject = None

        logger.info(f"Attention window closed: detection {subject.id} ({reason})")
        self._notify_close(subject, reason)
        return True

    def perform(self, action: ReviewAction | str) -> dict | None:
        """
        Submit a review action for the on-screen detection.

        Ignored (returns None) unless the detection is finished and no
        other submission is running. On success the window closes; on
        failure it stays open for the operator to try again.

        Returns:
            Updated detection snapshot from the backend, or None if ignored

        Raises:
            SubmissionError: If the backend rejected or never got the review
        """
        action = ReviewAction(action)

        with self._lock:
            subject = self._subject
            if subject is None or self._submitting:
                logger.debug(f"Ignoring '{action.value}': no detection or submission in progress")
                return None
            if not self.policy.actions_enabled(subject):
                logger.debug(
                    f"Ignoring '{action.value}' for detection {subject.id}: "
                    f"status is {derive_status(subject).value}"
                )
                return None
            if self._submit is None:
                raise SubmissionError(subject.id, action.verb, "No review submitter configured")
            self._submitting = True

        try:
            snapshot = self._submit(subject.id, action.to_payload())
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to {action.verb} detection {subject.id}: {e}")
            raise SubmissionError(subject.id, action.verb) from e
        finally:
            with self._lock:
                self._submitting = False

        logger.info(f"Detection {subject.id} {action.past_tense} successfully")
        self._close(CLOSE_ACTION, expected_id=subject.id)
        return snapshot

    def _rearm_locked(self) -> None:
        delay_ms = self.policy.auto_dismiss_delay(self._subject)
        if delay_ms is None:
            self._timer.cancel()
            return
        subject_id = self._subject.id
        self._timer.schedule(delay_ms / 1000, lambda: self._auto_dismiss(subject_id))

    def _auto_dismiss(self, subject_id: Any) -> None:
        self._close(CLOSE_AUTO, expected_id=subject_id)

    def _notify_close(self, record: DetectionRecord, reason: str) -> None:
        if self._on_close is None:
            return
        try:
            self._on_close(record, reason)
        except Exception as e:
            logger.error(f"Attention close handler failed: {e}", exc_info=True)
