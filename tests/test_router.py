"""
Tests for the event router (merge -> attention -> bus).
"""

import unittest
from unittest import mock

from detection_feed.models.detection import ProcessingStatus
from detection_feed.models.review import ReviewAction
from detection_feed.processor import (
    DETECTION_CHANNEL,
    REVIEWED_CHANNEL,
    STREAM_EVENT_CHANNEL,
    AttentionPolicy,
    AttentionWindow,
    DetectionStateMerger,
    EventBus,
    EventRouter,
)

from fakes import FakeTimerFactory


def envelope(event_type, **data):
    return {"type": event_type, "data": data}


class RouterTestCase(unittest.TestCase):
    capabilities = ("worker",)

    def setUp(self):
        self.timers = FakeTimerFactory()
        self.bus = EventBus()
        self.merger = DetectionStateMerger()
        self.submit = mock.Mock(return_value={"id": 42, "review_status": "DETECTION_OK"})
        self.window = AttentionWindow(
            AttentionPolicy(), submit=self.submit, timer_factory=self.timers
        )
        self.router = EventRouter(
            self.merger, self.bus, self.window, viewer_capabilities=self.capabilities
        )
        self.published = []
        self.bus.subscribe(DETECTION_CHANNEL, self.published.append)


class TestDetectionFlow(RouterTestCase):
    """Test progressive detections end to end."""

    def test_full_progression_for_reviewer(self):
        self.router.handle(envelope("detection_analyzing", id=42, description="Analyzing..."))
        self.assertTrue(self.window.is_open)
        self.assertEqual(self.window.status, ProcessingStatus.ANALYZING)
        self.assertFalse(self.window.auto_dismiss_pending)

        self.router.handle(
            envelope("detection_food_classified", id=42, category="PROTEIN", description="beef")
        )
        self.router.handle(envelope("detection_initial_ocr_complete", id=42, initial_weight=500))
        self.assertEqual(self.window.status, ProcessingStatus.INITIAL_OCR_COMPLETE)
        self.assertFalse(self.window.actions_enabled)

        record = self.router.handle(
            envelope("detection_complete", id=42, final_weight=350, net_weight=150)
        )

        self.assertEqual(record.category, "PROTEIN")
        self.assertEqual(self.window.status, ProcessingStatus.COMPLETE)
        self.assertTrue(self.window.actions_enabled)
        self.assertEqual(self.timers.last.delay, 10.0)
        self.assertEqual(len(self.published), 4)
        self.assertEqual(self.published[-1]["net_weight"], 150)

    def test_new_detection_supersedes_previous(self):
        self.router.handle(envelope("detection_analyzing", id=42))
        self.router.handle(envelope("detection_analyzing", id=43))

        self.assertEqual(self.router.current_id, 43)
        self.assertEqual(self.window.subject_id, 43)
        self.assertNotIn(42, self.merger)

        # Late stage for the superseded detection does not steal the window
        self.router.handle(envelope("detection_food_classified", id=42, category="PROTEIN"))
        self.assertEqual(self.window.subject_id, 43)

    def test_no_waste_auto_dismiss(self):
        self.router.handle(
            envelope(
                "new_detection",
                id=7,
                category="NO_WASTE",
                initial_weight=0,
                final_weight=0,
            )
        )
        self.assertEqual(self.timers.last.delay, 1.0)

        self.timers.last.fire()
        self.assertFalse(self.window.is_open)

    def test_ai_error_forces_status(self):
        self.router.handle(envelope("detection_analyzing", id=5))
        record = self.router.handle(
            envelope("detection_ai_error", id=5, error_message="model timeout")
        )

        self.assertEqual(record.status, "ai_error")
        self.assertEqual(self.window.status, ProcessingStatus.AI_ERROR)
        self.assertTrue(self.window.actions_enabled)

    def test_event_without_id_dropped(self):
        result = self.router.handle(envelope("detection_analyzing", description="Analyzing..."))

        self.assertIsNone(result)
        self.assertEqual(len(self.merger), 0)
        self.assertEqual(self.published, [])
        self.assertFalse(self.window.is_open)

    def test_returned_record_is_a_copy(self):
        record = self.router.handle(envelope("detection_analyzing", id=1))
        record.category = "PROTEIN"
        self.assertIsNone(self.merger.get(1).category)


class TestNonReviewer(RouterTestCase):
    """Viewers without review capability never get interrupted."""

    capabilities = ("guest",)

    def test_window_never_opens(self):
        self.router.handle(envelope("detection_analyzing", id=1))
        self.router.handle(
            envelope(
                "detection_complete",
                id=1,
                category="PROTEIN",
                initial_weight=10,
                final_weight=5,
            )
        )

        self.assertFalse(self.window.is_open)
        self.assertEqual(self.timers.timers, [])
        self.assertEqual(len(self.published), 2)


class TestOtherEvents(RouterTestCase):
    """Test side channels and unknown event types."""

    def test_every_envelope_on_stream_channel(self):
        seen = []
        self.bus.subscribe(STREAM_EVENT_CHANNEL, seen.append)

        self.router.handle(envelope("camera_status", camera_id=1, status="online"))
        self.router.handle(envelope("something_new", foo=1))

        self.assertEqual([e["type"] for e in seen], ["camera_status", "something_new"])
        self.assertEqual(self.router.event_count, 2)

    def test_side_channel_republished(self):
        statuses = []
        alerts = []
        self.bus.subscribe("camera_status", statuses.append)
        self.bus.subscribe("system_alert", alerts.append)

        self.router.handle(envelope("camera_status", camera_id=1, status="offline"))
        self.router.handle(envelope("system_alert", severity="error", message="disk full"))

        self.assertEqual(statuses, [{"camera_id": 1, "status": "offline"}])
        self.assertEqual(alerts[0]["message"], "disk full")
        self.assertEqual(self.published, [])

    def test_unknown_type_ignored(self):
        result = self.router.handle(envelope("something_new", id=1))
        self.assertIsNone(result)
        self.assertEqual(len(self.merger), 0)


class TestActions(RouterTestCase):
    """Test review actions through the router."""

    def test_action_merges_snapshot_and_publishes(self):
        reviewed = []
        self.bus.subscribe(REVIEWED_CHANNEL, reviewed.append)
        self.router.handle(
            envelope(
                "new_detection", id=42, category="PROTEIN", initial_weight=10, final_weight=5
            )
        )

        record = self.router.perform_action(ReviewAction.ACCEPT)

        self.assertEqual(record.extra["review_status"], "DETECTION_OK")
        self.assertEqual(record.category, "PROTEIN")
        self.assertEqual(reviewed[0]["review_status"], "DETECTION_OK")
        self.assertFalse(self.window.is_open)

    def test_action_ignored_before_complete(self):
        self.router.handle(envelope("detection_analyzing", id=42))
        self.assertIsNone(self.router.perform_action("accept"))
        self.submit.assert_not_called()

    def test_reset(self):
        self.router.handle(envelope("detection_analyzing", id=42))
        self.router.reset()

        self.assertFalse(self.window.is_open)
        self.assertEqual(len(self.merger), 0)
        self.assertIsNone(self.router.current_id)


if __name__ == "__main__":
    unittest.main()
