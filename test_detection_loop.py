# test_detection_loop.py
"""Tests for the DetectionSession driver."""

import threading
import time
import unittest

from config import EngineConfig
from detection_loop import Detection, DetectionSession
from events import EventKind, EventSink
from geometry import Box


class RecordingSink(EventSink):
    def __init__(self):
        self.events = []
        self.received = threading.Event()

    def handle(self, event):
        self.events.append(event)
        self.received.set()


class FailingSink(EventSink):
    def handle(self, event):
        raise RuntimeError("sink down")


def face(x, y, label, size=60):
    return Detection(Box(x, y, size, size), label)


class TestDetectionSession(unittest.TestCase):
    def setUp(self):
        """Set up a session driven by hand with fixed timestamps."""
        self.config = EngineConfig(startup_grace_ms=0, alert_timeout_ms=1000, frame_delay_ms=5, idle_delay_ms=5)
        self.sink = RecordingSink()
        self.session = DetectionSession(
            detector=lambda frame: [],
            frame_source=lambda: None,
            sink=self.sink,
            config=self.config,
        )

    def tearDown(self):
        self.session.stop(timeout=2)

    def test_process_detections_tracks_and_emits(self):
        """Test that one frame creates tracks and dispatches entry events."""
        events = self.session.process_detections([face(100, 100, "Alice"), face(400, 100, "Bob")], now=10)

        self.assertEqual([(e.kind, e.label) for e in events], [
            (EventKind.ENTERED, "Alice"),
            (EventKind.ENTERED, "Bob"),
        ])
        self.assertEqual(self.sink.events, events)
        self.assertEqual(len(self.session.tracker), 2)
        self.assertEqual([det.label for _, det in self.session.last_frame], ["Alice", "Bob"])

    def test_same_face_keeps_track_across_frames(self):
        """Test that a slowly moving face keeps its track."""
        self.session.process_detections([face(100, 100, "Alice")], now=10)
        first = self.session.last_frame[0][0]
        self.session.process_detections([face(110, 104, "Alice")], now=110)

        self.assertIs(self.session.last_frame[0][0], first)

    def test_display_scale_is_applied(self):
        """Test that detector boxes are mapped to display space before tracking."""
        self.session.display_scale = (2.0, 2.0)
        self.session.process_detections([face(50, 50, "Alice", size=30)], now=10)

        track = self.session.tracker.tracks[0]
        self.assertEqual((track.x, track.y, track.w, track.h), (130, 130, 60, 60))

    def test_timeout_through_sweep(self):
        """Test that an unseen person exits and the track expires later."""
        self.session.process_detections([face(100, 100, "Alice")], now=10)
        events = self.session.process_detections([], now=1011)

        self.assertEqual([(e.kind, e.label) for e in events], [(EventKind.EXITED, "Alice")])
        self.assertEqual(len(self.session.tracker), 1)

        self.session.process_detections([], now=4000)
        self.assertEqual(len(self.session.tracker), 0)

    def test_malformed_detection_is_skipped(self):
        """Test that invalid sizes and labels are skipped without losing the frame."""
        events = self.session.process_detections([
            Detection(Box(0, 0, -10, 50), "Alice"),
            Detection(Box(0, 0, 50, 50), ""),
            face(300, 300, "Bob"),
        ], now=10)

        self.assertEqual([(e.kind, e.label) for e in events], [(EventKind.ENTERED, "Bob")])
        self.assertEqual(len(self.session.tracker), 1)

    def test_non_numeric_box_is_skipped(self):
        """Test that boxes with non-numeric fields are skipped, not raised."""
        events = self.session.process_detections([
            Detection(Box(None, 0, 50, 50), "Alice"),
            Detection(Box(0, float("nan"), 50, 50), "Alice"),
            Detection("not a box", "Alice"),
            face(300, 300, "Bob"),
        ], now=10)

        self.assertEqual([(e.kind, e.label) for e in events], [(EventKind.ENTERED, "Bob")])
        self.assertEqual(len(self.session.tracker), 1)

    def test_loop_survives_non_numeric_box(self):
        """Test that a bad box does not kill the detection thread."""
        calls = []

        def detector(frame):
            calls.append(frame)
            if len(calls) == 1:
                return [Detection(Box(None, 0, 50, 50), "Alice")]
            return [face(100, 100, "Alice")]

        session = DetectionSession(
            detector=detector,
            frame_source=lambda: "frame",
            sink=self.sink,
            config=self.config,
        )
        session.start()
        try:
            self.assertTrue(self.sink.received.wait(timeout=2))
            self.assertTrue(session.running)
        finally:
            session.stop(timeout=2)

        self.assertGreaterEqual(len(calls), 2)
        self.assertEqual(self.sink.events[0].label, "Alice")

    def test_failing_sink_does_not_break_frame(self):
        """Test that a raising sink does not abort frame processing."""
        self.session.sink = FailingSink()

        events = self.session.process_detections([face(100, 100, "Alice")], now=10)

        self.assertEqual(len(events), 1)

    def test_start_is_idempotent_and_stop_clears_state(self):
        """Test that start is a no-op while running and stop resets state."""
        self.assertTrue(self.session.start(now=0))
        self.assertFalse(self.session.start(now=0))
        self.assertTrue(self.session.running)

        self.session.process_detections([face(100, 100, "Alice")], now=10)
        self.session.stop(timeout=2)

        self.assertFalse(self.session.running)
        self.assertEqual(len(self.session.tracker), 0)
        self.assertEqual(self.session.engine.identities, {})

        # Cold start: Alice is new again
        self.assertTrue(self.session.start(now=100))
        events = self.session.process_detections([face(100, 100, "Alice")], now=110)
        self.assertEqual([e.kind for e in events], [EventKind.ENTERED])

    def test_loop_runs_detector_on_frames(self):
        """Test that the loop thread feeds detector output to the sink."""
        clock = {"now": 0.0}

        def fake_clock():
            clock["now"] += 10.0
            return clock["now"]

        session = DetectionSession(
            detector=lambda frame: [face(100, 100, "Alice")],
            frame_source=lambda: "frame",
            sink=self.sink,
            config=self.config,
            clock=fake_clock,
        )
        session.start()
        try:
            self.assertTrue(self.sink.received.wait(timeout=2))
        finally:
            session.stop(timeout=2)

        self.assertEqual(self.sink.events[0].kind, EventKind.ENTERED)
        self.assertEqual(self.sink.events[0].label, "Alice")

    def test_detector_failure_skips_frame(self):
        """Test that a detector error skips one frame and the loop continues."""
        calls = []

        def flaky_detector(frame):
            calls.append(frame)
            if len(calls) == 1:
                raise RuntimeError("model not ready")
            return [face(100, 100, "Alice")]

        session = DetectionSession(
            detector=flaky_detector,
            frame_source=lambda: "frame",
            sink=self.sink,
            config=self.config,
        )
        session.start()
        try:
            self.assertTrue(self.sink.received.wait(timeout=2))
        finally:
            session.stop(timeout=2)

        self.assertGreaterEqual(len(calls), 2)
        self.assertEqual(self.sink.events[0].label, "Alice")

    def test_in_flight_result_discarded_after_stop(self):
        """Test that detections finishing after stop are discarded."""
        in_detector = threading.Event()
        release = threading.Event()

        def slow_detector(frame):
            in_detector.set()
            release.wait(timeout=2)
            return [face(100, 100, "Alice")]

        session = DetectionSession(
            detector=slow_detector,
            frame_source=lambda: "frame",
            sink=self.sink,
            config=self.config,
        )
        session.start()
        self.assertTrue(in_detector.wait(timeout=2))
        session.stop()
        release.set()
        session._thread.join(timeout=2)
        time.sleep(0.01)

        self.assertEqual(self.sink.events, [])
        self.assertEqual(len(session.tracker), 0)


if __name__ == "__main__":
    unittest.main()
