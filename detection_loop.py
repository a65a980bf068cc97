# detection_loop.py
# Per-source detection loop: detector -> tracker -> presence engine -> sink.

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from config import EngineConfig
from errors import InvalidInput
from events import EventSink, PresenceEvent
from geometry import Box, validate_coordinate, validate_label, validate_size
from presence_engine import PresenceEngine
from spatial_tracker import SpatialTracker, Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Detection:
    box: Box  # detector-native coordinates
    label: str


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def _checked_box(box) -> Box:
    if not isinstance(box, Box):
        raise InvalidInput(f"box must be a Box, got {box!r}")
    return Box(
        validate_coordinate("x", box.x),
        validate_coordinate("y", box.y),
        validate_size("w", box.w),
        validate_size("h", box.h),
    )


class DetectionSession:
    """
    Owns one SpatialTracker and one PresenceEngine for a single video source.

    ``start`` spawns the loop thread (no-op while running) and ``stop`` clears
    all tracks and identities so the next session starts cold. Sources that
    run side by side need their own session.
    """

    def __init__(
        self,
        detector: Callable[[object], List[Detection]],
        frame_source: Callable[[], object],
        sink: Optional[EventSink] = None,
        config: Optional[EngineConfig] = None,
        display_scale: Tuple[float, float] = (1.0, 1.0),
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.config = config or EngineConfig()
        self.detector = detector
        self.frame_source = frame_source
        self.sink = sink
        self.display_scale = display_scale
        self.clock = clock

        self.tracker = SpatialTracker(self.config)
        self.engine = PresenceEngine(self.config)

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_frame: List[Tuple[Track, Detection]] = []

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self, now: Optional[float] = None) -> bool:
        """Start the loop thread. Returns False if it was already running."""
        with self._lock:
            if self.running:
                return False
            self._begin_session(self.clock() if now is None else now)
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), daemon=True
            )
            self._thread.start()
            return True

    def _begin_session(self, now: float) -> None:
        self.tracker.clear()
        self.engine.reset(now)
        self.last_frame = []
        logger.info(f"DetectionSession: session started at {now:.0f}")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the loop and drop all tracking state.

        A detector call already in flight finishes but its result is
        discarded. Pass ``timeout`` to also wait for the thread to exit.
        """
        self._stop_event.set()
        with self._lock:
            self.tracker.clear()
            self.engine.reset(self.engine.session_start)
            self.last_frame = []
        logger.info("DetectionSession: session stopped")
        thread = self._thread
        if timeout is not None and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                frame = self.frame_source()
            except Exception:
                logger.exception("DetectionSession: frame source failed, skipping frame")
                frame = None

            if frame is None:
                stop_event.wait(self.config.idle_delay_ms / 1000.0)
                continue

            try:
                detections = self.detector(frame)
            except Exception:
                logger.exception("DetectionSession: detector failed, skipping frame")
                stop_event.wait(self.config.frame_delay_ms / 1000.0)
                continue

            with self._lock:
                if stop_event.is_set():
                    logger.debug("DetectionSession: discarding detections after stop")
                    break
                try:
                    self.process_detections(detections, self.clock())
                except Exception:
                    logger.exception("DetectionSession: failed to process frame, skipping it")

            stop_event.wait(self.config.frame_delay_ms / 1000.0)

    def process_detections(self, detections: List[Detection], now: float) -> List[PresenceEvent]:
        """Run one frame through the tracker and the engine and dispatch events."""
        with self._lock:
            self.tracker.sweep_expired(now)

            events: List[PresenceEvent] = []
            frame: List[Tuple[Track, Detection]] = []
            scale_x, scale_y = self.display_scale
            for det in detections:
                try:
                    validate_label(det.label)
                    box = _checked_box(det.box).scaled(scale_x, scale_y)
                    cx, cy = box.center
                    track = self.tracker.associate(cx, cy, box.w, box.h, now)
                    events.extend(self.engine.observe(det.label, box.w, box.h, now))
                except InvalidInput as e:
                    logger.warning(f"DetectionSession: skipped malformed detection {det!r}: {e}")
                    continue
                frame.append((track, det))

            self.tracker.mark_missing(now)
            events.extend(self.engine.sweep(now))
            self.last_frame = frame

        self._dispatch(events)
        return events

    def _dispatch(self, events: List[PresenceEvent]) -> None:
        if self.sink is None:
            return
        for event in events:
            try:
                self.sink.handle(event)
            except Exception:
                logger.exception(f"DetectionSession: sink failed on {event.kind.value} event")
