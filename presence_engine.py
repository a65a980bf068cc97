# presence_engine.py
# Turns per-frame identity labels into debounced entry/exit/return events.

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from config import EngineConfig, UNKNOWN_LABEL
from events import EventKind, PresenceEvent, entered, exited, returned
from geometry import validate_label, validate_size, validate_timestamp

logger = logging.getLogger(__name__)


@dataclass
class IdentityState:
    """Per-label presence state.

    A state is only created once the label has passed its entry
    confirmation (one frame for known labels, ``unknown_confirm_frames`` for
    "Unknown"), so ``confirmed`` is always True for stored states.
    """
    label: str
    last_seen_at: float
    alert_active: bool = False
    confirmed: bool = True


class PresenceEngine:
    """
    Presence state machine keyed by identity label.

    Every label goes Unseen -> Present (ENTERED) and then alternates between
    Present and Absent: ``sweep`` moves a label to Absent (EXITED) once it has
    not been seen for ``alert_timeout_ms``, and the next accepted observation
    moves it back (RETURNED).

    Observations are dropped when the box is smaller than ``min_box_size`` or
    while the session is younger than ``startup_grace_ms``. Known labels are
    accepted on a single frame. "Unknown" only counts once it has been seen on
    ``unknown_confirm_frames`` frames without a known label in between.

    When a sweep leaves every known identity absent (and there is more than
    one), a single ALL_GONE replaces that sweep's EXITED events. The first sweep
    after one of the people who left comes back emits SOMEONE_RETURNED;
    labels first seen after the room emptied only produce ENTERED.
    """

    def __init__(self, config: Optional[EngineConfig] = None, session_start: float = 0.0):
        self.config = config or EngineConfig()
        self._identities: Dict[str, IdentityState] = {}
        self._unknown_frames: int = 0
        # labels that were present when ALL_GONE fired, empty otherwise
        self._vacated_by: Set[str] = set()
        self.session_start: float = validate_timestamp(session_start)

    @property
    def identities(self) -> Dict[str, IdentityState]:
        return dict(self._identities)

    @property
    def unknown_frames(self) -> int:
        return self._unknown_frames

    def present_labels(self) -> List[str]:
        return [s.label for s in self._identities.values() if not s.alert_active]

    def reset(self, session_start: float) -> None:
        """Forget every identity and start a new detection session."""
        self.session_start = validate_timestamp(session_start)
        self._identities.clear()
        self._unknown_frames = 0
        self._vacated_by.clear()

    def observe(self, label, box_width, box_height, now) -> List[PresenceEvent]:
        label = validate_label(label)
        box_width = validate_size("box_width", box_width)
        box_height = validate_size("box_height", box_height)
        now = validate_timestamp(now)

        min_size = self.config.min_box_size
        if box_width < min_size or box_height < min_size:
            logger.debug(f"PresenceEngine: ignored {label} ({box_width:.0f}x{box_height:.0f} < {min_size:.0f})")
            return []

        if now - self.session_start < self.config.startup_grace_ms:
            logger.debug(f"PresenceEngine: ignored {label} during startup grace")
            return []

        if label != UNKNOWN_LABEL:
            self._unknown_frames = 0
            return self._accept(label, now)

        self._unknown_frames += 1
        if self._unknown_frames < self.config.unknown_confirm_frames:
            logger.debug(f"PresenceEngine: unknown not confirmed yet ({self._unknown_frames}/{self.config.unknown_confirm_frames})")
            return []
        return self._accept(UNKNOWN_LABEL, now)

    def _accept(self, label: str, now: float) -> List[PresenceEvent]:
        state = self._identities.get(label)
        if state is None:
            self._identities[label] = IdentityState(label, last_seen_at=now)
            logger.info(f"PresenceEngine: {label} entered")
            return [entered(label, now)]

        state.last_seen_at = now
        if state.alert_active:
            state.alert_active = False
            logger.info(f"PresenceEngine: {label} returned")
            return [returned(label, now)]
        return []

    def sweep(self, now) -> List[PresenceEvent]:
        now = validate_timestamp(now)
        if not self._identities:
            return []

        events: List[PresenceEvent] = []
        states = list(self._identities.values())

        back = tuple(
            s.label for s in states if s.label in self._vacated_by and not s.alert_active
        )
        if back:
            self._vacated_by.clear()
            logger.info(f"PresenceEngine: room occupied again by {', '.join(back)}")
            events.append(PresenceEvent(EventKind.SOMEONE_RETURNED, now, None, back))

        timeout = self.config.alert_timeout_ms
        gone = [s for s in states if not s.alert_active and now - s.last_seen_at > timeout]
        for state in gone:
            state.alert_active = True

        if not gone:
            return events

        everyone_gone = all(s.alert_active for s in states)
        if everyone_gone and len(states) > 1:
            labels = tuple(s.label for s in states)
            self._vacated_by = set(labels)
            logger.info(f"PresenceEngine: everyone left ({', '.join(labels)})")
            events.append(PresenceEvent(EventKind.ALL_GONE, now, None, labels))
            return events

        for state in gone:
            logger.info(f"PresenceEngine: {state.label} exited (unseen for {now - state.last_seen_at:.0f} ms)")
            events.append(exited(state.label, now))
        return events
