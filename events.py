# events.py
# Presence events produced by the engine and the sink interface that consumes them.

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from config import UNKNOWN_LABEL


class EventKind(Enum):
    ENTERED = "entered"
    EXITED = "exited"
    RETURNED = "returned"
    ALL_GONE = "all_gone"
    SOMEONE_RETURNED = "someone_returned"


class Severity(Enum):
    WARNING = "warning"
    SUCCESS = "success"


@dataclass(frozen=True)
class PresenceEvent:
    kind: EventKind
    timestamp: float
    label: Optional[str] = None
    labels: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_unknown(self) -> bool:
        return self.label == UNKNOWN_LABEL

    @property
    def severity(self) -> Severity:
        if self.kind in (EventKind.EXITED, EventKind.ALL_GONE) or self.is_unknown:
            return Severity.WARNING
        return Severity.SUCCESS

    @property
    def message(self) -> str:
        if self.kind is EventKind.ALL_GONE:
            return "Everyone has left the room"
        if self.kind is EventKind.SOMEONE_RETURNED:
            return "Someone has come back to the room"
        if self.is_unknown:
            return {
                EventKind.ENTERED: "An unknown person entered the room",
                EventKind.EXITED: "An unknown person left the room",
                EventKind.RETURNED: "An unknown person appeared again",
            }[self.kind]
        return {
            EventKind.ENTERED: f"{self.label} entered the room",
            EventKind.EXITED: f"{self.label} left the room",
            EventKind.RETURNED: f"{self.label} is back",
        }[self.kind]


def entered(label: str, now: float) -> PresenceEvent:
    return PresenceEvent(EventKind.ENTERED, now, label, (label,))


def exited(label: str, now: float) -> PresenceEvent:
    return PresenceEvent(EventKind.EXITED, now, label, (label,))


def returned(label: str, now: float) -> PresenceEvent:
    return PresenceEvent(EventKind.RETURNED, now, label, (label,))


class EventSink:
    """Receives presence events. Subclasses override ``handle``."""

    def handle(self, event: PresenceEvent) -> None:
        raise NotImplementedError
