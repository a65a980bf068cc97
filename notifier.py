# notifier.py
# Event sinks: log lines and a bounded notification history.

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from events import EventSink, PresenceEvent, Severity

logger = logging.getLogger(__name__)


class LoggingNotifier(EventSink):
    """Writes each event to the log, warnings at WARNING and the rest at INFO."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def handle(self, event: PresenceEvent) -> None:
        level = logging.WARNING if event.severity is Severity.WARNING else logging.INFO
        self._log.log(level, event.message)


@dataclass(frozen=True)
class Notification:
    id: str
    message: str
    severity: Severity
    time: str
    event: PresenceEvent


class NotificationLog(EventSink):
    """Keeps the most recent notifications, oldest first."""

    def __init__(self, max_entries: int = 100):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def handle(self, event: PresenceEvent) -> None:
        entry = Notification(
            id=f"notif-{uuid.uuid4().hex[:12]}",
            message=event.message,
            severity=event.severity,
            time=datetime.now().strftime("%H:%M:%S"),
            event=event,
        )
        with self._lock:
            self._entries.append(entry)

    def entries(self) -> List[Notification]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class MultiSink(EventSink):
    def __init__(self, *sinks: EventSink):
        self.sinks = list(sinks)

    def handle(self, event: PresenceEvent) -> None:
        for sink in self.sinks:
            try:
                sink.handle(event)
            except Exception:
                logger.exception(f"MultiSink: {type(sink).__name__} failed")
