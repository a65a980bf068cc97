# config.py
# Configuration constants for the presence tracker.

import math
from dataclasses import dataclass, fields, replace as _replace

from errors import ConfigurationError

# Tracking settings
TRACK_MAX_DISTANCE = 120.0  # px, display space
TRACK_EXPIRY_MS = 3000.0
SMOOTHING_FACTOR = 0.7  # weight of the newest observation

# Presence settings
ALERT_TIMEOUT_MS = 10000.0  # unseen this long -> considered gone
MIN_BOX_SIZE = 20.0  # px, smaller faces are distant/partial noise
STARTUP_GRACE_MS = 1500.0  # camera/model warm-up
UNKNOWN_CONFIRM_FRAMES = 5

# Detection loop settings
FRAME_DELAY_MS = 100.0
IDLE_DELAY_MS = 100.0

# Recognizer adapter settings
T_KNOWN = 0.6
DETECT_SCALE = 0.5

UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True)
class EngineConfig:
    track_max_distance: float = TRACK_MAX_DISTANCE
    track_expiry_ms: float = TRACK_EXPIRY_MS
    alert_timeout_ms: float = ALERT_TIMEOUT_MS
    min_box_size: float = MIN_BOX_SIZE
    startup_grace_ms: float = STARTUP_GRACE_MS
    unknown_confirm_frames: int = UNKNOWN_CONFIRM_FRAMES
    smoothing_factor: float = SMOOTHING_FACTOR
    frame_delay_ms: float = FRAME_DELAY_MS
    idle_delay_ms: float = IDLE_DELAY_MS

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(f"{f.name} must be finite, got {value!r}")

        if not 0.0 <= self.smoothing_factor <= 1.0:
            raise ConfigurationError(
                f"smoothing_factor must be within [0, 1], got {self.smoothing_factor}"
            )
        if self.track_max_distance <= 0:
            raise ConfigurationError("track_max_distance must be positive")
        if self.track_expiry_ms <= 0 or self.alert_timeout_ms <= 0:
            raise ConfigurationError("track_expiry_ms and alert_timeout_ms must be positive")
        if self.min_box_size < 0 or self.startup_grace_ms < 0:
            raise ConfigurationError("min_box_size and startup_grace_ms must not be negative")
        if self.frame_delay_ms < 0 or self.idle_delay_ms < 0:
            raise ConfigurationError("frame_delay_ms and idle_delay_ms must not be negative")
        if int(self.unknown_confirm_frames) != self.unknown_confirm_frames or self.unknown_confirm_frames < 1:
            raise ConfigurationError(
                f"unknown_confirm_frames must be a positive integer, got {self.unknown_confirm_frames}"
            )

    def replace(self, **changes) -> "EngineConfig":
        """Return a validated copy with some fields changed."""
        return _replace(self, **changes)
