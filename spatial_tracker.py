# spatial_tracker.py
# Greedy center-distance tracker that keeps detection boxes stable across frames.

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from config import EngineConfig
from geometry import (
    distance,
    smooth,
    validate_coordinate,
    validate_size,
    validate_timestamp,
)

logger = logging.getLogger(__name__)

PALETTE = (
    "#00FF00",
    "#FF3B30",
    "#007AFF",
    "#FF9500",
    "#AF52DE",
    "#FFCC00",
    "#00C7BE",
)


@dataclass
class Track:
    track_id: int
    x: float
    y: float
    w: float
    h: float
    sx: float
    sy: float
    sw: float
    sh: float
    color: str
    last_seen: float
    missing: bool = False

    @property
    def smoothed_box(self):
        """Smoothed (left, top, width, height) for drawing."""
        return (self.sx - self.sw / 2.0, self.sy - self.sh / 2.0, self.sw, self.sh)


class SpatialTracker:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        # dicts keep insertion order, which is the matching order
        self._tracks: Dict[int, Track] = {}
        self._next_track_id: int = 1

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def tracks(self) -> List[Track]:
        return list(self._tracks.values())

    def associate(self, x, y, w, h, now) -> Track:
        """Return the track a detection centered at (x, y) belongs to.

        The first track (in creation order) whose smoothed center is closer
        than ``track_max_distance`` wins. Otherwise a new track is created.
        """
        x = validate_coordinate("x", x)
        y = validate_coordinate("y", y)
        w = validate_size("w", w)
        h = validate_size("h", h)
        now = validate_timestamp(now)

        alpha = self.config.smoothing_factor
        for track in self._tracks.values():
            if distance(track.sx, track.sy, x, y) < self.config.track_max_distance:
                track.x, track.y, track.w, track.h = x, y, w, h
                track.sx = smooth(track.sx, x, alpha)
                track.sy = smooth(track.sy, y, alpha)
                track.sw = smooth(track.sw, w, alpha)
                track.sh = smooth(track.sh, h, alpha)
                track.last_seen = now
                track.missing = False
                return track

        track = Track(
            track_id=self._next_track_id,
            x=x, y=y, w=w, h=h,
            sx=x, sy=y, sw=w, sh=h,
            color=PALETTE[len(self._tracks) % len(PALETTE)],
            last_seen=now,
        )
        self._tracks[track.track_id] = track
        self._next_track_id += 1
        logger.debug(f"SpatialTracker: created track {track.track_id} at ({x:.0f}, {y:.0f})")
        return track

    def mark_missing(self, now) -> None:
        """Flag tracks that were not updated at ``now``."""
        now = validate_timestamp(now)
        for track in self._tracks.values():
            track.missing = track.last_seen < now

    def sweep_expired(self, now, expiry_ms=None) -> List[Track]:
        now = validate_timestamp(now)
        if expiry_ms is None:
            expiry_ms = self.config.track_expiry_ms
        expiry_ms = validate_size("expiry_ms", expiry_ms)

        expired = [t for t in self._tracks.values() if now - t.last_seen > expiry_ms]
        for track in expired:
            del self._tracks[track.track_id]
            logger.debug(f"SpatialTracker: expired track {track.track_id} (last_seen={track.last_seen:.0f}, now={now:.0f})")
        return expired

    def clear(self) -> None:
        self._tracks.clear()
        self._next_track_id = 1
