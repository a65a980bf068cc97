# geometry.py
# Geometry and timestamp helpers shared by the tracker and the presence engine.

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from errors import InvalidInput


@dataclass(frozen=True)
class Box:
    """Axis-aligned box, (x, y) is the top-left corner."""
    x: float
    y: float
    w: float
    h: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.w / 2.0, self.y + self.h / 2.0

    def scaled(self, scale_x: float, scale_y: float) -> "Box":
        """Map the box into another coordinate space (e.g. detector -> display)."""
        return Box(self.x * scale_x, self.y * scale_y, self.w * scale_x, self.h * scale_y)

    @classmethod
    def from_ltrb(cls, left, top, right, bottom) -> "Box":
        return cls(float(left), float(top), float(right - left), float(bottom - top))


def distance(ax: float, ay: float, bx: float, by: float) -> float:
    return float(np.hypot(ax - bx, ay - by))


def smooth(previous: float, current: float, alpha: float) -> float:
    """Exponential smoothing, alpha is the weight of the current value."""
    return previous * (1.0 - alpha) + current * alpha


def _is_number(value) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


def validate_coordinate(name: str, value) -> float:
    if not _is_number(value) or not np.isfinite(value):
        raise InvalidInput(f"{name} must be a finite number, got {value!r}")
    return float(value)


def validate_size(name: str, value) -> float:
    value = validate_coordinate(name, value)
    if value < 0:
        raise InvalidInput(f"{name} must not be negative, got {value}")
    return value


def validate_timestamp(value) -> float:
    return validate_size("timestamp", value)


def validate_label(label) -> str:
    if not isinstance(label, str) or not label.strip():
        raise InvalidInput(f"label must be a non-empty string, got {label!r}")
    return label
