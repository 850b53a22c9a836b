"""
Frame-driven keyframe animations for the hatch, cube transform and
component effects.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

Value = Union[float, np.ndarray]


@dataclass
class KeyframeAnimation:
    """
    Linear interpolation between two keys over a fixed number of frames.

    Advanced once per rendered frame; duration in seconds is
    frames / frame_rate.
    """
    name: str
    start: Value
    end: Value
    frames: int
    frame: int = 0

    def __post_init__(self):
        if isinstance(self.start, np.ndarray) or isinstance(self.end, np.ndarray):
            self.start = np.asarray(self.start, dtype=float).copy()
            self.end = np.asarray(self.end, dtype=float).copy()
        self.frames = max(1, int(self.frames))

    @property
    def done(self) -> bool:
        return self.frame >= self.frames

    @property
    def value(self) -> Value:
        t = min(self.frame / self.frames, 1.0)
        return self.start + (self.end - self.start) * t

    def advance(self) -> Value:
        if not self.done:
            self.frame += 1
        return self.value


@dataclass
class ArcAnimation(KeyframeAnimation):
    """Rises from start to peak at mid-animation and back down to end."""
    peak: float = 0.0

    @property
    def value(self) -> Value:
        t = min(self.frame / self.frames, 1.0)
        base = self.start + (self.end - self.start) * t
        return base + self.peak * 4.0 * t * (1.0 - t)
