"""Shared core data structures used across correction and measurement."""

from __future__ import annotations

import math
from enum import Enum
from typing import NamedTuple


class CurvaturePolynomial(NamedTuple):
    """Spectral line position per column: ``y = a*x^2 + b*x + c``."""

    a: float
    b: float
    c: float


class SolarEllipse(NamedTuple):
    """Fitted solar disk, in image pixel coordinates."""

    cx: float
    cy: float
    semi_a: float
    semi_b: float

    @property
    def radius(self) -> float:
        return (self.semi_a + self.semi_b) / 2.0

    @classmethod
    def from_radius(cls, cx: float, cy: float, radius: float) -> "SolarEllipse":
        return cls(cx, cy, radius, radius)


class OrientationAngles(NamedTuple):
    """Position angle P and sub-Earth latitude B0, in radians."""

    p: float
    b0: float

    @classmethod
    def from_degrees(cls, p_deg: float, b0_deg: float) -> "OrientationAngles":
        return cls(math.radians(p_deg), math.radians(b0_deg))


class SolarParameters(NamedTuple):
    """Ephemeris values for an observation (angles in radians)."""

    carrington_rotation: int
    b0: float
    l0: float
    p: float

    @property
    def orientation(self) -> OrientationAngles:
        return OrientationAngles(self.p, self.b0)


class PathMode(Enum):
    DISK = "disk"
    PLANAR = "planar"


class PathState(Enum):
    EMPTY = "EMPTY"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


NO_ROTATION = OrientationAngles(0.0, 0.0)


class Measurement(NamedTuple):
    """A completed measurement path."""

    points: tuple
    mode: PathMode
    segments: tuple
    distance_km: float
    label: str
    anchor: tuple
