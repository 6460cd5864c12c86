"""Geodesic curves and physical distances on the visible solar hemisphere."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from SOLIS.config import Config
from SOLIS.src.core.types import OrientationAngles, PathMode, SolarEllipse

logger = logging.getLogger(__name__)


def round_distance(km: float, step: int = 50) -> int:
    """Round to the nearest ``step`` km, halves rounding up."""
    return int(math.floor(km / step + 0.5)) * int(step)


def format_distance(km: float, step: int = 50) -> str:
    """Display label such as ``"1 180 950 km"``."""
    return f"{round_distance(km, step):,}".replace(",", " ") + " km"


def straight_segment(start, end) -> np.ndarray:
    return np.array([start, end], dtype=np.float64).reshape(2, 2)


class SolarSphereGeodesy:
    """
    Maps image points onto the unit solar sphere and back.

    Image coordinates are normalised by the ellipse radius around the ellipse
    center; z points toward the observer. The body-fixed frame is reached by
    undoing the position angle P, then the sub-Earth latitude B0.
    All methods are pure: the instance only holds read-only parameters.
    """

    def __init__(self, config: Config, ellipse: SolarEllipse, angles: OrientationAngles):
        radius = float(ellipse.radius)
        if not radius > 0:
            raise ValueError(f"Ellipse radius must be positive, got {radius}")
        self.ellipse = ellipse
        self.angles = angles
        self.cx = float(ellipse.cx)
        self.cy = float(ellipse.cy)
        self.radius = radius
        self.solar_radius_km = float(config.SOLAR_RADIUS_KM)
        self.tolerance = float(config.DISK_TOLERANCE)
        self.samples = int(config.CURVE_SAMPLES)
        self.epsilon = float(config.SLERP_EPSILON)
        self.clamp_radicand = bool(config.CLAMP_RADICAND)
        self.rounding_km = int(config.DISTANCE_ROUNDING_KM)

    # -- projection ---------------------------------------------------------

    def relative_coords(self, point) -> np.ndarray:
        p = np.asarray(point, dtype=np.float64)
        return np.stack(
            [(p[..., 0] - self.cx) / self.radius, (p[..., 1] - self.cy) / self.radius],
            axis=-1,
        )

    def compute_z(self, rel: np.ndarray) -> np.ndarray:
        rel = np.asarray(rel, dtype=np.float64)
        radicand = 1.0 - rel[..., 0] ** 2 - rel[..., 1] ** 2
        if self.clamp_radicand:
            radicand = np.maximum(radicand, 0.0)
        with np.errstate(invalid="ignore"):
            return np.sqrt(radicand)

    def image_to_sphere(self, point) -> np.ndarray:
        rel = self.relative_coords(point)
        z = self.compute_z(rel)
        return np.stack([rel[..., 0], rel[..., 1], z], axis=-1)

    def sphere_to_image(self, p) -> np.ndarray:
        p = np.asarray(p, dtype=np.float64)
        return np.stack(
            [self.cx + p[..., 0] * self.radius, self.cy + p[..., 1] * self.radius],
            axis=-1,
        )

    # -- orientation --------------------------------------------------------

    def apply_inverse_rotation(self, p) -> np.ndarray:
        """Observed orientation to body-fixed: rotate by P, then by B0."""
        p = np.asarray(p, dtype=np.float64)
        cos_p, sin_p = math.cos(self.angles.p), math.sin(self.angles.p)
        cos_b, sin_b = math.cos(self.angles.b0), math.sin(self.angles.b0)

        x1 = p[..., 0] * cos_p - p[..., 1] * sin_p
        y1 = p[..., 0] * sin_p + p[..., 1] * cos_p
        z1 = p[..., 2]
        y2 = y1 * cos_b - z1 * sin_b
        z2 = y1 * sin_b + z1 * cos_b
        return np.stack([x1, y2, z2], axis=-1)

    def apply_solar_rotation(self, p) -> np.ndarray:
        """Body-fixed to observed orientation: undo B0, then P."""
        p = np.asarray(p, dtype=np.float64)
        cos_p, sin_p = math.cos(-self.angles.p), math.sin(-self.angles.p)
        cos_b, sin_b = math.cos(-self.angles.b0), math.sin(-self.angles.b0)

        y1 = p[..., 1] * cos_b - p[..., 2] * sin_b
        z1 = p[..., 1] * sin_b + p[..., 2] * cos_b
        x2 = p[..., 0] * cos_p - y1 * sin_p
        y2 = p[..., 0] * sin_p + y1 * cos_p
        return np.stack([x2, y2, z1], axis=-1)

    # -- interpolation ------------------------------------------------------

    def slerp(self, p1, p2, t) -> np.ndarray:
        """
        Spherical linear interpolation between unit vectors p1 and p2.
        ``t`` may be a scalar (returns shape (3,)) or an array (returns (..., 3)).
        """
        p1 = np.asarray(p1, dtype=np.float64)
        p2 = np.asarray(p2, dtype=np.float64)
        t = np.asarray(t, dtype=np.float64)

        dot = float(np.clip(np.dot(p1, p2), -1.0, 1.0))
        theta = math.acos(dot)
        sin_theta = math.sin(theta)
        if sin_theta < self.epsilon:
            logger.debug("Degenerate slerp (sin(theta)=%g), returning start point", sin_theta)
            return np.broadcast_to(p1, t.shape + (3,)).copy()

        a = np.sin((1.0 - t) * theta) / sin_theta
        b = np.sin(t * theta) / sin_theta
        return a[..., None] * p1 + b[..., None] * p2

    def geodesic_curve(self, start, end) -> np.ndarray:
        """
        Great-circle arc from ``start`` to ``end`` (image coordinates) as seen
        in the image plane. Samples behind the limb are dropped. Returns (N, 2).
        """
        body1 = self.apply_inverse_rotation(self.image_to_sphere(start))
        body2 = self.apply_inverse_rotation(self.image_to_sphere(end))

        t = np.linspace(0.0, 1.0, self.samples)
        observed = self.apply_solar_rotation(self.slerp(body1, body2, t))
        visible = observed[observed[:, 2] > 0]
        return self.sphere_to_image(visible).reshape(-1, 2)

    # -- membership and distances -------------------------------------------

    def is_on_disk(self, point) -> bool:
        x, y = point
        return math.hypot(x - self.cx, y - self.cy) <= self.radius * (1.0 + self.tolerance)

    def mode_for(self, point) -> PathMode:
        return PathMode.DISK if self.is_on_disk(point) else PathMode.PLANAR

    def segment(self, start, end, mode: PathMode) -> np.ndarray:
        if mode is PathMode.DISK:
            return self.geodesic_curve(start, end)
        return straight_segment(start, end)

    def angular_distance(self, p1, p2) -> float:
        """Great-circle angle between two image points on the un-rotated sphere."""
        s1 = self.image_to_sphere(p1)
        s2 = self.image_to_sphere(p2)
        dot = float(np.dot(s1, s2))
        if math.isnan(dot):
            return dot
        return math.acos(min(1.0, max(-1.0, dot)))

    def planar_distance(self, p1, p2) -> float:
        """Euclidean pixel distance expressed in solar radii."""
        return math.hypot(p1[0] - p2[0], p1[1] - p2[1]) / self.radius

    def path_length(self, points: Sequence, mode: PathMode) -> float:
        """Total length of a polyline, in solar radii."""
        step = self.angular_distance if mode is PathMode.DISK else self.planar_distance
        total = 0.0
        for p1, p2 in zip(points, points[1:]):
            total += step(p1, p2)
        return total

    def distance_km(self, points: Sequence, mode: PathMode) -> float:
        return self.path_length(points, mode) * self.solar_radius_km

    def label_for(self, km: float) -> str:
        return format_distance(km, self.rounding_km)
