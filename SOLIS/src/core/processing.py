"""Spectral line distortion correction."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from SOLIS.config import Config
from SOLIS.src.core.types import CurvaturePolynomial

logger = logging.getLogger(__name__)


def _clamped_index(coords: np.ndarray, size: int) -> np.ndarray:
    # NaN/inf coordinates index pixel 0; their weights carry the NaN into the result.
    safe = np.nan_to_num(coords, nan=0.0, posinf=size - 1, neginf=0.0)
    return np.clip(safe, 0, size - 1).astype(np.intp)


def bilinear_sample(buffer: np.ndarray, sx, sy) -> np.ndarray:
    """
    Sample ``buffer`` at fractional (sx, sy) using bilinear interpolation.
    Neighbours outside the grid are read from the nearest edge pixel.
    """
    data = np.asarray(buffer)
    h, w = data.shape
    x = np.asarray(sx, dtype=np.float64)
    y = np.asarray(sy, dtype=np.float64)
    x, y = np.broadcast_arrays(x, y)

    with np.errstate(invalid="ignore"):
        x1 = np.floor(x)
        y1 = np.floor(y)
        x2 = x1 + 1
        y2 = y1 + 1

        ix1 = _clamped_index(x1, w)
        ix2 = _clamped_index(x2, w)
        iy1 = _clamped_index(y1, h)
        iy2 = _clamped_index(y2, h)

        v11 = data[iy1, ix1].astype(np.float64)
        v21 = data[iy1, ix2].astype(np.float64)
        v12 = data[iy2, ix1].astype(np.float64)
        v22 = data[iy2, ix2].astype(np.float64)

        p1 = (x2 - x) * v11 + (x - x1) * v21
        p2 = (x2 - x) * v12 + (x - x1) * v22
        return (y2 - y) * p1 + (y - y1) * p2


def shift_profile(width: int, height: int, polynomial: CurvaturePolynomial) -> np.ndarray:
    """Vertical correction per column: ``-a*x^2 - b*x - c + height/2``."""
    a, b, c = polynomial
    middle = height / 2.0
    xs = np.arange(width, dtype=np.float64)
    with np.errstate(invalid="ignore", over="ignore"):
        return -a * xs * xs - b * xs - c + middle


def in_bounds(shape, sx, sy) -> np.ndarray:
    """
    True where every bilinear tap with a non-zero weight lies inside a grid
    of ``shape``. NaN coordinates are out of bounds.
    """
    h, w = shape
    x = np.asarray(sx, dtype=np.float64)
    y = np.asarray(sy, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        return (x >= 0) & (x <= w - 1) & (y >= 0) & (y <= h - 1)


class DistortionCorrector:
    def __init__(self, config: Config):
        self.config = config
        self.validate = bool(config.VALIDATE_POLYNOMIAL)

    def _check(self, buffer: np.ndarray, polynomial: CurvaturePolynomial):
        data = np.asarray(buffer)
        if data.ndim != 2:
            raise ValueError(f"Expected a 2D buffer, got shape {data.shape}")
        h, w = data.shape
        if h == 0 or w == 0:
            raise ValueError(f"Buffer dimensions must be positive, got {w}x{h}")

        polynomial = CurvaturePolynomial(*(float(v) for v in polynomial))
        if not all(np.isfinite(polynomial)):
            if self.validate:
                raise ValueError(f"Non-finite polynomial coefficients: {polynomial}")
            logger.debug("Correcting with non-finite coefficients %s", polynomial)
        return data, polynomial

    @staticmethod
    def _source_grid(shape, polynomial: CurvaturePolynomial):
        h, w = shape
        y_correction = shift_profile(w, h, polynomial)
        sx = np.broadcast_to(np.arange(w, dtype=np.float64), (h, w))
        sy = np.arange(h, dtype=np.float64)[:, None] - y_correction[None, :]
        return sx, sy

    @staticmethod
    def _output_dtype(data: np.ndarray):
        return data.dtype if np.issubdtype(data.dtype, np.floating) else np.float32

    def correct(self, buffer: np.ndarray, polynomial: CurvaturePolynomial) -> np.ndarray:
        """
        Straighten the spectral line described by ``polynomial`` onto the image
        midline. Returns a new buffer of the same shape; the input is not modified.
        """
        data, polynomial = self._check(buffer, polynomial)
        sx, sy = self._source_grid(data.shape, polynomial)
        return bilinear_sample(data, sx, sy).astype(self._output_dtype(data))

    def valid_rows(self, shape, polynomial: CurvaturePolynomial) -> Optional[tuple[int, int]]:
        """
        First and last output rows (inclusive) whose every pixel is sampled
        from inside the source frame, or None when no row qualifies.
        """
        sx, sy = self._source_grid(shape, CurvaturePolynomial(*(float(v) for v in polynomial)))
        full = np.flatnonzero(in_bounds(shape, sx, sy).all(axis=1))
        if full.size == 0:
            return None
        return int(full[0]), int(full[-1])

    def correct_height_restricted(self, buffer: np.ndarray, polynomial: CurvaturePolynomial) -> np.ndarray:
        """
        Like correct(), cropped to the band of rows that needed no edge clamping.
        Returns a (0, width) buffer when the shift leaves no such row.
        """
        data, polynomial = self._check(buffer, polynomial)
        band = self.valid_rows(data.shape, polynomial)
        if band is None:
            logger.warning("No fully sampled rows for polynomial %s", polynomial)
            return np.empty((0, data.shape[1]), dtype=self._output_dtype(data))
        top, bottom = band
        logger.debug("Height restricted correction keeps rows %d..%d of %d", top, bottom, data.shape[0])
        return self.correct(data, polynomial)[top:bottom + 1]

    @staticmethod
    def correct_y(polynomial: CurvaturePolynomial, height: int, x, y):
        """Map a point of the distorted frame to its row in the corrected frame."""
        a, b, c = polynomial
        x = np.asarray(x, dtype=np.float64)
        shifted = np.asarray(y, dtype=np.float64) - (a * x * x + b * x + c) + height / 2.0
        return float(shifted) if shifted.ndim == 0 else shifted
