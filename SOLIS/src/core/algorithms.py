"""Interactive distance measurement paths on a disk-fitted solar image."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from SOLIS.config import Config
from SOLIS.src.core.analysis import SolarSphereGeodesy, straight_segment
from SOLIS.src.core.types import Measurement, PathMode, PathState

logger = logging.getLogger(__name__)


class MeasurementPath:
    """Append-only list of image points sharing a single PathMode."""

    def __init__(self, mode: PathMode):
        self.mode = mode
        self.closed = False
        self._points: list[tuple[float, float]] = []

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> tuple:
        return tuple(self._points)

    @property
    def last(self) -> tuple[float, float]:
        return self._points[-1]

    def accepts(self, mode: PathMode) -> bool:
        return not self.closed and mode is self.mode

    def append(self, point, mode: PathMode) -> None:
        if self.closed:
            raise ValueError("Cannot add points to a closed path")
        if mode is not self.mode:
            raise ValueError(f"Cannot add a {mode.value} point to a {self.mode.value} path")
        self._points.append((float(point[0]), float(point[1])))

    def close(self) -> tuple:
        self.closed = True
        return self.points


class MeasurementSession:
    """
    Drives the EMPTY -> IN_PROGRESS -> COMPLETED lifecycle of measurement paths.

    The first click fixes the path mode (on-disk geodesic or off-disk planar).
    Later clicks in the other mode are ignored. A double-click with at least
    two points, Enter or Escape completes the path. Completed paths are kept
    until clear().
    """

    def __init__(self, config: Config, geodesy: SolarSphereGeodesy, worker=None):
        self.config = config
        self.geodesy = geodesy
        self.worker = worker
        self.require_double_click = bool(config.REQUIRE_DOUBLE_CLICK_TO_START)

        self.path: Optional[MeasurementPath] = None
        self._segments: list[np.ndarray] = []
        self._preview: Optional[np.ndarray] = None
        self._measurements: list[Measurement] = []
        self._state = PathState.EMPTY

    @property
    def state(self) -> PathState:
        return self._state

    @property
    def measurements(self) -> tuple:
        return tuple(self._measurements)

    @property
    def current_points(self) -> tuple:
        return self.path.points if self.path else ()

    @property
    def current_segments(self) -> tuple:
        return tuple(self._segments)

    @property
    def preview(self) -> Optional[np.ndarray]:
        return self._preview

    @property
    def current_distance_km(self) -> float:
        if self.path is None or len(self.path) < 2:
            return 0.0
        return self.geodesy.distance_km(self.path.points, self.path.mode)

    @property
    def current_label(self) -> str:
        if self.path is None or len(self.path) < 2:
            return ""
        return self.geodesy.label_for(self.current_distance_km)

    def _set_state(self, state: PathState) -> None:
        if self._state != state:
            logger.debug("Measurement path %s -> %s", self._state.value, state.value)
            self._state = state

    def _discard_preview(self) -> None:
        if self._preview is not None:
            self._preview = None
            if self.worker:
                self.worker.preview_changed.emit(None)

    def click(self, x: float, y: float, click_count: int = 1) -> bool:
        """
        Handle a click in image coordinates. A double-click (``click_count == 2``)
        finishes a path of two or more points and never adds a point, except
        as the opening click when a double-click is required to start.
        Returns False when the click is ignored.
        """
        point = (float(x), float(y))
        mode = self.geodesy.mode_for(point)

        if self.path is None:
            if self.require_double_click and click_count != 2:
                return False
            self.path = MeasurementPath(mode)
            self._segments = []
            self._set_state(PathState.IN_PROGRESS)
        elif not self.path.accepts(mode):
            logger.debug("Ignoring %s click on a %s path", mode.value, self.path.mode.value)
            return False
        elif click_count == 2:
            # The first press of a double-click has already placed this point.
            if len(self.path) > 1:
                self._complete()
            return True

        if len(self.path) > 0:
            self._segments.append(self.geodesy.segment(self.path.last, point, self.path.mode))
        self.path.append(point, mode)
        self._discard_preview()

        if self.worker:
            self.worker.path_updated.emit(self.current_segments)
            self.worker.distance_changed.emit(self.current_distance_km, self.current_label)
        return True

    def move(self, x: float, y: float) -> Optional[np.ndarray]:
        """Recompute the live preview segment from the last fixed point."""
        if self.path is None or len(self.path) == 0:
            return None
        point = (float(x), float(y))
        if not self.path.accepts(self.geodesy.mode_for(point)):
            self._discard_preview()
            return None

        if self.path.mode is PathMode.DISK:
            self._preview = self.geodesy.geodesic_curve(self.path.last, point)
        else:
            self._preview = straight_segment(self.path.last, point)
        if self.worker:
            self.worker.preview_changed.emit(self._preview)
        return self._preview

    def press_enter(self) -> bool:
        if self.path is not None and len(self.path) > 1:
            self._complete()
            return True
        return False

    def press_escape(self) -> bool:
        if self.path is None:
            return False
        if len(self.path) > 1:
            self._complete()
            return True
        # A single point cannot be measured: drop it.
        self._reset_path()
        self._set_state(PathState.EMPTY)
        if self.worker:
            self.worker.path_updated.emit(())
            self.worker.distance_changed.emit(0.0, "")
        return True

    def clear(self) -> None:
        self._measurements.clear()
        self._reset_path()
        self._set_state(PathState.EMPTY)
        if self.worker:
            self.worker.cleared.emit()

    def _reset_path(self) -> None:
        self.path = None
        self._segments = []
        self._discard_preview()

    def _complete(self) -> Measurement:
        mode = self.path.mode
        points = self.path.close()
        km = self.geodesy.distance_km(points, mode)
        measurement = Measurement(
            points=points,
            mode=mode,
            segments=tuple(self._segments),
            distance_km=km,
            label=self.geodesy.label_for(km),
            anchor=points[-1],
        )
        self._measurements.append(measurement)
        logger.info(
            "Measurement completed: %d points, %s mode, %.0f km",
            len(points), mode.value, km,
        )

        self._reset_path()
        self._set_state(PathState.COMPLETED)
        if self.worker:
            self.worker.measurement_completed.emit(measurement)
            self.worker.distance_changed.emit(0.0, "")
        return measurement
