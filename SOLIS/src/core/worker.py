"""Qt-side objects: measurement signals and a background correction thread."""

from __future__ import annotations

import logging
import queue
import time

import numpy as np
from PyQt5 import QtCore

from SOLIS.config import Config
from SOLIS.src.core.algorithms import MeasurementSession
from SOLIS.src.core.analysis import SolarSphereGeodesy
from SOLIS.src.core.processing import DistortionCorrector
from SOLIS.src.core.types import CurvaturePolynomial

logger = logging.getLogger(__name__)


class MeasurementController(QtCore.QObject):
    """Forwards view input to a MeasurementSession and re-emits its results."""

    path_updated = QtCore.pyqtSignal(object)
    preview_changed = QtCore.pyqtSignal(object)
    distance_changed = QtCore.pyqtSignal(float, str)
    measurement_completed = QtCore.pyqtSignal(object)
    cleared = QtCore.pyqtSignal()
    status_msg = QtCore.pyqtSignal(str)

    ENTER_KEYS = (QtCore.Qt.Key_Enter, QtCore.Qt.Key_Return)

    def __init__(self, config: Config, geodesy: SolarSphereGeodesy, parent=None):
        super().__init__(parent)
        self.config = config
        self.session = MeasurementSession(config, geodesy, worker=self)

    def on_click(self, x: float, y: float, click_count: int = 1) -> None:
        if not self.session.click(x, y, click_count):
            self.status_msg.emit("Point ignored: mixes on-disk and off-disk positions.")

    def on_move(self, x: float, y: float) -> None:
        self.session.move(x, y)

    def on_key(self, key: int) -> bool:
        """Returns True when the key was consumed."""
        if key in self.ENTER_KEYS:
            self.session.press_enter()
            return True
        if key == QtCore.Qt.Key_Escape:
            self.session.press_escape()
            return True
        return False

    def clear(self) -> None:
        self.session.clear()
        self.status_msg.emit("Measurements cleared.")


class CorrectionWorker(QtCore.QThread):
    frame_corrected = QtCore.pyqtSignal(object)
    status_msg = QtCore.pyqtSignal(str)

    def __init__(self, config: Config):
        super().__init__()
        self.config = config
        self.running = True
        self.corrector = DistortionCorrector(config)
        self.command_queue: queue.Queue[tuple[np.ndarray, CurvaturePolynomial]] = queue.Queue()

    def submit(self, frame: np.ndarray, polynomial: CurvaturePolynomial) -> None:
        self.command_queue.put((frame, polynomial))

    def stop(self) -> None:
        self.running = False
        self.wait()

    def run(self) -> None:
        while self.running:
            self._drain_commands()
            time.sleep(0.02)

    def _drain_commands(self) -> None:
        while not self.command_queue.empty():
            frame, polynomial = self.command_queue.get_nowait()
            self._handle_correct(frame, polynomial)

    def _handle_correct(self, frame: np.ndarray, polynomial: CurvaturePolynomial) -> None:
        try:
            corrected = self.corrector.correct(frame, polynomial)
        except Exception:
            logger.exception("Distortion correction failed")
            self.status_msg.emit("Correction failed. Check logs for details.")
            return
        self.frame_corrected.emit(corrected)
