"""Engine configuration with simple JSON persistence."""

from __future__ import annotations

import json
import math
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, get_type_hints

logger = logging.getLogger(__name__)


@dataclass
class Config:
    # Physical constants
    SOLAR_RADIUS_KM: float = 696342.0

    # Disk membership
    DISK_TOLERANCE: float = 0.01  # fraction of the ellipse radius

    # Geodesic curves
    CURVE_SAMPLES: int = 51
    SLERP_EPSILON: float = 1e-6
    CLAMP_RADICAND: bool = True

    # Distance display
    DISTANCE_ROUNDING_KM: int = 50

    # Distortion correction
    VALIDATE_POLYNOMIAL: bool = False

    # Measurement interaction
    REQUIRE_DOUBLE_CLICK_TO_START: bool = False

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".solis_config.json"

    @staticmethod
    def _coerce(kind, raw):
        if kind is bool:
            if not isinstance(raw, bool):
                raise TypeError(f"expected true/false, got {raw!r}")
            return raw
        if kind in (int, float):
            return kind(raw)
        return raw

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        cfg = cls()
        cfg_path = path or cls.default_path()
        if not cfg_path.exists():
            return cfg

        try:
            data = json.loads(cfg_path.read_text())
        except Exception:
            logger.exception("Failed to read config file: %s", cfg_path)
            return cfg

        hints = get_type_hints(cls)
        for name in (f.name for f in fields(cfg) if f.name in data):
            try:
                setattr(cfg, name, cls._coerce(hints.get(name), data[name]))
            except (TypeError, ValueError, OverflowError) as exc:
                logger.warning("Ignoring invalid config value for %s: %s", name, exc)

        cfg.normalize()
        return cfg

    def save(self, path: Optional[Path] = None) -> None:
        cfg_path = path or self.default_path()
        cfg_path.write_text(json.dumps(asdict(self), indent=2, sort_keys=True))

    def normalize(self) -> None:
        defaults = type(self)()
        for name in ("SOLAR_RADIUS_KM", "DISK_TOLERANCE", "SLERP_EPSILON"):
            if not math.isfinite(getattr(self, name)):
                logger.warning("Non-finite %s, using default", name)
                setattr(self, name, getattr(defaults, name))
        if self.SOLAR_RADIUS_KM <= 0:
            self.SOLAR_RADIUS_KM = defaults.SOLAR_RADIUS_KM
        if self.CURVE_SAMPLES < 2:
            self.CURVE_SAMPLES = 2
        if self.DISK_TOLERANCE < 0:
            self.DISK_TOLERANCE = abs(self.DISK_TOLERANCE)
        if self.DISTANCE_ROUNDING_KM < 1:
            self.DISTANCE_ROUNDING_KM = 1
        if self.SLERP_EPSILON < 0:
            self.SLERP_EPSILON = 0.0
