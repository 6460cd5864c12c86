"""
Solar orientation ephemeris.

Position angle P, sub-Earth latitude B0 and central meridian longitude L0
for a given instant, following Jean Meeus, *Astronomical Algorithms*
(chapters 22, 25 and 29). Accuracy is a few hundredths of a degree, which is
well below the uncertainty of a fitted solar disk.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Union

from SOLIS.src.core.types import SolarParameters

CARRINGTON_ROTATION_PERIOD = 27.2753
BASE_JULIAN_DATE = 2398167

_INCLINATION = math.radians(7.25)  # solar equator vs. ecliptic
_JD_ROTATION_EPOCH = 2398220
_JD_NODE_EPOCH = 2396758
_JD_J2000 = 2451545
_DAYS_PER_CENTURY = 36525.0


def julian_date(dt: datetime) -> float:
    """Julian date of a (naive, UT) datetime, to the millisecond."""
    a = (14 - dt.month) // 12
    y = dt.year + 4800 - a
    m = dt.month + 12 * a - 3
    jd = dt.day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045

    millisecond = dt.microsecond // 1000
    fraction = (
        (dt.hour - 12) / 24.0
        + dt.minute / 1440.0
        + dt.second / 86400.0
        + millisecond / 86400000.0
    )
    return jd + fraction


def carrington_rotation(jd: float) -> int:
    return int(math.floor((jd - BASE_JULIAN_DATE) / CARRINGTON_ROTATION_PERIOD)) + 1


def _positive_angle(angle: float) -> float:
    wrapped = math.fmod(angle, 2 * math.pi)
    return wrapped if wrapped >= 0 else wrapped + 2 * math.pi


def solar_parameters(when: Union[datetime, float]) -> SolarParameters:
    """Compute P, B0 and L0 (radians) for a datetime or a Julian date."""
    jd = julian_date(when) if isinstance(when, datetime) else float(when)

    theta = (jd - _JD_ROTATION_EPOCH) * 360 / 25.38
    k = 73.6667 + 1.3958333 * (jd - _JD_NODE_EPOCH) / _DAYS_PER_CENTURY

    t = (jd - _JD_J2000) / _DAYS_PER_CENTURY
    mean_long = 280.46646 + 36000.76983 * t + 0.0003032 * t * t
    mean_anomaly = math.radians(357.52911 + 35999.05029 * t - 0.0001537 * t * t)
    center = (
        (1.914602 - 0.004817 * t - 0.000014 * t * t) * math.sin(mean_anomaly)
        + (0.019993 - 0.000101 * t) * math.sin(2 * mean_anomaly)
        + 0.000289 * math.sin(3 * mean_anomaly)
    )
    true_long = mean_long + center
    apparent_long = true_long - 0.00569 - 0.00478 * math.sin(math.radians(125.04 - 1934.136 * t))

    mean_obliquity = 23.439291111 - 0.013004167 * t - 0.000000164 * t * t + 0.000000504 * t * t * t
    sun_long = 280.4665 + 36000.7698 * t
    moon_long = 218.3165 + 481267.8813 * t
    node = math.radians(125.04452 - 1934.136261 * t + 0.0020708 * t * t + t * t * t / 450000)
    nutation = (
        0.002555556 * math.cos(node)
        + 0.000158333 * math.cos(2 * math.radians(sun_long))
        + 0.000027778 * math.cos(2 * math.radians(moon_long))
        - 0.000025 * math.cos(2 * node)
    )

    obliquity = math.radians(mean_obliquity + nutation)
    corrected_long = math.radians(apparent_long + nutation)
    x = math.atan(-math.cos(corrected_long) * math.tan(obliquity))
    alk = _positive_angle(math.radians(apparent_long - k))
    y = math.atan(-math.cos(alk) * math.tan(_INCLINATION))
    p = x + y
    b0 = math.asin(math.sin(alk) * math.sin(_INCLINATION))

    eta = math.atan2(-math.sin(alk) * math.cos(_INCLINATION), -math.cos(alk))
    l0 = _positive_angle(eta - math.radians(math.fmod(theta, 360.0)))

    return SolarParameters(carrington_rotation(jd), b0, l0, p)
