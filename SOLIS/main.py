import sys
import argparse
import logging
import math
from datetime import datetime
from pathlib import Path

from SOLIS.config import Config
from SOLIS.src.core.analysis import SolarSphereGeodesy
from SOLIS.src.core.ephemeris import solar_parameters
from SOLIS.src.core.types import OrientationAngles, SolarEllipse

logger = logging.getLogger(__name__)


def parse_point(text: str) -> tuple[float, float]:
    try:
        x, y = (float(v) for v in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected x,y but got '{text}'")
    return x, y


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Measure distances on a disk-fitted solar image."
    )
    parser.add_argument("points", nargs="+", type=parse_point, help="Image points as x,y")
    parser.add_argument("--cx", type=float, required=True, help="Disk center x (px)")
    parser.add_argument("--cy", type=float, required=True, help="Disk center y (px)")
    parser.add_argument("--semi-a", type=float, required=True, help="First semi-axis (px)")
    parser.add_argument("--semi-b", type=float, help="Second semi-axis (px), defaults to --semi-a")
    parser.add_argument("--p", type=float, default=0.0, help="Position angle P (degrees)")
    parser.add_argument("--b0", type=float, default=0.0, help="Sub-Earth latitude B0 (degrees)")
    parser.add_argument("--date", type=datetime.fromisoformat,
                        help="Observation time (UT, ISO format); overrides --p/--b0")
    parser.add_argument("--config", type=Path, help="Config JSON file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config.load(args.config)
    semi_b = args.semi_b if args.semi_b is not None else args.semi_a
    ellipse = SolarEllipse(args.cx, args.cy, args.semi_a, semi_b)

    if args.date is not None:
        params = solar_parameters(args.date)
        angles = params.orientation
        logger.info("Carrington rotation %d, P=%.2f deg, B0=%.2f deg",
                    params.carrington_rotation,
                    math.degrees(angles.p), math.degrees(angles.b0))
    else:
        angles = OrientationAngles.from_degrees(args.p, args.b0)

    if len(args.points) < 2:
        print("At least two points are required.", file=sys.stderr)
        return 2

    geodesy = SolarSphereGeodesy(config, ellipse, angles)
    modes = {geodesy.mode_for(p) for p in args.points}
    if len(modes) > 1:
        print("Points mix on-disk and off-disk positions.", file=sys.stderr)
        return 2
    mode = modes.pop()

    print(f"Mode: {mode.value}")
    for i, (start, end) in enumerate(zip(args.points, args.points[1:]), start=1):
        curve = geodesy.segment(start, end, mode)
        print(f"Segment {i}: {len(curve)} curve points")
    km = geodesy.distance_km(args.points, mode)
    print(f"Distance: {geodesy.label_for(km)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
