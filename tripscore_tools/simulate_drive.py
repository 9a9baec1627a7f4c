#!/usr/bin/env python3
"""Generate a synthetic drive log for exercising the trip pipeline end to end.

Each scenario is a list of phases (duration, start speed, end speed, turn rate).
Speed is interpolated linearly within a phase and the position is dead-reckoned
from speed and bearing, so the log is self-consistent.

Usage:
  python -m tripscore_tools.simulate_drive -o drive.csv
  python -m tripscore_tools.simulate_drive --scenario hard-brake -o brake.csv.zst
  python -m tripscore_tools.simulate_drive --scenario cornering --hz 2 -o turns.parquet
"""

import argparse
import sys
from datetime import datetime

from tripscore_tools.data_io import samples_to_frame, write_samples
from tripscore_tools.trip_core.geo import offset_position
from tripscore_tools.trip_core.types import LocationSample

# (duration_s, v_start_mps, v_end_mps, turn_rate_deg_s)
SCENARIOS = {
    "normal": [
        (10, 0.0, 0.0, 0.0),        # parked, engine on
        (15, 0.0, 20.0, 0.0),       # gentle pull-away
        (180, 20.0, 20.0, 0.0),     # cruise ~72 km/h
        (20, 20.0, 0.0, 0.0),       # smooth stop, -1 m/s²
        (310, 0.0, 0.0, 0.0),       # parked long enough to end the trip
    ],
    "hard-brake": [
        (10, 0.0, 0.0, 0.0),
        (15, 0.0, 20.0, 0.0),
        (180, 20.0, 20.0, 0.0),
        (3, 20.0, 0.0, 0.0),        # emergency stop, ~-6.7 m/s²
        (310, 0.0, 0.0, 0.0),
    ],
    "cornering": [
        (10, 0.0, 0.0, 0.0),
        (10, 0.0, 12.5, 0.0),
        (60, 12.5, 12.5, 0.0),
        (15, 12.5, 12.5, 12.0),     # half circle at 45 km/h
        (30, 12.5, 18.0, 0.0),
        (20, 18.0, 18.0, -9.0),     # half circle back at 65 km/h
        (60, 18.0, 18.0, 0.0),
        (20, 18.0, 0.0, 0.0),
        (310, 0.0, 0.0, 0.0),
    ],
}

BASE_LAT = 37.7749
BASE_LON = -122.4194


def generate_drive(scenario="normal", start_ms=None, hz=1.0, lat=BASE_LAT, lon=BASE_LON,
                   bearing=45.0, accuracy=5.0):
    """Return the scenario as a list of LocationSample at `hz` samples per second."""
    if scenario not in SCENARIOS:
        raise ValueError(f"Unknown scenario {scenario!r}; choose from {', '.join(SCENARIOS)}")
    if start_ms is None:
        start_ms = int(datetime(2024, 6, 3, 12, 0, 0).timestamp() * 1000)

    dt = 1.0 / hz
    samples = []
    t = 0.0
    for duration, v0, v1, turn_rate in SCENARIOS[scenario]:
        n = max(1, int(round(duration * hz)))
        for i in range(n):
            frac = (i + 1) / n
            v = v0 + (v1 - v0) * frac
            bearing = (bearing + turn_rate * dt) % 360.0
            lat, lon = offset_position(lat, lon, v * dt, bearing)
            t += dt
            samples.append(LocationSample(
                latitude=lat,
                longitude=lon,
                timestamp=start_ms + int(round(t * 1000)),
                speed=v,
                bearing=bearing,
                accuracy=accuracy,
            ))
    return samples


def main():
    parser = argparse.ArgumentParser(
        description="Generate a synthetic drive log (CSV, Parquet or .csv.zst).",
    )
    parser.add_argument("-o", "--output", default="drive.csv",
                        help="Output file path (default: drive.csv)")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="normal",
                        help="Drive profile (default: normal)")
    parser.add_argument("--hz", type=float, default=1.0, help="Samples per second (default: 1)")
    parser.add_argument("--start-ms", type=int, default=None,
                        help="Epoch ms of the first sample (default: a weekday noon)")
    args = parser.parse_args()

    if args.hz <= 0:
        print(f"ERROR: --hz must be positive, got {args.hz}")
        sys.exit(1)

    samples = generate_drive(args.scenario, start_ms=args.start_ms, hz=args.hz)
    write_samples(samples_to_frame(samples), args.output)
    print(f"Wrote {len(samples)} samples ({args.scenario}) to {args.output}")


if __name__ == "__main__":
    main()
