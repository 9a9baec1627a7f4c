#!/usr/bin/env python3
"""Replay recorded location logs through the trip recorder and score each trip.

Trips are segmented, classified and scored exactly as on the device, since every
window runs on sample timestamps. Invalid trips (below the 2 min / 0.8 km gate)
are dropped unless --include-invalid is given. A directory is one continuous
recording: its logs are replayed in name order through a single recorder, so a
drive split across log segments stays one trip.

Usage:
  python -m tripscore_tools.replay_trips drive.csv
  python -m tripscore_tools.replay_trips logs/ -o trips.csv --config policy.json
  python -m tripscore_tools.replay_trips drive.csv.zst --touches touches.csv
"""

import argparse
import logging
import os
import sys

import numpy as np
import pandas as pd
from tqdm import tqdm

from tripscore_tools.data_io import find_logs, iter_samples, load_samples, load_touches
from tripscore_tools.trip_core.config import TripScoreConfig, load_config
from tripscore_tools.trip_core.recorder import TripRecorder
from tripscore_tools.trip_core.routes import RouteBook
from tripscore_tools.trip_core.types import EventCategory


def replay(df, cfg=None, touches=None, screen_on=False, locked=True, recorder=None):
    """Run one sample frame through a TripRecorder.

    Pass the recorder returned by a previous call to continue the same recording
    across log segments. If `touches` is given, one phone-context tick is evaluated
    per sample with the supplied screen/lock state.
    Returns (records, markers_per_record, recorder).
    """
    if recorder is None:
        recorder = TripRecorder(cfg)
    touches = np.asarray(touches if touches is not None else [], dtype="int64")
    ti = 0
    if len(touches) and len(df):
        window_start = int(df["timestamp"].iloc[0]) - recorder.cfg.classifier.touch_window_ms
        ti = int(np.searchsorted(touches, window_start))
    records, markers = [], []
    for sample in iter_samples(df):
        while ti < len(touches) and touches[ti] <= sample.timestamp:
            recorder.on_touch(int(touches[ti]))
            ti += 1
        recorder.on_sample(sample)
        if len(touches):
            recorder.on_phone_context(sample.timestamp, screen_on, locked)
        for record in recorder.pop_completed():
            records.append(record)
            markers.append(recorder.last_markers)
    return records, markers, recorder


def trips_frame(records):
    return pd.DataFrame([r.to_dict() for r in records])


def markers_frame(records, markers):
    """One row per event marker, keyed to its trip by start time and route id."""
    rows = []
    for record, trip_markers in zip(records, markers):
        for m in trip_markers:
            rows.append({
                "trip_start_time": record.start_time,
                "route_id": record.route_id,
                "timestamp": m.timestamp,
                "latitude": m.latitude,
                "longitude": m.longitude,
                "event_type": m.event_type,
                "value": m.value,
            })
    return pd.DataFrame(rows, columns=["trip_start_time", "route_id", "timestamp", "latitude",
                                       "longitude", "event_type", "value"])


def write_frame(df, path):
    _, ext = os.path.splitext(path)
    if ext.lower() == ".parquet":
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False)


def print_trips(records):
    print(f"\n{'Start (ms)':<15} {'Min':>6} {'Km':>7} {'Score':>6} {'Stars':>5} "
          f"{'Spd':>4} {'Acc':>4} {'Brk':>4} {'Cor':>4}  Route")
    print("-" * 110)
    for r in records:
        c = r.counters
        flag = "" if r.valid else "  (discarded)"
        print(f"{r.start_time:<15} {r.duration_min:>6.1f} {r.distance_km:>7.2f} {r.score:>6.1f} "
              f"{r.stars:>5} "
              f"{c.total(EventCategory.SPEEDING):>4} {c.total(EventCategory.ACCELERATION):>4} "
              f"{c.total(EventCategory.BRAKING):>4} {c.total(EventCategory.CORNERING):>4}  "
              f"{r.route_id[:16]}{flag}")


def print_routes(book):
    if not len(book):
        return
    print(f"\n{'Route':<18} {'Trips':>5} {'Avg stars':>10}")
    for stats in book.ranked():
        print(f"{stats.route_id[:16]:<18} {stats.trip_count:>5} {stats.avg_stars:>10.2f}")


def main():
    parser = argparse.ArgumentParser(
        description="Replay location sample logs and score the detected trips.",
    )
    parser.add_argument("inputs", nargs="+", help="CSV/Parquet/.csv.zst logs or directories of logs")
    parser.add_argument("-o", "--output", default=None,
                        help="Write trips to this CSV/Parquet file, event markers to <name>_markers")
    parser.add_argument("--config", default=None, help="JSON file of policy overrides")
    parser.add_argument("--touches", default=None, help="Touch-event log (timestamp column)")
    parser.add_argument("--screen-on", action="store_true",
                        help="Treat the screen as on and unlocked while replaying touches")
    parser.add_argument("--include-invalid", action="store_true",
                        help="Also report trips below the validity gate")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    cfg = TripScoreConfig()
    if args.config:
        if not os.path.isfile(args.config):
            print(f"ERROR: Config not found: {args.config}")
            sys.exit(1)
        try:
            cfg = load_config(args.config)
        except ValueError as e:
            print(f"ERROR: Invalid config {args.config}: {e}")
            sys.exit(1)

    touches = None
    if args.touches:
        try:
            touches = load_touches(args.touches)
        except ValueError as e:
            print(f"ERROR: Invalid touch log {args.touches}: {e}")
            sys.exit(1)
        if touches is None:
            print(f"ERROR: Touch log not found: {args.touches}")
            sys.exit(1)

    streams = []
    for path in args.inputs:
        if os.path.isdir(path):
            files = find_logs(path)
            if files:
                streams.append((path, files))
        elif os.path.isfile(path):
            streams.append((path, [path]))
        else:
            print(f"ERROR: Input not found: {path}")
            sys.exit(1)
    if not streams:
        print("ERROR: No sample logs found")
        sys.exit(1)

    records, markers = [], []
    n_files = sum(len(files) for _, files in streams)
    with tqdm(total=n_files, desc="Replaying logs", disable=n_files < 2) as pbar:
        for source, files in streams:
            recorder = None
            for path in files:
                try:
                    df = load_samples(path)
                except ValueError as e:
                    print(f"ERROR: Invalid sample log {path}: {e}")
                    sys.exit(1)
                pbar.update(1)
                if df is None or len(df) == 0:
                    continue
                found, found_markers, recorder = replay(
                    df, cfg, touches, screen_on=args.screen_on, locked=not args.screen_on,
                    recorder=recorder,
                )
                records.extend(found)
                markers.extend(found_markers)
            if recorder is not None and recorder.active:
                print(f"NOTE: trip in progress at end of {source} (started {recorder.start_time}), "
                      f"not scored")

    if args.include_invalid:
        shown, shown_markers = records, markers
    else:
        kept = [(r, m) for r, m in zip(records, markers) if r.valid]
        shown = [r for r, _ in kept]
        shown_markers = [m for _, m in kept]
    print_trips(shown)

    book = RouteBook()
    for r in records:
        book.add(r)
    print_routes(book)

    valid = sum(1 for r in records if r.valid)
    print(f"\n{len(records)} trips detected, {valid} valid")

    if args.output and shown:
        write_frame(trips_frame(shown), args.output)
        print(f"Saved to {args.output}")
        base, ext = os.path.splitext(args.output)
        marker_path = f"{base}_markers{ext or '.csv'}"
        write_frame(markers_frame(shown, shown_markers), marker_path)
        print(f"Saved event markers to {marker_path}")


if __name__ == "__main__":
    main()
