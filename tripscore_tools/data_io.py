"""Shared loading of recorded location-sample logs."""

import glob
import io
import os

import numpy as np
import pandas as pd
import zstandard as zstd

from tripscore_tools.trip_core.types import LocationSample

COLUMNS = [
    "timestamp",
    "latitude",
    "longitude",
    "speed",
    "bearing",
    "accuracy",
]

# Column names used by common GPS exporters
ALIASES = {
    "lat": "latitude",
    "lon": "longitude",
    "lng": "longitude",
    "time": "timestamp",
    "timestamp_ms": "timestamp",
    "speed_mps": "speed",
    "heading": "bearing",
    "course": "bearing",
}

ZSTD_MAGIC = b"\x28\xB5\x2F\xFD"


def find_logs(input_dir):
    """Find all sample logs in the input directory."""
    patterns = ["**/*.csv", "**/*.csv.zst", "**/*.parquet"]
    files = []
    for pattern in patterns:
        files.extend(glob.glob(os.path.join(input_dir, pattern), recursive=True))
    return sorted(set(files))


def _read_file(path):
    if path.endswith(".parquet"):
        return pd.read_parquet(path)
    with open(path, "rb") as f:
        dat = f.read()
    if dat[:4] == ZSTD_MAGIC:
        dctx = zstd.ZstdDecompressor()
        dat = dctx.stream_reader(io.BytesIO(dat)).read()
    return pd.read_csv(io.BytesIO(dat))


def normalize_columns(df):
    """Rename known aliases, check required columns, fill optional accuracy."""
    df = df.rename(columns={k: v for k, v in ALIASES.items() if k in df.columns and v not in df.columns})
    missing = [c for c in COLUMNS[:-1] if c not in df.columns]
    if missing:
        raise ValueError(f"Sample log is missing columns: {', '.join(missing)}")
    if "accuracy" not in df.columns:
        df["accuracy"] = np.nan
    df = df[COLUMNS].copy()
    df["timestamp"] = df["timestamp"].astype("int64")
    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def load_samples(input_path):
    """Load samples from CSV, Parquet, zstd-compressed CSV, or a directory of those.

    Returns a DataFrame sorted by timestamp, or None if no data found.
    """
    if os.path.isfile(input_path):
        return normalize_columns(_read_file(input_path))

    if os.path.isdir(input_path):
        files = find_logs(input_path)
        if not files:
            return None
        frames = [normalize_columns(_read_file(path)) for path in files]
        return normalize_columns(pd.concat(frames, ignore_index=True))

    return None


def load_touches(input_path):
    """Load a touch-event log (one `timestamp` column, ms epoch). Returns a sorted int array."""
    if not os.path.isfile(input_path):
        return None
    df = _read_file(input_path)
    if "timestamp" not in df.columns:
        raise ValueError("Touch log needs a timestamp column")
    return np.sort(df["timestamp"].to_numpy(dtype="int64"))


def iter_samples(df):
    """Yield LocationSample objects in timestamp order."""
    for row in df.itertuples(index=False):
        yield LocationSample(
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            timestamp=int(row.timestamp),
            speed=float(row.speed),
            bearing=float(row.bearing),
            accuracy=float(row.accuracy),
        )


def samples_to_frame(samples):
    """Inverse of iter_samples, for writing synthetic logs."""
    return pd.DataFrame(
        [(s.timestamp, s.latitude, s.longitude, s.speed, s.bearing, s.accuracy) for s in samples],
        columns=COLUMNS,
    )


def write_samples(df, output_path):
    """Write a sample frame as CSV, Parquet, or zstd-compressed CSV by extension."""
    if output_path.endswith(".parquet"):
        df.to_parquet(output_path, index=False)
    elif output_path.endswith(".zst"):
        raw = df.to_csv(index=False).encode("utf-8")
        with open(output_path, "wb") as f:
            f.write(zstd.ZstdCompressor().compress(raw))
    else:
        df.to_csv(output_path, index=False)
