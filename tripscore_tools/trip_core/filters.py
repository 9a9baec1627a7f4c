"""Exponential low-pass filtering of GNSS speed and bearing."""

import math

import numpy as np

from tripscore_tools.trip_core.config import FilterConfig
from tripscore_tools.trip_core.types import FilterState


def wrap_angle_deg(a: float) -> float:
    """Wrap an angle in degrees into (-180, 180]."""
    a = math.fmod(a + 180.0, 360.0)
    if a <= 0.0:
        a += 360.0
    return a - 180.0


def wrap_angle_rad(a: float) -> float:
    """Wrap an angle in radians into (-pi, pi]."""
    return math.radians(wrap_angle_deg(math.degrees(a)))


def exponential_smooth(raw: float, prev: float, alpha: float) -> float:
    return alpha * raw + (1.0 - alpha) * prev


def smooth_bearing(raw_deg: float, prev_deg: float, alpha: float) -> float:
    """Smooth along the shortest signed arc so 359° -> 1° moves through 0°, not 180°."""
    diff = wrap_angle_deg(raw_deg - prev_deg)
    return wrap_angle_deg(prev_deg + alpha * diff)


class SignalFilter:
    """Per-trip smoothing state for speed and bearing.

    The first sample seeds the filter with the raw values so a trip never starts
    from a zero baseline. NaN inputs are rejected without touching the state.
    """

    def __init__(self, cfg: FilterConfig = None):
        self.cfg = cfg or FilterConfig()
        self.state = FilterState()

    def reset(self):
        self.state = FilterState()

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    @property
    def speed(self) -> float:
        return self.state.filtered_speed

    @property
    def bearing(self) -> float:
        """Filtered bearing in [0, 360)."""
        b = self.state.filtered_bearing % 360.0
        return 0.0 if b >= 360.0 else b

    def update(self, speed: float, bearing: float = None) -> tuple:
        """Feed one raw (speed m/s, bearing deg) pair; returns (filtered_speed, filtered_bearing).

        A missing or NaN bearing only updates the speed channel.
        """
        st = self.state
        speed_ok = speed is not None and not math.isnan(speed)
        bearing_ok = bearing is not None and not math.isnan(bearing)

        if not st.initialized:
            if not speed_ok:
                return st.filtered_speed, self.bearing
            st.filtered_speed = max(0.0, speed)
            st.filtered_bearing = wrap_angle_deg(bearing) if bearing_ok else 0.0
            st.initialized = True
            return st.filtered_speed, self.bearing

        if speed_ok:
            st.filtered_speed = exponential_smooth(max(0.0, speed), st.filtered_speed,
                                                   self.cfg.alpha_speed)
        if bearing_ok:
            st.filtered_bearing = smooth_bearing(bearing, st.filtered_bearing,
                                                 self.cfg.alpha_bearing)
        return st.filtered_speed, self.bearing


def smooth_series(speed: np.ndarray, bearing: np.ndarray = None, cfg: FilterConfig = None) -> tuple:
    """Run a fresh SignalFilter over whole arrays (offline replay / plotting).

    Returns (filtered_speed, filtered_bearing) arrays of the same length.
    """
    speed = np.asarray(speed, dtype=float)
    if bearing is None:
        bearing = np.full(len(speed), np.nan)
    bearing = np.asarray(bearing, dtype=float)
    if len(speed) != len(bearing):
        raise ValueError("speed and bearing must have the same length")

    filt = SignalFilter(cfg)
    out_speed = np.empty(len(speed))
    out_bearing = np.empty(len(speed))
    for i, (v, b) in enumerate(zip(speed, bearing)):
        out_speed[i], out_bearing[i] = filt.update(v, b)
    return out_speed, out_bearing
