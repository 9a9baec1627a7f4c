"""Per-sample driving event classification with temporal grouping.

Raw GNSS fires a harsh-braking threshold on every sample for the whole length
of one stop, so each category runs through the same grouping policy:

  1. no prior event, or gap > grouping window  -> open a new event
  2. within window, higher severity            -> upgrade (move the count up a tier)
  3. within window, lower severity, gap > reset -> separate lower-severity event
  4. otherwise                                  -> extend the group (timestamp only)
"""

import logging
import math
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from tripscore_tools.trip_core.config import ClassifierConfig, FilterConfig, SeverityThresholds
from tripscore_tools.trip_core.filters import SignalFilter, wrap_angle_deg
from tripscore_tools.trip_core.geo import distance_between
from tripscore_tools.trip_core.types import (
    EventCategory,
    EventCounters,
    EventGroupState,
    LocationSample,
    Severity,
)

logger = logging.getLogger(__name__)


class GroupingOutcome(Enum):
    OPENED = "opened"
    UPGRADED = "upgraded"
    SPLIT = "split"
    EXTENDED = "extended"


def severity_above(value: float, t: SeverityThresholds) -> Severity:
    """Tier for categories that trigger when the value exceeds the break points."""
    if value > t.major:
        return Severity.MAJOR
    if value > t.mid:
        return Severity.MID
    if value > t.minor:
        return Severity.MINOR
    return Severity.NONE


def severity_below(value: float, t: SeverityThresholds) -> Severity:
    """Tier for braking, where break points are negative decelerations."""
    if value < t.major:
        return Severity.MAJOR
    if value < t.mid:
        return Severity.MID
    if value < t.minor:
        return Severity.MINOR
    return Severity.NONE


def group_event(
    counters: EventCounters,
    state: EventGroupState,
    category: EventCategory,
    severity: Severity,
    now: int,
    cfg: ClassifierConfig,
) -> GroupingOutcome:
    """Fold one raw severity reading into the counters for `category`."""
    severity = Severity(severity)
    last_time = state.last_event_time
    gap = None if last_time is None else now - last_time

    if gap is None or gap > cfg.grouping_window_ms:
        counters.increment(category, severity)
        outcome = GroupingOutcome.OPENED
    elif severity > state.last_severity:
        counters.decrement(category, state.last_severity)
        counters.increment(category, severity)
        outcome = GroupingOutcome.UPGRADED
    elif severity < state.last_severity and gap > cfg.severity_reset_ms:
        counters.increment(category, severity)
        outcome = GroupingOutcome.SPLIT
    else:
        state.last_event_time = now
        return GroupingOutcome.EXTENDED

    state.last_event_time = now
    state.last_severity = severity
    return outcome


class DistractionTracker:
    """Counts seconds of phone handling while moving.

    Handling needs a moving vehicle, an unlocked device with the screen on, and at
    least `min_touches_for_distraction` touches inside the trailing touch window.
    Screen-on-while-moving alone is tracked but never penalized.
    """

    def __init__(self, cfg: ClassifierConfig = None):
        self.cfg = cfg or ClassifierConfig()
        self.touches = deque()

    def reset(self):
        self.touches.clear()

    def _prune(self, now: int):
        while self.touches and now - self.touches[0] > self.cfg.touch_window_ms:
            self.touches.popleft()

    def on_touch(self, timestamp: int):
        self.touches.append(timestamp)
        self._prune(timestamp)

    def recent_touches(self, now: int) -> int:
        return sum(1 for t in self.touches if 0 <= now - t <= self.cfg.touch_window_ms)

    def on_context(self, counters: EventCounters, now: int, speed: float,
                   screen_on: bool, locked: bool) -> bool:
        """One context tick (nominally 1 s). Returns True if the tick counted as handling."""
        self._prune(now)
        moving = speed > self.cfg.moving_speed_mps
        if moving and screen_on:
            counters.screen_on_moving_seconds += 1.0
        if moving and screen_on and not locked:
            if self.recent_touches(now) >= self.cfg.min_touches_for_distraction:
                counters.handled_seconds += 1.0
                return True
        return False


class EventClassifier:
    """Accumulates EventCounters for one active trip."""

    def __init__(self, cfg: ClassifierConfig = None, filter_cfg: FilterConfig = None):
        self.cfg = cfg or ClassifierConfig()
        self.filter = SignalFilter(filter_cfg)
        self.distraction = DistractionTracker(self.cfg)
        self._tz = ZoneInfo(self.cfg.timezone) if self.cfg.timezone else None
        self.reset()

    def reset(self):
        self.counters = EventCounters()
        self.groups = {cat: EventGroupState() for cat in EventCategory}
        self.filter.reset()
        self.distraction.reset()
        self.last_location: Optional[LocationSample] = None
        self.last_ts = None             # any sample; drives night seconds
        self.last_derivative_ts = None  # last sample with valid speed, bearing and position
        self.last_speed = 0.0
        self.last_bearing_raw = 0.0
        self.max_lateral = (0.0, 0.0, 0.0)     # (a_lat, speed, yaw_rate)

    def is_night(self, timestamp_ms: int) -> bool:
        dt = datetime.fromtimestamp(timestamp_ms / 1000.0, tz=self._tz)
        return dt.hour >= self.cfg.night_start_hour or dt.hour < self.cfg.night_end_hour

    def on_sample(self, sample: LocationSample) -> list:
        """Classify one sample. Returns [(category, severity, outcome, value)] for opened,
        split or upgraded events (extensions are not reported)."""
        now = sample.timestamp
        cfg = self.cfg
        fired = []

        if sample.has_valid_position:
            if self.last_location is not None:
                self.counters.distance_m += distance_between(self.last_location, sample)
            self.last_location = sample
        else:
            logger.warning("Skipping derivatives for sample at %d: invalid position", now)

        dt_s = 0.0 if self.last_ts is None else max(0.0, (now - self.last_ts) / 1000.0)
        self.last_ts = now if self.last_ts is None else max(now, self.last_ts)

        speed_ok = sample.has_valid_speed
        bearing_ok = sample.has_valid_bearing
        v, _ = self.filter.update(max(0.0, sample.speed) if speed_ok else None,
                                  sample.bearing if bearing_ok else None)

        if speed_ok:
            speeding = severity_above(v * 3.6, cfg.speeding_kmh)
            if speeding:
                self._record(EventCategory.SPEEDING, speeding, now, v, fired)
        else:
            logger.warning("Skipping derivatives for sample at %d: invalid speed", now)

        if speed_ok and bearing_ok and sample.has_valid_position:
            self._derivatives(sample, v, fired)

        if dt_s > 0 and self.is_night(now):
            self.counters.night_seconds += dt_s

        return fired

    def _derivatives(self, sample: LocationSample, v: float, fired: list):
        """Longitudinal and lateral events, measured against the last sample that passed here."""
        cfg = self.cfg
        now = sample.timestamp
        if self.last_derivative_ts is None:
            dt_s = 0.0
        else:
            dt_s = (now - self.last_derivative_ts) / 1000.0
            if dt_s < cfg.min_dt_s:
                return

        first_after_start = self.last_speed == 0.0 and v > cfg.min_event_speed_mps
        if dt_s > 0 and not first_after_start and v > cfg.min_event_speed_mps:
            a_long = (v - self.last_speed) / dt_s
            accel = severity_above(a_long, cfg.acceleration_mps2)
            if accel:
                self._record(EventCategory.ACCELERATION, accel, now, a_long, fired)
            brake = severity_below(a_long, cfg.braking_mps2)
            if brake:
                self._record(EventCategory.BRAKING, brake, now, a_long, fired)

            # Raw bearing: filtering would smear out the turn being measured
            d_bearing = math.radians(wrap_angle_deg(sample.bearing - self.last_bearing_raw))
            yaw_rate = d_bearing / dt_s
            a_lat = abs(v * yaw_rate)
            if a_lat > self.max_lateral[0]:
                self.max_lateral = (a_lat, v, yaw_rate)
            turn = severity_above(a_lat, cfg.cornering_mps2)
            if turn:
                self._record(EventCategory.CORNERING, turn, now, a_lat, fired)

        self.last_speed = v
        self.last_bearing_raw = sample.bearing
        self.last_derivative_ts = now

    def on_touch(self, timestamp: int):
        self.distraction.on_touch(timestamp)

    def on_context(self, now: int, speed: float, screen_on: bool, locked: bool) -> bool:
        return self.distraction.on_context(self.counters, now, speed, screen_on, locked)

    def _record(self, category, severity, now, value, fired):
        outcome = group_event(self.counters, self.groups[category], category, severity, now, self.cfg)
        if outcome is not GroupingOutcome.EXTENDED:
            fired.append((category, severity, outcome, value))

    def log_summary(self):
        c = self.counters
        for cat in EventCategory:
            logger.debug("Events - %s: minor=%d, mid=%d, major=%d", cat.value,
                         c.count(cat, Severity.MINOR), c.count(cat, Severity.MID),
                         c.count(cat, Severity.MAJOR))
        a_lat, v, yaw = self.max_lateral
        logger.debug("Max cornering acceleration: %.3f m/s² (at %.2f km/h, yaw rate %.4f rad/s)",
                     a_lat, v * 3.6, yaw)
