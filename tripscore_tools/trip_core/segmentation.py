"""Hysteresis state machine that splits a location stream into trips.

Start is confirmed only after sustained high speed over both a minimum time and
a minimum distance; end only after a sustained low-speed stretch. Brief GPS
spikes at rest and short stops in traffic therefore never flap the trip state.
"""

import logging

from tripscore_tools.trip_core.config import SegmentationConfig
from tripscore_tools.trip_core.geo import distance_between
from tripscore_tools.trip_core.types import (
    CandidateStart,
    LocationSample,
    TripPhase,
    TripTransition,
)

logger = logging.getLogger(__name__)


class TripStateMachine:

    def __init__(self, cfg: SegmentationConfig = None):
        self.cfg = cfg or SegmentationConfig()
        self.reset()

    def reset(self):
        self.phase = TripPhase.IDLE
        self.candidate = None
        self.trip_start_time = None
        self.low_speed_ms = 0
        self._last_ts = None

    @property
    def active(self) -> bool:
        return self.phase is TripPhase.ACTIVE

    def resume(self, start_time: int, last_sample_time: int = None):
        """Re-enter ACTIVE with a known start time, e.g. after a process restart."""
        self.phase = TripPhase.ACTIVE
        self.candidate = None
        self.trip_start_time = start_time
        self.low_speed_ms = 0
        self._last_ts = last_sample_time
        logger.info("Resumed trip started at %d", start_time)

    def force_end(self, now: int) -> TripTransition:
        """End the active trip on request; returns NONE when no trip is running."""
        if not self.active:
            return TripTransition.none()
        self._end()
        return TripTransition.ended(now)

    def on_sample(self, sample: LocationSample) -> TripTransition:
        now = sample.timestamp
        dt = 0 if self._last_ts is None else max(0, now - self._last_ts)
        self._last_ts = now if self._last_ts is None else max(now, self._last_ts)

        speed = sample.clean_speed
        is_high = speed > self.cfg.high_speed_mps
        is_low = speed < self.cfg.low_speed_mps

        if self.phase is TripPhase.ACTIVE:
            self.low_speed_ms = self.low_speed_ms + dt if is_low else 0
            if self.low_speed_ms >= self.cfg.end_low_speed_duration_ms:
                self._end()
                return TripTransition.ended(now)
            return TripTransition.ongoing()

        if not is_high:
            if self.candidate is not None:
                logger.debug("Start candidate from %d dropped after %d ms / %.0f m",
                             self.candidate.candidate_start_time,
                             self.candidate.accumulated_high_speed_ms,
                             self.candidate.accumulated_distance_m)
            self.candidate = None
            self.phase = TripPhase.IDLE
            return TripTransition.none()

        if self.candidate is None:
            self.candidate = CandidateStart(candidate_start_time=now, last_sample=sample)
            self.phase = TripPhase.CANDIDATE_START
        else:
            cand = self.candidate
            cand.accumulated_high_speed_ms += dt
            prev = cand.last_sample
            if prev.has_valid_position and sample.has_valid_position:
                cand.accumulated_distance_m += distance_between(prev, sample)
                cand.last_sample = sample
            elif sample.has_valid_position:
                cand.last_sample = sample

        cand = self.candidate
        if (cand.accumulated_high_speed_ms >= self.cfg.start_min_duration_ms
                and cand.accumulated_distance_m >= self.cfg.start_min_distance_m):
            start = cand.candidate_start_time
            self.phase = TripPhase.ACTIVE
            self.trip_start_time = start
            self.low_speed_ms = 0
            self.candidate = None
            logger.info("Trip started at %d (confirmed at %d)", start, now)
            return TripTransition.started(start)

        return TripTransition.none()

    def _end(self):
        logger.info("Trip from %d ended", self.trip_start_time)
        self.phase = TripPhase.IDLE
        self.trip_start_time = None
        self.low_speed_ms = 0
        self.candidate = None
