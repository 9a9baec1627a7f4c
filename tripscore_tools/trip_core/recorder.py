"""Single-stream pipeline: state machine -> filter/classifier -> route fingerprint.

Samples must be delivered one at a time, in order; nothing here is thread-safe.
All windows run on sample timestamps, so replaying a recorded log gives the
same trips as the live run.
"""

import logging

from tripscore_tools.trip_core.classifier import EventClassifier
from tripscore_tools.trip_core.config import TripScoreConfig
from tripscore_tools.trip_core.fingerprint import RouteFingerprint
from tripscore_tools.trip_core.scoring import build_trip_record, compute_score
from tripscore_tools.trip_core.segmentation import TripStateMachine
from tripscore_tools.trip_core.types import (
    EventMarker,
    LiveTripState,
    LocationSample,
    TransitionKind,
    TripRecord,
    TripTransition,
)

logger = logging.getLogger(__name__)


class TripRecorder:

    def __init__(self, cfg: TripScoreConfig = None):
        self.cfg = cfg or TripScoreConfig()
        self.machine = TripStateMachine(self.cfg.segmentation)
        self.classifier = EventClassifier(self.cfg.classifier, self.cfg.filter)
        self.route = RouteFingerprint(self.cfg.fingerprint)
        self.start_time = None
        self.markers = []
        self.last_markers = []      # markers of the most recently finished trip
        self.completed = []
        self.last_sample = None

    @property
    def active(self) -> bool:
        return self.machine.active

    def on_sample(self, sample: LocationSample) -> TripTransition:
        self.last_sample = sample
        transition = self.machine.on_sample(sample)

        if transition.kind is TransitionKind.STARTED:
            self._begin(transition.start_time)
            self._feed(sample)
        elif transition.kind is TransitionKind.ONGOING:
            self._feed(sample)
        elif transition.kind is TransitionKind.ENDED:
            self._finish(transition.end_time)
        return transition

    def on_touch(self, timestamp: int):
        if self.active:
            self.classifier.on_touch(timestamp)

    def on_phone_context(self, now: int, screen_on: bool, locked: bool) -> bool:
        """One host context tick; speed is taken from the latest raw sample."""
        if not self.active:
            return False
        speed = self.last_sample.clean_speed if self.last_sample is not None else 0.0
        return self.classifier.on_context(now, speed, screen_on, locked)

    def end_trip(self, now: int) -> TripRecord:
        """Manual stop. Returns the finished record, or None when no trip is running."""
        transition = self.machine.force_end(now)
        if transition.kind is not TransitionKind.ENDED:
            return None
        return self._finish(now)

    def resume(self, start_time: int):
        """Pick an interrupted trip back up with its persisted start time.

        Event counts from before the interruption are not recovered.
        """
        last_ts = self.last_sample.timestamp if self.last_sample is not None else None
        self.machine.resume(start_time, last_ts)
        self._begin(start_time)

    def snapshot(self, now: int) -> LiveTripState:
        if not self.active:
            return LiveTripState()
        counters = self.classifier.counters
        duration_min = max(0.0, (now - self.start_time) / 60_000.0)
        return LiveTripState(
            active=True,
            start_time=self.start_time,
            duration_min=duration_min,
            distance_km=counters.distance_m / 1000.0,
            current_score=compute_score(counters, duration_min, self.cfg.scoring),
            counters=counters.copy(),
        )

    def pop_completed(self) -> list:
        done, self.completed = self.completed, []
        return done

    def _begin(self, start_time: int):
        self.start_time = start_time
        self.classifier.reset()
        self.route.start()
        self.markers = []

    def _feed(self, sample: LocationSample):
        fired = self.classifier.on_sample(sample)
        if sample.has_valid_position:
            for category, severity, _outcome, value in fired:
                if len(self.markers) >= self.cfg.classifier.max_event_markers:
                    break
                self.markers.append(EventMarker(
                    latitude=sample.latitude,
                    longitude=sample.longitude,
                    timestamp=sample.timestamp,
                    category=category,
                    severity=severity,
                    value=float(value),
                ))
        self.route.on_location(sample)

    def _finish(self, end_time: int) -> TripRecord:
        self.classifier.log_summary()
        record = build_trip_record(
            self.classifier.counters,
            self.start_time,
            end_time,
            self.route.finish(),
            self.cfg.scoring,
        )
        if record.valid:
            logger.info("Trip %d-%d: %.1f min, %.2f km, score %.1f (%d stars)",
                        record.start_time, record.end_time, record.duration_min,
                        record.distance_km, record.score, record.stars)
        else:
            logger.info("Trip %d-%d discarded: %.1f min, %.2f km below validity gate",
                        record.start_time, record.end_time, record.duration_min,
                        record.distance_km)

        self.completed.append(record)
        self.last_markers = self.markers
        self.start_time = None
        self.markers = []
        self.classifier.reset()
        self.route.start()
        return record
