"""Trip segmentation, driving event classification, route fingerprinting and scoring."""

from tripscore_tools.trip_core.classifier import DistractionTracker, EventClassifier, group_event
from tripscore_tools.trip_core.config import TripScoreConfig, load_config
from tripscore_tools.trip_core.filters import SignalFilter
from tripscore_tools.trip_core.fingerprint import RouteFingerprint
from tripscore_tools.trip_core.recorder import TripRecorder
from tripscore_tools.trip_core.routes import RouteBook
from tripscore_tools.trip_core.scoring import build_trip_record, compute_score, score_to_stars
from tripscore_tools.trip_core.segmentation import TripStateMachine
from tripscore_tools.trip_core.types import (
    EventCategory,
    EventCounters,
    LocationSample,
    Severity,
    TripPhase,
    TripRecord,
    TripTransition,
)

__all__ = [
    "LocationSample",
    "TripPhase",
    "TripTransition",
    "EventCategory",
    "Severity",
    "EventCounters",
    "TripRecord",
    "TripScoreConfig",
    "load_config",
    "SignalFilter",
    "EventClassifier",
    "DistractionTracker",
    "group_event",
    "TripStateMachine",
    "RouteFingerprint",
    "RouteBook",
    "TripRecorder",
    "build_trip_record",
    "compute_score",
    "score_to_stars",
]
