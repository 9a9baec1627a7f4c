import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional


@dataclass(frozen=True)
class LocationSample:
    latitude: float
    longitude: float
    timestamp: int          # ms epoch
    speed: float            # m/s
    bearing: float          # degrees, 0–360
    accuracy: float = float("nan")

    @property
    def has_valid_position(self) -> bool:
        return (_finite(self.latitude) and _finite(self.longitude)
                and -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0)

    @property
    def has_valid_bearing(self) -> bool:
        return _finite(self.bearing)

    @property
    def has_valid_speed(self) -> bool:
        return _finite(self.speed)

    @property
    def clean_speed(self) -> float:
        """Speed clamped to >= 0, with NaN read as standstill."""
        if not _finite(self.speed):
            return 0.0
        return max(0.0, self.speed)


def _finite(x) -> bool:
    return x is not None and not math.isnan(x) and not math.isinf(x)


class TripPhase(Enum):
    IDLE = "idle"
    CANDIDATE_START = "candidate_start"
    ACTIVE = "active"


class TransitionKind(Enum):
    NONE = "none"
    STARTED = "started"
    ONGOING = "ongoing"
    ENDED = "ended"


@dataclass(frozen=True)
class TripTransition:
    kind: TransitionKind
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    @classmethod
    def none(cls) -> "TripTransition":
        return cls(TransitionKind.NONE)

    @classmethod
    def started(cls, start_time: int) -> "TripTransition":
        return cls(TransitionKind.STARTED, start_time=start_time)

    @classmethod
    def ongoing(cls) -> "TripTransition":
        return cls(TransitionKind.ONGOING)

    @classmethod
    def ended(cls, end_time: int) -> "TripTransition":
        return cls(TransitionKind.ENDED, end_time=end_time)


@dataclass
class CandidateStart:
    """Accumulator for a not-yet-confirmed trip start."""
    candidate_start_time: int
    accumulated_high_speed_ms: int = 0
    accumulated_distance_m: float = 0.0
    last_sample: Optional[LocationSample] = None


@dataclass
class FilterState:
    filtered_speed: float = 0.0
    filtered_bearing: float = 0.0   # degrees, (-180, 180]
    initialized: bool = False


class EventCategory(Enum):
    SPEEDING = "speeding"
    ACCELERATION = "acceleration"
    BRAKING = "braking"
    CORNERING = "cornering"


class Severity(IntEnum):
    NONE = 0
    MINOR = 1
    MID = 2
    MAJOR = 3


TIERS = (Severity.MINOR, Severity.MID, Severity.MAJOR)


@dataclass
class EventGroupState:
    last_event_time: Optional[int] = None
    last_severity: Severity = Severity.NONE


@dataclass
class EventCounters:
    """Per-trip event counts ({minor, mid, major} × category) and scalar accumulators."""
    counts: dict = field(default_factory=lambda: {
        cat: {sev: 0 for sev in TIERS} for cat in EventCategory
    })
    distance_m: float = 0.0
    handled_seconds: float = 0.0
    screen_on_moving_seconds: float = 0.0
    night_seconds: float = 0.0

    def count(self, category: EventCategory, severity: Severity) -> int:
        return self.counts[category][Severity(severity)]

    def total(self, category: EventCategory = None) -> int:
        if category is None:
            return sum(self.total(cat) for cat in EventCategory)
        return sum(self.counts[category].values())

    def increment(self, category: EventCategory, severity: Severity):
        self.counts[category][Severity(severity)] += 1

    def decrement(self, category: EventCategory, severity: Severity):
        self.counts[category][Severity(severity)] -= 1

    def copy(self) -> "EventCounters":
        return EventCounters(
            counts={cat: dict(tiers) for cat, tiers in self.counts.items()},
            distance_m=self.distance_m,
            handled_seconds=self.handled_seconds,
            screen_on_moving_seconds=self.screen_on_moving_seconds,
            night_seconds=self.night_seconds,
        )

    def to_dict(self) -> dict:
        out = {}
        for cat in EventCategory:
            for sev in TIERS:
                out[f"{sev.name.lower()}_{cat.value}"] = self.counts[cat][sev]
        out["distance_m"] = self.distance_m
        out["handled_seconds"] = self.handled_seconds
        out["screen_on_moving_seconds"] = self.screen_on_moving_seconds
        out["night_seconds"] = self.night_seconds
        return out


@dataclass(frozen=True)
class TripRecord:
    start_time: int
    end_time: int
    duration_min: float
    distance_km: float
    route_id: str
    score: float
    stars: int
    valid: bool
    counters: EventCounters

    @property
    def night_minutes(self) -> float:
        return self.counters.night_seconds / 60.0

    def to_dict(self) -> dict:
        row = {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_min": self.duration_min,
            "distance_km": self.distance_km,
            "route_id": self.route_id,
            "score": self.score,
            "stars": self.stars,
            "valid": self.valid,
            "night_minutes": self.night_minutes,
        }
        row.update(self.counters.to_dict())
        return row


@dataclass(frozen=True)
class EventMarker:
    """Where a grouped event was opened or escalated during a trip."""
    latitude: float
    longitude: float
    timestamp: int
    category: EventCategory
    severity: Severity
    value: float            # filtered speed (m/s) for speeding, otherwise the acceleration (m/s²)

    @property
    def event_type(self) -> str:
        return f"{self.category.value}_{self.severity.name.lower()}"


@dataclass
class RouteStats:
    route_id: str
    first_seen: int
    last_seen: int
    trip_count: int = 0
    avg_stars: float = 0.0


@dataclass(frozen=True)
class LiveTripState:
    active: bool = False
    start_time: int = 0
    duration_min: float = 0.0
    distance_km: float = 0.0
    current_score: float = 100.0
    counters: Optional[EventCounters] = None
