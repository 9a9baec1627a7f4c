"""Tunable policy tables for trip segmentation, event classification and scoring."""

import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Optional


@dataclass
class SegmentationConfig:
    # Speed gates (m/s)
    high_speed_mps: float = 2.22        # ~8 km/h
    low_speed_mps: float = 0.83         # ~3 km/h

    # Start confirmation: both must hold
    start_min_duration_ms: int = 20_000
    start_min_distance_m: float = 150.0

    # End confirmation
    end_low_speed_duration_ms: int = 5 * 60_000


@dataclass
class FilterConfig:
    alpha_speed: float = 0.2            # lower = more smoothing
    alpha_bearing: float = 0.3


@dataclass
class SeverityThresholds:
    """Break points for one event category, ordered minor < mid < major.

    For braking the values are negative and a sample qualifies when it falls
    *below* the break point.
    """
    minor: float
    mid: float
    major: float

    def ordered(self, descending: bool = False) -> bool:
        if descending:
            return self.minor >= self.mid >= self.major
        return self.minor <= self.mid <= self.major


# Placeholder speeding table: no posted limits yet, so every tier sits at 200 km/h.
DEFAULT_SPEEDING = SeverityThresholds(minor=200.0, mid=200.0, major=200.0)

# Earlier scheme: 100 km/h baseline, +10% minor, +15% mid, +20% major.
LEGACY_SPEEDING = SeverityThresholds(minor=110.0, mid=115.0, major=120.0)


@dataclass
class ClassifierConfig:
    # Speeding (km/h, compared against filtered speed)
    speeding_kmh: SeverityThresholds = field(default_factory=lambda: SeverityThresholds(
        DEFAULT_SPEEDING.minor, DEFAULT_SPEEDING.mid, DEFAULT_SPEEDING.major))

    # Longitudinal (m/s²)
    acceleration_mps2: SeverityThresholds = field(
        default_factory=lambda: SeverityThresholds(2.5, 3.5, 5.0))
    braking_mps2: SeverityThresholds = field(
        default_factory=lambda: SeverityThresholds(-1.5, -2.5, -3.5))

    # Lateral (m/s²). 200 m radius at 45 km/h ≈ 0.78, at 60 km/h ≈ 1.39
    cornering_mps2: SeverityThresholds = field(
        default_factory=lambda: SeverityThresholds(0.7, 1.3, 3.0))

    # Derivative gating
    min_dt_s: float = 0.4
    min_event_speed_mps: float = 4.0    # ~14.4 km/h

    # Event grouping
    grouping_window_ms: int = 10_000
    severity_reset_ms: int = 3_000

    # Night driving: local hour >= night_start_hour or < night_end_hour
    night_start_hour: int = 23
    night_end_hour: int = 5
    timezone: Optional[str] = None      # IANA name; None = system local time

    # Distraction
    touch_window_ms: int = 5_000
    min_touches_for_distraction: int = 2
    moving_speed_mps: float = 4.0

    max_event_markers: int = 1000


@dataclass
class ScoringConfig:
    # Validity gate
    min_duration_min: float = 2.0
    min_distance_km: float = 0.8

    # Absolute (not distance-normalized) per-event penalties
    minor_weight: float = 10.0
    mid_weight: float = 25.0
    major_weight: float = 45.0

    # Duration: one point per 30 min beyond 90 min
    duration_free_min: float = 90.0
    duration_penalty_per_min: float = 1.0 / 30.0

    # Distraction: points per minute of handling
    distraction_per_min: float = 5.0

    night_factor: float = 1.2


@dataclass
class FingerprintConfig:
    grid_deg: float = 0.001
    min_spacing_m: float = 100.0
    separator: str = "|"


@dataclass
class TripScoreConfig:
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    fingerprint: FingerprintConfig = field(default_factory=FingerprintConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "TripScoreConfig":
        """Build a config from nested overrides, e.g. {"scoring": {"night_factor": 1.5}}.

        Unknown sections or keys raise ValueError, as do unordered severity tables.
        """
        cfg = cls()
        _apply(cfg, data or {}, "")
        cfg.validate()
        return cfg

    def validate(self):
        c = self.classifier
        for name in ("speeding_kmh", "acceleration_mps2", "cornering_mps2"):
            if not getattr(c, name).ordered():
                raise ValueError(f"classifier.{name} must be ordered minor <= mid <= major")
        if not c.braking_mps2.ordered(descending=True):
            raise ValueError("classifier.braking_mps2 must be ordered minor >= mid >= major")
        s = self.segmentation
        if s.low_speed_mps >= s.high_speed_mps:
            raise ValueError("segmentation.low_speed_mps must be below high_speed_mps")
        for name in ("alpha_speed", "alpha_bearing"):
            alpha = getattr(self.filter, name)
            if not 0.0 < alpha <= 1.0:
                raise ValueError(f"filter.{name} must be in (0, 1], got {alpha}")


def _apply(target, overrides: dict, prefix: str):
    known = {f.name: f for f in fields(target)}
    for key, value in overrides.items():
        path = f"{prefix}{key}"
        if key not in known:
            raise ValueError(f"Unknown config key: {path}")
        current = getattr(target, key)
        if is_dataclass(current):
            if isinstance(current, SeverityThresholds) and isinstance(value, (list, tuple)):
                if len(value) != 3:
                    raise ValueError(f"{path} expects [minor, mid, major]")
                value = dict(zip(("minor", "mid", "major"), value))
            if not isinstance(value, dict):
                raise ValueError(f"{path} expects a mapping")
            _apply(current, value, path + ".")
        else:
            setattr(target, key, value)


def load_config(path: str) -> TripScoreConfig:
    """Load a JSON file of config overrides."""
    with open(path) as f:
        data = json.load(f)
    return TripScoreConfig.from_dict(data)
