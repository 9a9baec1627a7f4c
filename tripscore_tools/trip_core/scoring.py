"""Trip score (0–100) and star rating from accumulated event counters.

Event penalties are absolute rather than per-km: a hard brake costs the same on
a 2 km trip as on a 200 km one. Long trips therefore score better for the same
event density, which is accepted.
"""

import logging

from tripscore_tools.trip_core.config import ScoringConfig
from tripscore_tools.trip_core.types import EventCategory, EventCounters, Severity, TripRecord

logger = logging.getLogger(__name__)


def is_valid_trip(duration_min: float, distance_km: float, cfg: ScoringConfig = None) -> bool:
    """Trips shorter than the validity gate are GPS noise, not driving."""
    if cfg is None:
        cfg = ScoringConfig()
    return duration_min >= cfg.min_duration_min and distance_km >= cfg.min_distance_km


def penalty_breakdown(counters: EventCounters, duration_min: float, cfg: ScoringConfig = None) -> dict:
    """Raw (pre night-factor) penalty per component, plus the night factor applied."""
    if cfg is None:
        cfg = ScoringConfig()
    weights = {Severity.MINOR: cfg.minor_weight, Severity.MID: cfg.mid_weight,
               Severity.MAJOR: cfg.major_weight}

    out = {}
    for cat in EventCategory:
        out[cat.value] = sum(w * counters.count(cat, sev) for sev, w in weights.items())
    out["duration"] = max(0.0, (duration_min - cfg.duration_free_min) * cfg.duration_penalty_per_min)
    out["distraction"] = cfg.distraction_per_min * (counters.handled_seconds / 60.0)
    out["night_factor"] = cfg.night_factor if counters.night_seconds > 0.0 else 1.0
    return out


def compute_score(counters: EventCounters, duration_min: float, cfg: ScoringConfig = None) -> float:
    """100 minus the night-scaled penalty sum, clamped to [0, 100]."""
    parts = penalty_breakdown(counters, duration_min, cfg)
    night_factor = parts.pop("night_factor")
    raw = sum(parts.values())
    return min(100.0, max(0.0, 100.0 - raw * night_factor))


def score_to_stars(score: float) -> int:
    return min(5, max(0, int(round(score / 20.0))))


def build_trip_record(
    counters: EventCounters,
    start_time: int,
    end_time: int,
    route_id: str,
    cfg: ScoringConfig = None,
) -> TripRecord:
    """Score a finished trip. Trips failing the validity gate get score 0, valid=False."""
    if cfg is None:
        cfg = ScoringConfig()
    duration_min = max(0.0, (end_time - start_time) / 60_000.0)
    distance_km = counters.distance_m / 1000.0
    valid = is_valid_trip(duration_min, distance_km, cfg)
    score = compute_score(counters, duration_min, cfg) if valid else 0.0

    logger.debug("Duration: %.2f min, distance: %.3f km, valid: %s, score: %.1f",
                 duration_min, distance_km, valid, score)

    return TripRecord(
        start_time=start_time,
        end_time=end_time,
        duration_min=duration_min,
        distance_km=distance_km,
        route_id=route_id,
        score=score,
        stars=score_to_stars(score),
        valid=valid,
        counters=counters.copy(),
    )
