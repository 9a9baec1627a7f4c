"""Great-circle distance helpers."""

import math

EARTH_RADIUS_M = 6_371_008.8


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def distance_between(a, b) -> float:
    """Distance between two LocationSample-like objects."""
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def offset_position(lat: float, lon: float, distance_m: float, bearing_deg: float) -> tuple:
    """Move `distance_m` along `bearing_deg` from (lat, lon). Flat-earth, fine for < 1 km steps."""
    dlat = distance_m * math.cos(math.radians(bearing_deg)) / 111_320.0
    dlon = distance_m * math.sin(math.radians(bearing_deg)) / (111_320.0 * math.cos(math.radians(lat)))
    return lat + dlat, lon + dlon
