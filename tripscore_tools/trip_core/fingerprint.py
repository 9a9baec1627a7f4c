"""Route identity from a density-suppressed sequence of grid tiles."""

import hashlib
import math

from tripscore_tools.trip_core.config import FingerprintConfig
from tripscore_tools.trip_core.geo import distance_between
from tripscore_tools.trip_core.types import LocationSample


class RouteFingerprint:
    """Hashes the 0.001° tiles a trip passes through.

    A sample closer than `min_spacing_m` to the last accepted one is dropped, so
    the result does not depend on how densely the route was sampled.
    """

    def __init__(self, cfg: FingerprintConfig = None):
        self.cfg = cfg or FingerprintConfig()
        self.start()

    def start(self):
        self.tiles = []
        self.last = None

    def tile(self, lat: float, lon: float) -> str:
        # Half-up, so a point exactly on a cell midline always lands in the northern/eastern cell
        q_lat = math.floor(lat / self.cfg.grid_deg + 0.5)
        q_lon = math.floor(lon / self.cfg.grid_deg + 0.5)
        return f"{q_lat}_{q_lon}"

    def on_location(self, sample: LocationSample) -> bool:
        """Returns True if the sample was accepted as a new tile."""
        if not sample.has_valid_position:
            return False
        if self.last is not None and distance_between(self.last, sample) < self.cfg.min_spacing_m:
            return False
        self.last = sample
        self.tiles.append(self.tile(sample.latitude, sample.longitude))
        return True

    def finish(self) -> str:
        joined = self.cfg.separator.join(self.tiles)
        return hashlib.sha256(joined.encode("utf-8")).hexdigest()
