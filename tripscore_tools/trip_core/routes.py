"""Route-level aggregation: running trip count and average stars per route id."""

from tripscore_tools.trip_core.types import RouteStats, TripRecord


class RouteBook:

    def __init__(self):
        self.routes = {}

    def __len__(self):
        return len(self.routes)

    def __contains__(self, route_id):
        return route_id in self.routes

    def get(self, route_id: str) -> RouteStats:
        return self.routes.get(route_id)

    def add(self, record: TripRecord) -> RouteStats:
        """Fold a trip into its route. Invalid trips are never persisted, so they are skipped."""
        if not record.valid:
            return self.routes.get(record.route_id)
        existing = self.routes.get(record.route_id)
        if existing is None:
            stats = RouteStats(route_id=record.route_id, first_seen=record.end_time,
                               last_seen=record.end_time, trip_count=1,
                               avg_stars=float(record.stars))
        else:
            n = existing.trip_count
            stats = RouteStats(
                route_id=record.route_id,
                first_seen=min(existing.first_seen, record.end_time),
                last_seen=max(existing.last_seen, record.end_time),
                trip_count=n + 1,
                avg_stars=(existing.avg_stars * n + record.stars) / (n + 1),
            )
        self.routes[record.route_id] = stats
        return stats

    def ranked(self) -> list:
        """Routes ordered by trip count, then average stars."""
        return sorted(self.routes.values(), key=lambda r: (-r.trip_count, -r.avg_stars, r.route_id))
