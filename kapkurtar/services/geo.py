"""Distance calculations for nearby-offer lookup."""

import math
from typing import Optional

EARTH_RADIUS_METERS = 6371000.0
METERS_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_METERS / 180.0


class DistanceCalculator:
    """Great-circle and planar distances between coordinates, in meters."""

    def __init__(self, planar_threshold_meters: float = 50000.0):
        """Initialize with the radius below which planar distance is used."""
        self.planar_threshold_meters = planar_threshold_meters

    def haversine(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two coordinates using the Haversine formula."""
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        dlat = lat2_rad - lat1_rad
        dlon = math.radians(lon2 - lon1)

        a = (
            math.sin(dlat / 2) ** 2
            + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_METERS * c

    def planar(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Equirectangular approximation; accurate to well under 1% below ~50 km."""
        mean_lat = math.radians((lat1 + lat2) / 2)
        dlon = lon2 - lon1
        # Shortest way around the antimeridian
        if dlon > 180:
            dlon -= 360
        elif dlon < -180:
            dlon += 360
        x = math.radians(dlon) * math.cos(mean_lat)
        y = math.radians(lat2 - lat1)
        return EARTH_RADIUS_METERS * math.sqrt(x * x + y * y)

    def distance(
        self,
        lat1: float,
        lon1: float,
        lat2: float,
        lon2: float,
        radius_meters: float,
    ) -> float:
        """Distance using the method appropriate to the query radius."""
        if radius_meters < self.planar_threshold_meters:
            return self.planar(lat1, lon1, lat2, lon2)
        return self.haversine(lat1, lon1, lat2, lon2)

    def bounding_box(
        self, lat: float, lon: float, radius_meters: float
    ) -> tuple[float, float, Optional[float], Optional[float]]:
        """
        Lat/lon box enclosing the circle, for index-friendly pre-filtering.

        Returns:
            (min_lat, max_lat, min_lon, max_lon); the longitude bounds are
            None when the box would wrap a pole or the antimeridian.
        """
        dlat = radius_meters / METERS_PER_DEGREE_LAT
        min_lat = max(lat - dlat, -90.0)
        max_lat = min(lat + dlat, 90.0)

        # Widest longitude span occurs at the box edge nearest a pole
        cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
        if min_lat <= -90.0 or max_lat >= 90.0 or cos_lat < 1e-6:
            return min_lat, max_lat, None, None

        dlon = radius_meters / (METERS_PER_DEGREE_LAT * cos_lat)
        min_lon = lon - dlon
        max_lon = lon + dlon
        if min_lon < -180.0 or max_lon > 180.0:
            return min_lat, max_lat, None, None

        return min_lat, max_lat, min_lon, max_lon
