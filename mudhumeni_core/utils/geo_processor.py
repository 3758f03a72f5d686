"""
Geographic Processing Utilities
Field polygon parsing/validation, geodesic area, distances and sampling grids
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
import logging

from pyproj import Geod
from shapely.geometry import Polygon
from shapely.validation import explain_validity

from mudhumeni_core.utils.errors import InvalidGeometry
from mudhumeni_core.config.settings import GEOD_ELLIPSOID, KM_TO_DEGREE_LAT

logger = logging.getLogger(__name__)

_GEOD = Geod(ellps=GEOD_ELLIPSOID)


@dataclass
class FieldGeometry:
    """Validated field outline with derived centroid, bounding box and area"""
    polygon: Polygon
    coordinates: List[List[float]]  # closed ring of [lon, lat]
    latitude: float
    longitude: float
    bbox: Tuple[float, float, float, float]  # (min_lon, min_lat, max_lon, max_lat)
    area_m2: float
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_geojson(cls, geojson: Dict[str, Any]) -> "FieldGeometry":
        """
        Parse a GeoJSON-like polygon.
        Accepts a Feature, a bare Polygon geometry, or {'geometry': {'coordinates': ...}}.

        Raises:
            InvalidGeometry: missing/short/open ring, bad pairs, or self-intersection
        """
        if not isinstance(geojson, dict):
            raise InvalidGeometry("Field must be a GeoJSON object")

        geometry = geojson.get('geometry', geojson)
        if not isinstance(geometry, dict) or 'coordinates' not in geometry:
            raise InvalidGeometry("Field geometry is missing coordinates")

        geometry_type = geometry.get('type', 'Polygon')
        if geometry_type != 'Polygon':
            raise InvalidGeometry(f"Unsupported geometry type '{geometry_type}', expected Polygon")

        coordinates = geometry['coordinates']
        if not coordinates or not isinstance(coordinates, (list, tuple)):
            raise InvalidGeometry("Field geometry is missing coordinates")

        ring = cls._validate_ring(coordinates[0])
        polygon = Polygon(ring)
        if not polygon.is_valid:
            raise InvalidGeometry(f"Field polygon is invalid: {explain_validity(polygon)}")

        centroid = polygon.centroid
        area_m2, _ = _GEOD.geometry_area_perimeter(polygon)

        properties = geojson.get('properties') or {}
        return cls(
            polygon=polygon,
            coordinates=ring,
            latitude=float(centroid.y),
            longitude=float(centroid.x),
            bbox=tuple(float(v) for v in polygon.bounds),
            area_m2=abs(float(area_m2)),
            properties=dict(properties),
        )

    @staticmethod
    def _validate_ring(ring: Any) -> List[List[float]]:
        if not isinstance(ring, (list, tuple)) or len(ring) < 4:
            raise InvalidGeometry("Polygon ring needs at least four points (first = last)")

        points = []
        for point in ring:
            if not isinstance(point, (list, tuple)) or len(point) < 2:
                raise InvalidGeometry(f"Invalid coordinate pair: {point!r}")
            try:
                lon, lat = float(point[0]), float(point[1])
            except (TypeError, ValueError):
                raise InvalidGeometry(f"Non-numeric coordinate pair: {point!r}")
            if not (-180 <= lon <= 180 and -90 <= lat <= 90):
                raise InvalidGeometry(f"Coordinate out of range: [{lon}, {lat}]")
            points.append([lon, lat])

        if points[0] != points[-1]:
            raise InvalidGeometry("Polygon ring is not closed (first point must equal last)")

        if len({tuple(p) for p in points[:-1]}) < 3:
            raise InvalidGeometry("Polygon ring needs at least three distinct vertices")

        return points

    @property
    def centroid(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'centroid': {'latitude': self.latitude, 'longitude': self.longitude},
            'bbox': list(self.bbox),
            'area_m2': round(self.area_m2, 2),
            'area_hectares': round(self.area_m2 / 10000, 4),
        }


class GeoProcessor:
    """Geographic calculations"""

    EARTH_RADIUS_KM = 6371

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """
        Great-circle distance between two points using Haversine formula, in km

        Raises:
            ValueError: If coordinates are outside valid ranges
        """
        for lat in (lat1, lat2):
            if not (-90 <= lat <= 90):
                raise ValueError(f"Invalid latitude: {lat} (must be -90 to 90)")
        for lon in (lon1, lon2):
            if not (-180 <= lon <= 180):
                raise ValueError(f"Invalid longitude: {lon} (must be -180 to 180)")

        lat1, lon1, lat2, lon2 = map(np.radians, [lat1, lon1, lat2, lon2])
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = np.sin(dlat/2)**2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon/2)**2
        c = 2 * np.arcsin(np.sqrt(a))
        return float(GeoProcessor.EARTH_RADIUS_KM * c)

    @staticmethod
    def create_buffer_bbox(latitude: float, longitude: float,
                           radius_km: float) -> Dict[str, float]:
        """
        Bounding box around a point in decimal degrees
        Approximate: 1 degree ≈ 111 km
        """
        lat_offset = radius_km / KM_TO_DEGREE_LAT
        lon_offset = (radius_km / KM_TO_DEGREE_LAT) / max(np.cos(np.radians(latitude)), 1e-6)

        return {
            'min_lat': latitude - lat_offset,
            'max_lat': latitude + lat_offset,
            'min_lon': longitude - lon_offset,
            'max_lon': longitude + lon_offset
        }

    @staticmethod
    def generate_grid_points(bbox: Dict[str, float], grid_size: int) -> List[Tuple[float, float]]:
        """Grid of (lat, lon) sample points within bounding box"""
        lats = np.linspace(bbox['min_lat'], bbox['max_lat'], grid_size)
        lons = np.linspace(bbox['min_lon'], bbox['max_lon'], grid_size)

        return [(float(lat), float(lon)) for lat in lats for lon in lons]
