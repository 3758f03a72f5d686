"""
EXTERNAL DATA SOURCE INTEGRATIONS
Capability interfaces the engine depends on, plus the HTTP adapter
that fetches rainfall, elevation and geology from public APIs
"""

import requests
import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import math

from mudhumeni_core.utils.cache import GEOSPATIAL_CACHE, GeospatialCache, geospatial_ttl_ms
from mudhumeni_core.utils.errors import DataUnavailable, Timeout
from mudhumeni_core.utils.geo_processor import FieldGeometry, GeoProcessor
from mudhumeni_core.utils.retry import create_session_with_retries
from mudhumeni_core.config.settings import (
    PRECIPITATION_CONFIG, PROVIDER_TIMEOUTS_SECONDS, DEFAULT_SOIL_MOISTURE,
    OPEN_METEO_ARCHIVE_URL, OPEN_METEO_ELEVATION_URL, MACROSTRAT_UNITS_URL,
    OVERPASS_API_URL, GEOLOGY_FORMATION_GRID_SIZE, FRACTURE_FEATURE_TAGS,
    ROCK_TYPE_KEYWORDS
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrecipitationRecord:
    """One rainfall observation; timestamp in milliseconds since epoch (UTC)"""
    timestamp: int
    rain_mm: float
    soil_moisture: Optional[float] = DEFAULT_SOIL_MOISTURE


@dataclass(frozen=True)
class GeologicalFormation:
    type: str
    coords: Tuple[float, float]  # (lat, lon)
    magnitude: float = 1.0       # coverage share of the search area


@dataclass(frozen=True)
class GeologicalFeature:
    tag: str
    rock_type: Optional[str]
    coords: Tuple[float, float]  # (lat, lon)


@dataclass
class SlopeStatistics:
    """Terrain slope summary for a field, in degrees"""
    mean: float
    median: Optional[float] = None
    std_dev: Optional[float] = None
    distribution: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PotentialLayer:
    """
    One input layer of the groundwater potential surface.
    A layer with `constant` set is a uniform raster of that value.
    """
    name: str
    min_value: float = 0.0
    max_value: float = 1.0
    dataset: Optional[str] = None
    band: Optional[str] = None
    collection: bool = False
    scale_factor: float = 1.0
    derive: Optional[str] = None   # e.g. 'slope' for terrain derived from a DEM
    constant: Optional[float] = None


def classify_rock_type(text: Optional[str]) -> Optional[str]:
    """Canonical rock type for the earliest lithology keyword found in text"""
    if not text:
        return None
    lowered = str(text).lower()
    best = None
    for keyword, rock_type in ROCK_TYPE_KEYWORDS.items():
        position = lowered.find(keyword)
        if position >= 0 and (best is None or position < best[0]):
            best = (position, rock_type)
    return best[1] if best else None


class DataProvider(ABC):
    """Remote data capabilities the analysis engine depends on"""

    @abstractmethod
    def fetch_historical_hourly(self, latitude: float, longitude: float,
                                start_date: date, end_date: date) -> List[PrecipitationRecord]:
        ...

    @abstractmethod
    def fetch_point_elevation(self, latitude: float,
                              longitude: float) -> Tuple[float, Optional[float]]:
        """Returns (elevation_m, slope_deg or None)"""

    @abstractmethod
    def fetch_geological_formations(self, latitude: float, longitude: float,
                                    radius_km: float) -> List[GeologicalFormation]:
        ...

    @abstractmethod
    def fetch_lithology(self, latitude: float, longitude: float) -> Dict[str, Any]:
        """Returns {'success': bool, 'data': [{type, age, name, description, coords}]}"""

    @abstractmethod
    def fetch_geological_features(self, latitude: float, longitude: float,
                                  radius_m: float) -> List[GeologicalFeature]:
        ...

    @abstractmethod
    def produce_potential_raster(self, layers: Sequence[PotentialLayer],
                                 weights: Dict[str, float],
                                 bbox: Tuple[float, float, float, float]) -> Any:
        """Returns an opaque handle to the weighted potential surface"""

    @abstractmethod
    def mean_slope(self, field_geometry: FieldGeometry) -> float:
        ...


class TerrainAnalyzer(ABC):
    """External terrain service producing slope statistics for a field"""

    @abstractmethod
    def slope_statistics(self, field_geometry: FieldGeometry) -> SlopeStatistics:
        ...


class AccessibilityAnalyzer(ABC):
    """External accessibility/routing service (roads, flood risk, settlements)"""

    @abstractmethod
    def analyze(self, latitude: float, longitude: float) -> Dict[str, Any]:
        ...


class HttpDataProvider(DataProvider):
    """
    DataProvider backed by public HTTP APIs:
    - Open-Meteo archive (hourly rain + soil moisture) and elevation
    - Macrostrat geologic map units (formations, lithology)
    - Overpass API (geology-tagged OpenStreetMap features)
    Raster operations are delegated to an optional raster service.
    """

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 raster_service: Optional[Any] = None,
                 cache: GeospatialCache = GEOSPATIAL_CACHE,
                 config: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(__name__)
        self.config = {**PRECIPITATION_CONFIG, **(config or {})}
        self.session = session or create_session_with_retries(
            max_attempts=self.config['max_retries'],
            retry_delay_ms=self.config['retry_delay_ms'],
            retry_backoff=self.config['retry_backoff'],
        )
        self.raster_service = raster_service
        self.cache = cache

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request_json(self, method: str, url: str, source: str, timeout: float,
                      params: Optional[Dict[str, Any]] = None,
                      data: Optional[Dict[str, Any]] = None,
                      cache_category: Optional[str] = None) -> Any:
        cache_key = (method, url, tuple(sorted((params or {}).items())),
                     tuple(sorted((data or {}).items())))
        if cache_category is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            response = self.session.request(method, url, params=params, data=data, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as e:
            raise Timeout(source, e) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise DataUnavailable(source, e) from e

        if cache_category is not None:
            self.cache.set(cache_key, payload, geospatial_ttl_ms(cache_category))
        return payload

    # ------------------------------------------------------------------
    # Precipitation
    # ------------------------------------------------------------------

    def fetch_historical_hourly(self, latitude: float, longitude: float,
                                start_date: date, end_date: date) -> List[PrecipitationRecord]:
        params = {
            'latitude': round(latitude, 4),
            'longitude': round(longitude, 4),
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'hourly': 'rain,soil_moisture_0_to_7cm',
            'timeformat': 'unixtime',
            'timezone': 'GMT',
        }
        payload = self._request_json(
            'GET', OPEN_METEO_ARCHIVE_URL, 'open-meteo',
            timeout=self.config['timeout_ms'] / 1000.0, params=params
        )
        records = self.parse_hourly_payload(payload)
        if not records:
            raise DataUnavailable('open-meteo', ValueError('archive returned no usable rainfall values'))

        self.logger.info(f"✓ Fetched {len(records)} hourly precipitation records")
        return records

    @staticmethod
    def parse_hourly_payload(payload: Dict[str, Any]) -> List[PrecipitationRecord]:
        """
        Convert an Open-Meteo hourly payload into validated records.
        Drops null/negative/non-finite rain; defaults and clips soil moisture.
        """
        hourly = (payload or {}).get('hourly') or {}
        times = hourly.get('time') or []
        rain = hourly.get('rain') or []
        soil = hourly.get('soil_moisture_0_to_7cm') or [None] * len(times)

        records = []
        for timestamp, rain_mm, soil_moisture in zip(times, rain, soil):
            if rain_mm is None:
                continue
            rain_mm = float(rain_mm)
            if not math.isfinite(rain_mm) or rain_mm < 0:
                continue
            if soil_moisture is None or not math.isfinite(float(soil_moisture)):
                soil_moisture = DEFAULT_SOIL_MOISTURE
            records.append(PrecipitationRecord(
                timestamp=int(timestamp) * 1000,
                rain_mm=rain_mm,
                soil_moisture=float(np.clip(float(soil_moisture), 0.0, 1.0)),
            ))

        records.sort(key=lambda r: r.timestamp)
        return records

    # ------------------------------------------------------------------
    # Elevation
    # ------------------------------------------------------------------

    def fetch_point_elevation(self, latitude: float,
                              longitude: float) -> Tuple[float, Optional[float]]:
        payload = self._request_json(
            'GET', OPEN_METEO_ELEVATION_URL, 'open-meteo-elevation',
            timeout=PROVIDER_TIMEOUTS_SECONDS['default'],
            params={'latitude': round(latitude, 5), 'longitude': round(longitude, 5)},
            cache_category='elevation'
        )
        elevations = payload.get('elevation') or []
        if not elevations or elevations[0] is None:
            raise DataUnavailable('open-meteo-elevation', ValueError('no elevation in response'))
        return float(elevations[0]), None

    # ------------------------------------------------------------------
    # Geology
    # ------------------------------------------------------------------

    def _macrostrat_units(self, latitude: float, longitude: float, timeout: float) -> List[Dict]:
        payload = self._request_json(
            'GET', MACROSTRAT_UNITS_URL, 'macrostrat', timeout=timeout,
            params={'lat': round(latitude, 5), 'lng': round(longitude, 5), 'response': 'long'},
            cache_category='geology'
        )
        success = payload.get('success') or {}
        return success.get('data') or []

    @staticmethod
    def _unit_rock_type(unit: Dict[str, Any]) -> str:
        for key in ('lith', 'name', 'strat_name', 'descrip'):
            rock_type = classify_rock_type(unit.get(key))
            if rock_type:
                return rock_type
        lith = (unit.get('lith') or '').strip().lower()
        return lith.split()[0].strip(',;') if lith else 'unknown'

    def fetch_geological_formations(self, latitude: float, longitude: float,
                                    radius_km: float) -> List[GeologicalFormation]:
        bbox = GeoProcessor.create_buffer_bbox(latitude, longitude, radius_km)
        sample_points = GeoProcessor.generate_grid_points(bbox, GEOLOGY_FORMATION_GRID_SIZE)

        counts: Dict[str, int] = {}
        first_seen: Dict[str, Tuple[float, float]] = {}
        successful_samples = 0
        last_error = None

        for lat, lon in sample_points:
            try:
                units = self._macrostrat_units(lat, lon, PROVIDER_TIMEOUTS_SECONDS['default'])
            except DataUnavailable as e:
                last_error = e
                continue
            successful_samples += 1
            for rock_type in {self._unit_rock_type(unit) for unit in units}:
                counts[rock_type] = counts.get(rock_type, 0) + 1
                first_seen.setdefault(rock_type, (lat, lon))

        if successful_samples == 0:
            raise DataUnavailable('macrostrat', last_error)

        formations = [
            GeologicalFormation(type=rock_type, coords=first_seen[rock_type],
                                magnitude=count / successful_samples)
            for rock_type, count in sorted(counts.items())
        ]
        self.logger.info(f"✓ Found {len(formations)} formation types in {successful_samples} samples")
        return formations

    def fetch_lithology(self, latitude: float, longitude: float) -> Dict[str, Any]:
        try:
            units = self._macrostrat_units(latitude, longitude, PROVIDER_TIMEOUTS_SECONDS['lithology'])
        except DataUnavailable as e:
            self.logger.warning(f"Lithology lookup failed: {e}")
            return {'success': False, 'data': [], 'error': str(e)}

        data = [
            {
                'type': self._unit_rock_type(unit),
                'age': unit.get('best_int_name') or unit.get('t_int_name'),
                'name': unit.get('name') or unit.get('strat_name'),
                'description': unit.get('descrip'),
                'coords': [longitude, latitude],
            }
            for unit in units
        ]
        return {'success': True, 'data': data}

    def fetch_geological_features(self, latitude: float, longitude: float,
                                  radius_m: float) -> List[GeologicalFeature]:
        query = (
            f"[out:json][timeout:{int(PROVIDER_TIMEOUTS_SECONDS['default'])}];"
            f"(node(around:{int(radius_m)},{latitude},{longitude})[\"geological\"];"
            f"way(around:{int(radius_m)},{latitude},{longitude})[\"geological\"];);"
            "out center;"
        )
        payload = self._request_json(
            'POST', OVERPASS_API_URL, 'overpass',
            timeout=PROVIDER_TIMEOUTS_SECONDS['default'],
            data={'data': query}, cache_category='geology'
        )
        return self.parse_overpass_features(payload)

    @staticmethod
    def parse_overpass_features(payload: Dict[str, Any]) -> List[GeologicalFeature]:
        features = []
        for element in (payload or {}).get('elements', []):
            tags = element.get('tags') or {}
            geological = str(tags.get('geological', '')).lower()
            if not geological:
                continue
            center = element.get('center') or element
            if 'lat' not in center or 'lon' not in center:
                continue
            tag = 'fracture' if geological in FRACTURE_FEATURE_TAGS else geological
            rock_type = classify_rock_type(
                tags.get('rock') or tags.get('geological:rock') or tags.get('name')
            )
            features.append(GeologicalFeature(
                tag=tag, rock_type=rock_type,
                coords=(float(center['lat']), float(center['lon']))
            ))
        return features

    # ------------------------------------------------------------------
    # Raster operations (delegated)
    # ------------------------------------------------------------------

    def produce_potential_raster(self, layers: Sequence[PotentialLayer],
                                 weights: Dict[str, float],
                                 bbox: Tuple[float, float, float, float]) -> Any:
        if self.raster_service is None:
            raise DataUnavailable('raster-service', RuntimeError('no raster service configured'))
        return self.raster_service.produce_potential_raster(layers, weights, bbox)

    def mean_slope(self, field_geometry: FieldGeometry) -> float:
        if self.raster_service is None:
            raise DataUnavailable('raster-service', RuntimeError('no raster service configured'))
        return self.raster_service.mean_slope(field_geometry)


class ProviderTerrainAnalyzer(TerrainAnalyzer):
    """Terrain analyzer that only knows the provider's mean slope"""

    def __init__(self, provider: DataProvider):
        self.provider = provider

    def slope_statistics(self, field_geometry: FieldGeometry) -> SlopeStatistics:
        return SlopeStatistics(mean=float(self.provider.mean_slope(field_geometry)))
