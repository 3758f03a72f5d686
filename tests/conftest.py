"""
Shared fixtures: an in-memory DataProvider and rainfall series builders
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from mudhumeni_core.data_sources import (
    DataProvider, GeologicalFeature, GeologicalFormation, PrecipitationRecord
)
from mudhumeni_core.utils.cache import GEOLOGY_SCORE_CACHE, GEOSPATIAL_CACHE
from mudhumeni_core.utils.errors import DataUnavailable


def daily_records(start: date, end: date, rain: Callable[[date], float],
                  soil_moisture: Optional[float] = 0.4) -> List[PrecipitationRecord]:
    """One record per day from start to end inclusive, at midnight UTC"""
    records = []
    day = start
    while day <= end:
        moment = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        records.append(PrecipitationRecord(
            timestamp=int(moment.timestamp() * 1000),
            rain_mm=float(rain(day)),
            soil_moisture=soil_moisture,
        ))
        day += timedelta(days=1)
    return records


def seasonal_rain(day: date) -> float:
    """Wet November-March, dry otherwise"""
    return 12.0 if day.month in (11, 12, 1, 2, 3) else 0.5


def square_field(lon: float, lat: float, half_side: float = 0.002, name: str = 'test field') -> dict:
    return {
        'type': 'Feature',
        'properties': {'name': name},
        'geometry': {
            'type': 'Polygon',
            'coordinates': [[
                [lon - half_side, lat - half_side],
                [lon + half_side, lat - half_side],
                [lon + half_side, lat + half_side],
                [lon - half_side, lat + half_side],
                [lon - half_side, lat - half_side],
            ]],
        },
    }


class FakeDataProvider(DataProvider):
    """Deterministic provider; pass an exception instance to make a capability fail"""

    def __init__(self, records=None, elevation=1200.0, slope=3.0,
                 formations=None, features=None, lithology=None,
                 raster_handle='fake-potential-handle'):
        self.records = records
        self.elevation = elevation
        self.slope = slope
        self.formations = formations
        self.features = features
        self.lithology = lithology
        self.raster_handle = raster_handle
        self.calls = {}

    def _record_call(self, name):
        self.calls[name] = self.calls.get(name, 0) + 1

    @staticmethod
    def _result(value):
        if isinstance(value, BaseException):
            raise value
        return value

    def fetch_historical_hourly(self, latitude, longitude, start_date, end_date):
        self._record_call('precipitation')
        if self.records is None:
            return daily_records(date(2019, 1, 1), date(2023, 12, 31), seasonal_rain)
        return self._result(self.records)

    def fetch_point_elevation(self, latitude, longitude):
        self._record_call('elevation')
        return self._result(self.elevation), None

    def fetch_geological_formations(self, latitude, longitude, radius_km):
        self._record_call('formations')
        if self.formations is None:
            return [
                GeologicalFormation('sandstone', (latitude, longitude), 0.6),
                GeologicalFormation('granite', (latitude + 0.01, longitude), 0.4),
            ]
        return self._result(self.formations)

    def fetch_lithology(self, latitude, longitude):
        self._record_call('lithology')
        if self.lithology is None:
            return {'success': True, 'data': [{
                'type': 'sandstone', 'age': 'Permian', 'name': 'Karoo Supergroup',
                'description': 'Sandstone and mudstone', 'coords': [longitude, latitude],
            }]}
        return self._result(self.lithology)

    def fetch_geological_features(self, latitude, longitude, radius_m):
        self._record_call('features')
        if self.features is None:
            return [
                GeologicalFeature('fracture', None, (latitude, longitude + 0.01)),
                GeologicalFeature('outcrop', 'granite', (latitude + 0.01, longitude)),
            ]
        return self._result(self.features)

    def produce_potential_raster(self, layers, weights, bbox):
        self._record_call('raster')
        return self._result(self.raster_handle)

    def mean_slope(self, field_geometry):
        self._record_call('slope')
        return self._result(self.slope)


def unavailable(source='fake'):
    return DataUnavailable(source, RuntimeError('service down'))


@pytest.fixture(autouse=True)
def clear_caches():
    GEOLOGY_SCORE_CACHE.clear()
    GEOSPATIAL_CACHE.clear()
    yield
    GEOLOGY_SCORE_CACHE.clear()
    GEOSPATIAL_CACHE.clear()


@pytest.fixture
def provider():
    return FakeDataProvider()
