from datetime import date
from unittest.mock import Mock

import pytest
import requests
from urllib3.util.retry import RequestHistory

from mudhumeni_core.data_sources import HttpDataProvider, classify_rock_type
from mudhumeni_core.utils.cache import GeospatialCache
from mudhumeni_core.utils.errors import DataUnavailable, Timeout
from mudhumeni_core.utils.retry import GeometricRetry, create_session_with_retries


def json_response(payload):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


def make_provider(*responses):
    session = Mock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return HttpDataProvider(session=session, cache=GeospatialCache()), session


class TestPayloadParsing:
    def test_hourly_payload_is_validated_and_sorted(self):
        payload = {'hourly': {
            'time': [1_700_003_600, 1_700_000_000, 1_700_007_200, 1_700_010_800],
            'rain': [1.5, None, -2.0, 3.0],
            'soil_moisture_0_to_7cm': [None, 0.2, 0.3, 1.5],
        }}

        records = HttpDataProvider.parse_hourly_payload(payload)

        assert [r.timestamp for r in records] == [1_700_003_600_000, 1_700_010_800_000]
        assert [r.rain_mm for r in records] == [1.5, 3.0]
        assert records[0].soil_moisture == 0.4
        assert records[1].soil_moisture == 1.0

    def test_missing_soil_moisture_defaults(self):
        records = HttpDataProvider.parse_hourly_payload({'hourly': {'time': [1], 'rain': [0.0]}})
        assert records[0].soil_moisture == 0.4

    def test_overpass_features(self):
        payload = {'elements': [
            {'type': 'node', 'lat': -17.8, 'lon': 31.0, 'tags': {'geological': 'fault'}},
            {'type': 'way', 'center': {'lat': -17.9, 'lon': 31.1},
             'tags': {'geological': 'outcrop', 'rock': 'Granite gneiss'}},
            {'type': 'node', 'lat': -17.7, 'lon': 31.2, 'tags': {'natural': 'peak'}},
        ]}

        features = HttpDataProvider.parse_overpass_features(payload)

        assert [f.tag for f in features] == ['fracture', 'outcrop']
        assert features[0].rock_type is None
        assert features[1].rock_type == 'granite'
        assert features[1].coords == (-17.9, 31.1)

    @pytest.mark.parametrize('text, expected', [
        ('Major:{sandstone},Minor:{shale}', 'sandstone'),
        ('weathered granodiorite', 'plutonic'),
        ('banded gneiss', 'metamorphic'),
        ('alluvium', None),
        (None, None),
    ])
    def test_classify_rock_type(self, text, expected):
        assert classify_rock_type(text) == expected


class TestHttpDataProvider:
    def test_precipitation_request(self):
        provider, session = make_provider(json_response({'hourly': {'time': [1_700_000_000], 'rain': [2.0]}}))

        records = provider.fetch_historical_hourly(-17.83, 31.05, date(2014, 1, 1), date(2024, 1, 1))

        assert len(records) == 1
        method, url = session.request.call_args[0]
        params = session.request.call_args[1]['params']
        assert method == 'GET'
        assert 'archive' in url
        assert params['hourly'] == 'rain,soil_moisture_0_to_7cm'
        assert params['start_date'] == '2014-01-01'
        assert session.request.call_args[1]['timeout'] == 20.0

    def test_empty_precipitation_is_unavailable(self):
        provider, _ = make_provider(json_response({'hourly': {'time': [], 'rain': []}}))
        with pytest.raises(DataUnavailable):
            provider.fetch_historical_hourly(-17.83, 31.05, date(2014, 1, 1), date(2024, 1, 1))

    def test_timeout_is_reported_as_timeout(self):
        provider, _ = make_provider(requests.exceptions.ReadTimeout('slow'))
        with pytest.raises(Timeout) as excinfo:
            provider.fetch_historical_hourly(-17.83, 31.05, date(2014, 1, 1), date(2024, 1, 1))
        assert excinfo.value.source == 'open-meteo'

    def test_http_error_is_unavailable(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('503 Server Error')
        provider, _ = make_provider(response)

        with pytest.raises(DataUnavailable) as excinfo:
            provider.fetch_point_elevation(-17.83, 31.05)
        assert not isinstance(excinfo.value, Timeout)

    def test_invalid_json_is_unavailable(self):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError('Expecting value')
        provider, _ = make_provider(response)

        with pytest.raises(DataUnavailable):
            provider.fetch_point_elevation(-17.83, 31.05)

    def test_elevation_is_cached(self):
        provider, session = make_provider(json_response({'elevation': [1490.0]}))

        assert provider.fetch_point_elevation(-17.83, 31.05) == (1490.0, None)
        assert provider.fetch_point_elevation(-17.83, 31.05) == (1490.0, None)
        assert session.request.call_count == 1

    def test_formations_from_grid_samples(self):
        units = {'success': {'data': [{'lith': 'Major:{sandstone}', 'name': 'Karoo'}]}}
        provider, session = make_provider(*[json_response(units) for _ in range(9)])

        formations = provider.fetch_geological_formations(-17.83, 31.05, 5)

        assert session.request.call_count == 9
        assert len(formations) == 1
        assert formations[0].type == 'sandstone'
        assert formations[0].magnitude == 1.0

    def test_formations_unavailable_when_every_sample_fails(self):
        provider, _ = make_provider(*[requests.exceptions.ConnectionError('down') for _ in range(9)])
        with pytest.raises(DataUnavailable):
            provider.fetch_geological_formations(-17.83, 31.05, 5)

    def test_lithology_failure_is_reported_not_raised(self):
        provider, _ = make_provider(requests.exceptions.ConnectionError('down'))

        result = provider.fetch_lithology(-17.83, 31.05)

        assert result['success'] is False
        assert result['data'] == []
        assert 'macrostrat' in result['error']

    def test_lithology_units(self):
        units = {'success': {'data': [{
            'lith': 'Major:{granite}', 'name': 'Chilimanzi Suite', 'best_int_name': 'Neoarchean',
            'descrip': 'Coarse grained granite',
        }]}}
        provider, _ = make_provider(json_response(units))

        result = provider.fetch_lithology(-17.83, 31.05)

        assert result['success'] is True
        assert result['data'][0]['type'] == 'granite'
        assert result['data'][0]['age'] == 'Neoarchean'
        assert result['data'][0]['coords'] == [31.05, -17.83]

    def test_raster_operations_need_a_service(self):
        provider, _ = make_provider()
        with pytest.raises(DataUnavailable):
            provider.produce_potential_raster([], {}, (0, 0, 1, 1))


class TestRetry:
    def history(self, count):
        return tuple(RequestHistory('GET', '/archive', None, 503, None) for _ in range(count))

    def test_no_wait_before_first_retry(self):
        retry = GeometricRetry(total=2, backoff_factor=2.0, backoff_growth=1.5)
        assert retry.get_backoff_time() == 0

    def test_geometric_backoff(self):
        retry = GeometricRetry(total=5, backoff_factor=2.0, backoff_growth=1.5)

        delays = [retry.new(history=self.history(n)).get_backoff_time() for n in (1, 2, 3)]

        assert delays == pytest.approx([2.0, 3.0, 4.5])

    def test_session_counts_attempts(self):
        session = create_session_with_retries(max_attempts=3, retry_delay_ms=2000, retry_backoff=1.5)
        retries = session.get_adapter('https://archive-api.open-meteo.com').max_retries

        assert isinstance(retries, GeometricRetry)
        assert retries.total == 2
        assert retries.backoff_factor == 2.0
        assert retries.backoff_growth == 1.5
        assert 503 in retries.status_forcelist
