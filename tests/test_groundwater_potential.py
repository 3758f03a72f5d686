from unittest.mock import Mock

import numpy as np
import pytest

from conftest import square_field
from mudhumeni_core.data_sources import DataProvider
from mudhumeni_core.models.groundwater_potential import GroundwaterPotentialAggregator
from mudhumeni_core.utils.geo_processor import FieldGeometry


@pytest.fixture
def aggregator():
    return GroundwaterPotentialAggregator()


class TestDynamicWeights:
    @pytest.mark.parametrize('overall', [0.0, 0.2, 0.5, 0.8, 0.9, 1.0])
    def test_weights_sum_to_one(self, aggregator, overall):
        weights = aggregator.calculate_dynamic_weights(overall)
        assert sum(weights.values()) == pytest.approx(1.0, abs=1e-5)
        assert len(weights) == 7

    def test_default_weights_in_middle_band(self, aggregator):
        weights = aggregator.calculate_dynamic_weights(0.6)
        assert weights['precipitation'] == pytest.approx(0.20, abs=1e-6)
        assert weights['landcover'] == pytest.approx(0.10, abs=1e-6)

    def test_reliable_rainfall_gains_weight(self, aggregator):
        weights = aggregator.calculate_dynamic_weights(0.9)
        assert weights['precipitation'] == pytest.approx(0.25, abs=1e-6)
        assert weights['elevation'] == pytest.approx(0.15 - 0.05 / 6, abs=1e-6)
        assert weights['geology'] == pytest.approx(0.20 - 0.05 / 6, abs=1e-6)

    def test_unreliable_rainfall_loses_weight(self, aggregator):
        weights = aggregator.calculate_dynamic_weights(0.2)
        assert weights['precipitation'] == pytest.approx(0.15, abs=1e-6)
        assert weights['slope'] == pytest.approx(0.10 + 0.05 / 6, abs=1e-6)


class TestLayers:
    def test_normalize_layer(self):
        result = GroundwaterPotentialAggregator.normalize_layer([-10, 0, 1500, 3000, 4000], 0, 3000)
        np.testing.assert_allclose(result, [0, 0, 0.5, 1, 1])

    def test_normalize_degenerate_range(self):
        result = GroundwaterPotentialAggregator.normalize_layer([1.0, 2.0], 5, 5)
        np.testing.assert_array_equal(result, [0.0, 0.0])

    def test_weighted_surface_broadcasts_constants(self):
        surface = GroundwaterPotentialAggregator.weighted_surface(
            {'elevation': np.array([[0.0, 1.0], [0.5, 0.5]]), 'geology': 0.5},
            {'elevation': 0.5, 'geology': 0.5, 'landcover': 0.1},
        )
        np.testing.assert_allclose(surface, [[0.25, 0.75], [0.5, 0.5]])

    def test_build_layers(self, aggregator):
        layers = {layer.name: layer for layer in aggregator.build_layers(0.7, 1.4)}

        assert set(layers) == {'elevation', 'slope', 'soil', 'temp', 'landcover', 'geology', 'precipitation'}
        assert layers['landcover'].constant == 0.0
        assert layers['geology'].constant == pytest.approx(0.7)
        assert layers['precipitation'].constant == 1.0
        assert layers['slope'].derive == 'slope'
        assert (layers['temp'].min_value, layers['temp'].max_value) == (250.0, 350.0)


class TestPotentialMap:
    def test_map_handle_is_passed_through(self):
        provider = Mock(spec=DataProvider)
        provider.produce_potential_raster.return_value = {'map_id': 'abc'}
        field = FieldGeometry.from_geojson(square_field(31.05, -17.83))

        result = GroundwaterPotentialAggregator(provider).produce_potential_map(field, 0.6, 0.9)

        assert result['handle'] == {'map_id': 'abc'}
        layers, weights, bbox = provider.produce_potential_raster.call_args[0]
        assert len(layers) == 7
        assert weights == result['weights']
        assert bbox == field.bbox

    def test_map_requires_provider(self, aggregator):
        field = FieldGeometry.from_geojson(square_field(31.05, -17.83))
        with pytest.raises(RuntimeError):
            aggregator.produce_potential_map(field, 0.6, 0.9)

    def test_score_point(self, aggregator):
        result = aggregator.score_point({'elevation': 1500.0, 'slope': 9.0, 'soil': 0.4}, 0.6, 0.5)

        assert result['missing_layers'] == ['temp']
        assert result['normalized_layers']['elevation'] == pytest.approx(0.5)
        assert result['normalized_layers']['slope'] == pytest.approx(0.2)
        expected = 0.15 * 0.5 + 0.10 * 0.2 + 0.15 * 0.4 + 0.20 * 0.6 + 0.20 * 0.5
        assert result['potential_score'] == pytest.approx(expected, abs=1e-4)
