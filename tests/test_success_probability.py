import pytest
import requests

from mudhumeni_core.models.precipitation import ReliabilityScores
from mudhumeni_core.models.success_probability import SuccessProbabilityModel
from mudhumeni_core.utils.errors import ComputationError, DataUnavailable, Timeout


def reliability(overall):
    return ReliabilityScores(overall=overall, seasonal=overall, trend=overall, recharge=overall)


@pytest.fixture
def model():
    return SuccessProbabilityModel()


class TestSuccessProbability:
    def test_weighted_sum(self, model):
        result = model.calculate(
            -17.83, 31.05, geology_score=0.6, reliability=reliability(0.8),
            stats={'elevation': 0.5, 'soil': 0.4, 'slope_mean': 3.0, 'label': 'loam'},
        )

        # 0.5*0.15 + 0.4*0.20 + 0.6*0.25 + 0.8*0.25
        assert result.probability == pytest.approx(50.5)
        assert result.rating == 'moderate'
        assert result.is_fallback is False
        assert set(result.contributions) == {'elevation', 'soil', 'geology_score', 'precipitation_reliability'}
        assert result.recommendations

    def test_non_numeric_stats_are_ignored(self, model):
        base = model.calculate(-17.83, 31.05, 0.5, reliability(0.5))
        noisy = model.calculate(-17.83, 31.05, 0.5, reliability(0.5),
                                stats={'elevation': 'high', 'soil': None, 'temp': True})
        assert noisy.probability == base.probability == pytest.approx(25.0)

    @pytest.mark.parametrize('stats', [
        {'elevation': 1e6},
        {'elevation': -1e6},
        {'soil': 40.0, 'temp': 40.0},
    ])
    def test_probability_is_bounded(self, model, stats):
        result = model.calculate(-17.83, 31.05, 1.0, reliability(1.0), stats=stats)
        assert 0 <= result.probability <= 100

    @pytest.mark.parametrize('latitude, longitude', [(0.0, 0.0), (95.0, 31.0), (-17.83, 200.0),
                                                     (float('nan'), 31.0)])
    def test_invalid_coordinates_default_to_fifty(self, model, latitude, longitude):
        result = model.calculate(latitude, longitude, 0.9, reliability(0.9))
        assert result.probability == 50
        assert result.is_fallback is True

    @pytest.mark.parametrize('error, expected', [
        (ComputationError('geology', ValueError('bad formations')), 40),
        (ComputationError('precipitation', ValueError('no records')), 42),
        (DataUnavailable('open-meteo'), 45),
        (Timeout('macrostrat'), 45),
        (requests.exceptions.ConnectionError('refused'), 45),
        (ValueError('unexpected'), 50),
    ])
    def test_failures_map_to_calibrated_probabilities(self, model, error, expected):
        result = model.calculate(-17.83, 31.05, 0.9, reliability(0.9), upstream_error=error)
        assert result.probability == expected
        assert result.is_fallback is True
        assert result.note

    def test_computation_failure_is_classified(self, model):
        result = model.calculate(-17.83, 31.05, geology_score='n/a', reliability=reliability(0.5))
        assert result.probability == 50
        assert result.is_fallback is True

    def test_rating_follows_probability(self, model):
        best = model.calculate(-17.83, 31.05, 1.0, reliability(1.0),
                               stats={'elevation': 1.0, 'soil': 1.0, 'temp': 1.0})
        worst = model.calculate(-17.83, 31.05, 0.2, reliability(0.2))

        assert best.probability == 100
        assert best.rating == 'favorable'
        assert worst.probability == pytest.approx(10.0)
        assert worst.rating == 'critical'
