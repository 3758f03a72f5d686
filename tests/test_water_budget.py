import dataclasses

import pytest

from mudhumeni_core.models.precipitation import (
    AnnualMetric, PrecipitationAnalyzer, RechargeEvent, RechargePatterns
)
from mudhumeni_core.models.water_budget import WaterBudgetEstimator


@pytest.fixture
def metrics():
    base = PrecipitationAnalyzer.default_metrics('test')
    return dataclasses.replace(
        base,
        annual_metrics=[
            AnnualMetric(2021, 600.0, 50.0, 0.4, 5),
            AnnualMetric(2022, 800.0, 66.7, 0.5, 4),
        ],
        recharge_patterns=RechargePatterns(
            events=[RechargeEvent('2022-01-0%dT00:00:00+00:00' % d, 25.0) for d in (1, 2, 3)],
            annual_recharge={2022: 75.0}, efficiency=0.3, fallback_flag=False,
        ),
    )


class TestWaterBudget:
    def test_volumes(self, metrics):
        water = WaterBudgetEstimator().estimate(metrics, area_m2=10_000)

        assert water.surface_m3 == pytest.approx(0.7 * 10_000 * 0.3)
        assert water.groundwater_m3 == pytest.approx(3 * 10 * 0.15 * 10_000)
        assert water.soil_moisture_m3 == pytest.approx(10_000 * 1 * 0.45)
        assert water.units == 'cubic_meters'

    def test_zero_area_gives_zero_volumes(self, metrics):
        water = WaterBudgetEstimator().estimate(metrics, area_m2=0)
        assert (water.surface_m3, water.groundwater_m3, water.soil_moisture_m3) == (0, 0, 0)

    def test_config_overrides(self, metrics):
        estimator = WaterBudgetEstimator({'runoff_coefficient': 0.5, 'soil_porosity': 0.3})
        water = estimator.estimate(metrics, area_m2=1000)
        assert water.surface_m3 == pytest.approx(0.7 * 1000 * 0.5)
        assert water.soil_moisture_m3 == pytest.approx(300)

    @pytest.mark.parametrize('config', [
        {'aquifer_thickness_m': 0},
        {'specific_yield': 0},
        {'specific_yield': 1},
        {'soil_porosity': 1.2},
    ])
    def test_invalid_parameters_rejected(self, config):
        with pytest.raises(ValueError):
            WaterBudgetEstimator(config)

    def test_negative_area_rejected(self, metrics):
        with pytest.raises(ValueError):
            WaterBudgetEstimator().estimate(metrics, area_m2=-1)
