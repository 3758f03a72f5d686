"""
WATER BUDGET ESTIMATOR
Surface runoff, groundwater recharge and soil moisture volumes for a field
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
import logging

from mudhumeni_core.models.precipitation import PrecipitationMetrics
from mudhumeni_core.config.settings import WATER_BUDGET_DEFAULTS

logger = logging.getLogger(__name__)


@dataclass
class WaterAvailability:
    surface_m3: float
    groundwater_m3: float
    soil_moisture_m3: float
    units: str = 'cubic_meters'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WaterBudgetEstimator:
    """Volumetric water budget from precipitation metrics and field area"""

    def __init__(self, config: Optional[Dict[str, float]] = None):
        self.logger = logging.getLogger(__name__)
        self.config = {**WATER_BUDGET_DEFAULTS, **(config or {})}

        if self.config['aquifer_thickness_m'] <= 0:
            raise ValueError(f"aquifer_thickness_m must be > 0, got {self.config['aquifer_thickness_m']}")
        if not 0 < self.config['specific_yield'] < 1:
            raise ValueError(f"specific_yield must be in (0, 1), got {self.config['specific_yield']}")
        if not 0 < self.config['soil_porosity'] < 1:
            raise ValueError(f"soil_porosity must be in (0, 1), got {self.config['soil_porosity']}")

    def surface_water(self, average_annual_rainfall_mm: float, area_m2: float) -> float:
        return max(0.0, average_annual_rainfall_mm / 1000.0 * area_m2 * self.config['runoff_coefficient'])

    def groundwater(self, total_recharge_events: int, area_m2: float) -> float:
        return max(0.0, total_recharge_events * self.config['aquifer_thickness_m']
                   * self.config['specific_yield'] * area_m2)

    def soil_moisture(self, area_m2: float) -> float:
        return max(0.0, area_m2 * self.config['soil_depth_m'] * self.config['soil_porosity'])

    def estimate(self, metrics: PrecipitationMetrics, area_m2: float) -> WaterAvailability:
        if area_m2 < 0:
            raise ValueError(f"area_m2 must be >= 0, got {area_m2}")

        availability = WaterAvailability(
            surface_m3=round(self.surface_water(metrics.average_annual_rainfall_mm, area_m2), 2),
            groundwater_m3=round(self.groundwater(len(metrics.recharge_patterns.events), area_m2), 2),
            soil_moisture_m3=round(self.soil_moisture(area_m2), 2),
        )
        self.logger.info(
            f"Water budget: surface {availability.surface_m3:.0f} m³, "
            f"groundwater {availability.groundwater_m3:.0f} m³, soil {availability.soil_moisture_m3:.0f} m³"
        )
        return availability
