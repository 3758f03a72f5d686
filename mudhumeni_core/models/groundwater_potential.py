"""
GROUNDWATER POTENTIAL AGGREGATOR
Weighted overlay of normalized environmental layers:
- Elevation (SRTM), slope (SRTM-derived), soil moisture (SMAP), land surface temperature (MODIS)
- Geology score and precipitation reliability as constant layers
- Landcover is a reserved weight with a zero layer

Weights shift toward precipitation when rainfall is reliable and away from it when it is not.
"""

import numpy as np
from typing import Any, Dict, List, Mapping, Optional
import logging

from mudhumeni_core.data_sources import DataProvider, PotentialLayer
from mudhumeni_core.utils.geo_processor import FieldGeometry
from mudhumeni_core.config.settings import (
    POTENTIAL_LAYER_RANGES, POTENTIAL_DEFAULT_WEIGHTS, POTENTIAL_WEIGHT_ADJUSTMENT,
    POTENTIAL_HIGH_RELIABILITY, POTENTIAL_LOW_RELIABILITY, GEE_DATASETS
)

logger = logging.getLogger(__name__)


class GroundwaterPotentialAggregator:
    """Builds potential layers and weights, and scores points with the same overlay"""

    def __init__(self, provider: Optional[DataProvider] = None):
        self.logger = logging.getLogger(__name__)
        self.provider = provider

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    @staticmethod
    def adjust_weights(weights: Mapping[str, float], factor: str, adjustment: float) -> Dict[str, float]:
        """Shift `adjustment` onto `factor`, taking it evenly from the other k-1 factors"""
        adjusted = dict(weights)
        others = [name for name in adjusted if name != factor]
        if not others:
            return adjusted
        share = adjustment / len(others)
        adjusted[factor] += adjustment
        for name in others:
            adjusted[name] -= share
        return adjusted

    def calculate_dynamic_weights(self, reliability_overall: float) -> Dict[str, float]:
        weights = dict(POTENTIAL_DEFAULT_WEIGHTS)
        if reliability_overall > POTENTIAL_HIGH_RELIABILITY:
            weights = self.adjust_weights(weights, 'precipitation', POTENTIAL_WEIGHT_ADJUSTMENT)
        elif reliability_overall < POTENTIAL_LOW_RELIABILITY:
            weights = self.adjust_weights(weights, 'precipitation', -POTENTIAL_WEIGHT_ADJUSTMENT)
        return {name: round(value, 6) for name, value in weights.items()}

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def build_layers(self, geology_score: float, reliability_overall: float) -> List[PotentialLayer]:
        elevation_lo, elevation_hi = POTENTIAL_LAYER_RANGES['elevation']
        slope_lo, slope_hi = POTENTIAL_LAYER_RANGES['slope']
        soil_lo, soil_hi = POTENTIAL_LAYER_RANGES['soil']
        temp_lo, temp_hi = POTENTIAL_LAYER_RANGES['temp']
        dem = GEE_DATASETS['elevation']

        return [
            PotentialLayer('elevation', elevation_lo, elevation_hi, dataset=dem['dataset'], band=dem['band']),
            PotentialLayer('slope', slope_lo, slope_hi, dataset=dem['dataset'], band=dem['band'], derive='slope'),
            PotentialLayer('soil', soil_lo, soil_hi, dataset=GEE_DATASETS['soil']['dataset'],
                           band=GEE_DATASETS['soil']['band'], collection=True),
            PotentialLayer('temp', temp_lo, temp_hi, dataset=GEE_DATASETS['temp']['dataset'],
                           band=GEE_DATASETS['temp']['band'], collection=True,
                           scale_factor=GEE_DATASETS['temp']['scale_factor']),
            PotentialLayer('landcover', constant=0.0),
            PotentialLayer('geology', constant=float(np.clip(geology_score, 0, 1))),
            PotentialLayer('precipitation', constant=float(np.clip(reliability_overall, 0, 1))),
        ]

    def produce_potential_map(self, field_geometry: FieldGeometry, geology_score: float,
                              reliability_overall: float) -> Dict[str, Any]:
        """
        Ask the raster service for the weighted surface over the field's bounding box.
        Returns the opaque handle together with the weights used.
        """
        if self.provider is None:
            raise RuntimeError("GroundwaterPotentialAggregator needs a provider to produce maps")

        weights = self.calculate_dynamic_weights(reliability_overall)
        layers = self.build_layers(geology_score, reliability_overall)
        handle = self.provider.produce_potential_raster(layers, weights, field_geometry.bbox)
        self.logger.info("✓ Potential map produced")
        return {'handle': handle, 'weights': weights}

    # ------------------------------------------------------------------
    # Local overlay
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_layer(values: Any, min_value: float, max_value: float) -> np.ndarray:
        """Linear rescale of [min_value, max_value] onto [0, 1], clipped"""
        values = np.asarray(values, dtype=float)
        if max_value == min_value:
            return np.zeros_like(values)
        return np.clip((values - min_value) / (max_value - min_value), 0.0, 1.0)

    @staticmethod
    def weighted_surface(layers: Mapping[str, Any], weights: Mapping[str, float]) -> np.ndarray:
        """Sum of weight * layer over the named layers; missing layers contribute zero"""
        arrays = {name: np.asarray(layer, dtype=float) for name, layer in layers.items()}
        shape = np.broadcast_shapes(*(a.shape for a in arrays.values())) if arrays else ()
        surface = np.zeros(shape)
        for name, weight in weights.items():
            if name in arrays:
                surface = surface + weight * arrays[name]
        return surface

    def score_point(self, values: Mapping[str, Optional[float]], geology_score: float,
                    reliability_overall: float) -> Dict[str, Any]:
        """
        Potential score at one location from raw point values
        (elevation m, slope deg, soil fraction, temp K). Unknown values score zero.
        """
        weights = self.calculate_dynamic_weights(reliability_overall)
        normalized = {}
        missing = []
        for name, (lo, hi) in POTENTIAL_LAYER_RANGES.items():
            value = values.get(name)
            if value is None:
                missing.append(name)
                continue
            normalized[name] = float(self.normalize_layer(value, lo, hi))
        normalized['landcover'] = 0.0
        normalized['geology'] = float(np.clip(geology_score, 0, 1))
        normalized['precipitation'] = float(np.clip(reliability_overall, 0, 1))

        score = float(self.weighted_surface(normalized, weights))
        return {
            'potential_score': round(float(np.clip(score, 0, 1)), 4),
            'normalized_layers': {k: round(v, 4) for k, v in normalized.items()},
            'missing_layers': missing,
            'weights': weights,
        }
