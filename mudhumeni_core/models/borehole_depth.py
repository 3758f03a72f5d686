"""
BOREHOLE DEPTH MODEL
Estimates the drilling depth window for a borehole.

Sources:
- Terrain (elevation, slope) for the aquifer depth proxy
- Recharge efficiency (well-recharged sites hold water shallower)
- Confining layers implied by terrain (clay on flats, shallow bedrock on slopes)
"""

import numpy as np
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
import logging

from mudhumeni_core.config.settings import (
    DEPTH_DEFAULTS_M, DEPTH_BOUNDS_M, AQUIFER_BASE_DEPTH_M, AQUIFER_HIGH_EFFICIENCY,
    AQUIFER_HIGH_EFFICIENCY_REDUCTION_M, CONFINING_LAYERS, DEPTH_LIMITATIONS,
    DEPTH_LOW_CONFIDENCE_LIMITATIONS
)


@dataclass
class DepthRange:
    """Container for borehole depth estimate (metres below ground)"""
    minimum_depth: float
    maximum_depth: float
    recommended_depth: float
    confidence_score: float
    limitations: List[str]
    factors: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DepthEstimator:
    """
    Depth window from terrain and recharge:
    - aquifer depth = 50 + elevation/100 + 2*slope (-15 m when recharge is efficient), >= 20 m
    - window tightened to [aquifer-20, aquifer+50] within the 30-200 m defaults
    - confining layers push the minimum below them
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def estimate(self, elevation_m: Optional[float], slope_deg: Optional[float],
                 recharge_efficiency: float) -> DepthRange:
        minimum = DEPTH_DEFAULTS_M['minimum']
        maximum = DEPTH_DEFAULTS_M['maximum']
        recommended = None

        aquifer_depth = self._estimate_aquifer_depth(elevation_m, slope_deg, recharge_efficiency)
        if aquifer_depth is not None:
            recommended = aquifer_depth
            minimum = max(minimum, aquifer_depth - 20)
            maximum = min(maximum, aquifer_depth + 50)
        recommended_from_aquifer = recommended is not None

        confining_layers = self._identify_confining_layers(slope_deg)
        for layer in confining_layers:
            if layer['depth'] > minimum:
                minimum = layer['depth'] + 10

        if recharge_efficiency > 0.7:
            minimum = max(DEPTH_BOUNDS_M[0], minimum - 10)

        if recommended is None:
            recommended = minimum + 0.4 * (maximum - minimum)

        limitations = list(DEPTH_LIMITATIONS)
        minimum, maximum, recommended, adjusted = self._normalize(minimum, maximum, recommended)
        if adjusted:
            limitations.append('Depth window adjusted to the 20-250 m drilling envelope')

        confidence = self._calculate_confidence(maximum - minimum, recommended_from_aquifer)
        if confidence < 0.6:
            limitations.extend(DEPTH_LOW_CONFIDENCE_LIMITATIONS)

        self.logger.info(
            f"Depth window {minimum:.0f}-{maximum:.0f} m, recommended {recommended:.0f} m "
            f"(confidence {confidence:.2f})"
        )
        return DepthRange(
            minimum_depth=round(minimum, 2),
            maximum_depth=round(maximum, 2),
            recommended_depth=round(recommended, 2),
            confidence_score=round(confidence, 2),
            limitations=limitations,
            factors={
                'aquifer_depth': round(aquifer_depth, 2) if aquifer_depth is not None else None,
                'confining_layers': confining_layers,
                'water_table': 'Local well data recommended for water table depth',
            },
        )

    @staticmethod
    def _estimate_aquifer_depth(elevation_m: Optional[float], slope_deg: Optional[float],
                                recharge_efficiency: float) -> Optional[float]:
        if elevation_m is None or slope_deg is None:
            return None
        depth = AQUIFER_BASE_DEPTH_M + elevation_m / 100 + slope_deg * 2
        if recharge_efficiency > AQUIFER_HIGH_EFFICIENCY:
            depth -= AQUIFER_HIGH_EFFICIENCY_REDUCTION_M
        return max(DEPTH_BOUNDS_M[0], depth)

    @staticmethod
    def _identify_confining_layers(slope_deg: Optional[float]) -> List[Dict[str, Any]]:
        if slope_deg is None:
            return []
        layers = []
        if slope_deg < CONFINING_LAYERS['clay']['max_slope_deg']:
            layers.append({'type': 'clay', 'depth': CONFINING_LAYERS['clay']['depth_m']})
        if slope_deg > CONFINING_LAYERS['bedrock']['min_slope_deg']:
            layers.append({'type': 'bedrock', 'depth': CONFINING_LAYERS['bedrock']['depth_m']})
        return layers

    @staticmethod
    def _normalize(minimum: float, maximum: float, recommended: float):
        """Force 20 <= minimum <= recommended <= maximum <= 250"""
        lower, upper = DEPTH_BOUNDS_M
        new_minimum = float(np.clip(minimum, lower, upper))
        new_maximum = float(np.clip(max(maximum, new_minimum), new_minimum, upper))
        new_recommended = float(np.clip(recommended, new_minimum, new_maximum))
        adjusted = (new_minimum, new_maximum, new_recommended) != (minimum, maximum, recommended)
        return new_minimum, new_maximum, new_recommended, adjusted

    @staticmethod
    def _calculate_confidence(spread: float, recommended_from_aquifer: bool) -> float:
        confidence = 0.5
        if spread < 50:
            confidence += 0.2
        elif spread > 100:
            confidence -= 0.2
        if recommended_from_aquifer:
            confidence += 0.1
        return float(np.clip(confidence, 0, 1))
